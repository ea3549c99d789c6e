"""
Interaction Controller - single source of truth for gesture state.

All pointer gestures arrive here as canvas coordinates. The controller hit
tests them against the current layout, moves through the transition table
(drag, selection, context menu) and delegates structural edits to
GraphActions. Nothing else writes InteractionState.

Right-clicks are resolved in one place: a hit on a node opens the node menu
and the canvas branch is never taken for the same event.
"""

import logging
import math
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, Dict, Optional, Tuple

from graphlens.errors import InvalidMutation
from graphlens.interaction.actions import GraphActions
from graphlens.interaction.constants import (
    EDGE_HOVER_TOLERANCE,
    NODE_HIT_TOLERANCE,
    NODE_RADIUS,
)
from graphlens.model import GraphSnapshot

logger = logging.getLogger(__name__)


class Mode(Enum):
    READ_ONLY = 'read_only'
    EDITABLE = 'editable'


@dataclass(frozen=True)
class Selection:
    item_id: str
    kind: str  # 'node' | 'link'


@dataclass(frozen=True)
class ContextMenu:
    x: float
    y: float
    target_kind: str  # 'canvas' | 'node'
    target_id: Optional[str] = None


@dataclass(frozen=True)
class InteractionState:
    """Immutable snapshot of current interaction state."""
    drag_target: Optional[str] = None
    selection: Optional[Selection] = None
    context_menu: Optional[ContextMenu] = None
    show_raw: bool = False


class InteractionController:
    """Translates gestures into state transitions and graph edits."""

    def __init__(self, session, mode: Mode = Mode.READ_ONLY,
                 actions: Optional[GraphActions] = None):
        self.session = session
        self.mode = mode
        self.actions = actions or GraphActions(session)
        self._state = InteractionState()
        self._on_state_change: Optional[Callable[[InteractionState], None]] = None

    @property
    def state(self) -> InteractionState:
        return self._state

    @property
    def editable(self) -> bool:
        return self.mode is Mode.EDITABLE

    def set_on_state_change(self, callback: Callable[[InteractionState], None]):
        self._on_state_change = callback

    def _set_state(self, state: InteractionState) -> InteractionState:
        if state != self._state:
            self._state = state
            if self._on_state_change:
                self._on_state_change(state)
        return self._state

    def reconcile(self, snapshot: GraphSnapshot) -> None:
        """Drop references to items that vanished from a new snapshot (no notification)."""
        state = self._state
        sel = state.selection
        if sel is not None:
            exists = snapshot.has_node(sel.item_id) if sel.kind == 'node' else snapshot.edge(sel.item_id) is not None
            if not exists:
                state = replace(state, selection=None, show_raw=False)
        menu = state.context_menu
        if menu is not None and menu.target_kind == 'node' and not snapshot.has_node(menu.target_id):
            state = replace(state, context_menu=None)
        if state.drag_target is not None and not snapshot.has_node(state.drag_target):
            state = replace(state, drag_target=None)
        self._state = state

    # --- Drag ---

    def pointer_down(self, x: float, y: float, button: int = 0) -> InteractionState:
        if button != 0:
            return self._state
        node_id = self.node_at(x, y)
        if node_id is None:
            return self._state
        return self.start_drag(node_id, x, y)

    def start_drag(self, node_id: str, x: float, y: float) -> InteractionState:
        if not self.session.layout.pin(node_id, x, y):
            return self._state
        return self._set_state(replace(self._state, drag_target=node_id))

    def pointer_move(self, x: float, y: float) -> InteractionState:
        if self._state.drag_target is None:
            return self._state
        self.session.layout.move_pin(x, y)
        return self._state

    def pointer_up(self) -> InteractionState:
        if self._state.drag_target is None:
            return self._state
        self.session.layout.unpin()
        return self._set_state(replace(self._state, drag_target=None))

    # --- Selection (read-only mode) ---

    def click(self, x: float, y: float) -> InteractionState:
        if self.editable:
            return self._state
        node_id = self.node_at(x, y)
        if node_id is None:
            return self._state
        return self.select(node_id, 'node')

    def double_click(self, x: float, y: float) -> InteractionState:
        if self.editable:
            return self._state
        # Nodes sit on top of edges
        if self.node_at(x, y) is not None:
            return self._state
        edge_id = self.edge_at(x, y)
        if edge_id is None:
            return self._state
        return self.select(edge_id, 'link')

    def select(self, item_id: str, kind: str) -> InteractionState:
        """Select an item; the raw data panel always starts collapsed."""
        return self._set_state(replace(
            self._state, selection=Selection(item_id, kind), show_raw=False
        ))

    def clear_selection(self) -> InteractionState:
        return self._set_state(replace(self._state, selection=None, show_raw=False))

    def toggle_raw(self) -> InteractionState:
        if self._state.selection is None:
            return self._state
        return self._set_state(replace(self._state, show_raw=not self._state.show_raw))

    # --- Context menu (editable mode) ---

    def right_click(self, x: float, y: float) -> InteractionState:
        if not self.editable or self._state.context_menu is not None:
            return self._state
        node_id = self.node_at(x, y)
        if node_id is not None:
            menu = ContextMenu(x, y, 'node', node_id)
        else:
            menu = ContextMenu(x, y, 'canvas')
        return self._set_state(replace(self._state, context_menu=menu))

    def close_menu(self) -> InteractionState:
        return self._set_state(replace(self._state, context_menu=None))

    def add_node(self) -> Optional[str]:
        """'Add Node' from a canvas menu: new node at the menu point."""
        menu = self._state.context_menu
        node_id = None
        if menu is not None and menu.target_kind == 'canvas':
            try:
                node_id = self.actions.create_node((menu.x, menu.y))
            except InvalidMutation as e:
                logger.debug(f"Add node ignored: {e}")
        self.close_menu()
        return node_id

    def delete_node(self) -> bool:
        """'Delete Node' from a node menu: node and its edges go."""
        menu = self._state.context_menu
        deleted = False
        if menu is not None and menu.target_kind == 'node':
            try:
                self.actions.delete_node(menu.target_id)
                deleted = True
            except InvalidMutation as e:
                logger.debug(f"Delete node ignored: {e}")
        self.close_menu()
        return deleted

    def add_link(self, target_id: Optional[str]) -> Optional[str]:
        """
        'Add Link' from a node menu to a user-entered target id.

        An unknown, identical or already-linked target is a silent no-op;
        the menu closes either way.
        """
        menu = self._state.context_menu
        edge_id = None
        target_id = (target_id or '').strip()
        if menu is not None and menu.target_kind == 'node' and target_id:
            try:
                edge_id = self.actions.connect_nodes(menu.target_id, target_id)
            except InvalidMutation as e:
                logger.debug(f"Add link ignored: {e}")
        self.close_menu()
        return edge_id

    # --- Hit detection ---

    def _positions(self) -> Dict[str, Tuple[float, float]]:
        return {nid: (p.x, p.y) for nid, p in self.session.layout.positions.items()}

    def node_at(self, x: float, y: float) -> Optional[str]:
        """Closest node whose disc (plus tolerance) contains the point."""
        positions = self._positions()
        closest = None
        closest_dist = float('inf')
        radius = NODE_RADIUS + NODE_HIT_TOLERANCE

        for node in self.session.snapshot.nodes:
            pos = positions.get(node.id)
            if pos is None:
                continue
            dist = math.sqrt((x - pos[0])**2 + (y - pos[1])**2)
            if dist <= radius and dist < closest_dist:
                closest_dist = dist
                closest = node.id
        return closest

    def edge_at(self, x: float, y: float) -> Optional[str]:
        """Closest renderable edge within hover tolerance of the point."""
        positions = self._positions()
        closest = None
        closest_dist = float('inf')

        for edge in self.session.snapshot.renderable_edges():
            src_pos = positions.get(edge.source_id)
            tgt_pos = positions.get(edge.target_id)
            if src_pos is None or tgt_pos is None:
                continue
            dist, _ = self._point_to_line_distance((x, y), src_pos, tgt_pos)
            if dist <= EDGE_HOVER_TOLERANCE and dist < closest_dist:
                closest_dist = dist
                closest = edge.id
        return closest

    def _point_to_line_distance(self, point: Tuple[float, float],
                                line_start: Tuple[float, float],
                                line_end: Tuple[float, float]) -> Tuple[float, float]:
        px, py = point
        x1, y1 = line_start
        x2, y2 = line_end
        dx, dy = x2 - x1, y2 - y1

        if dx == 0 and dy == 0:
            return math.sqrt((px - x1)**2 + (py - y1)**2), 0.0

        t = max(0.0, min(1.0, ((px - x1) * dx + (py - y1) * dy) / (dx * dx + dy * dy)))
        closest_x, closest_y = x1 + t * dx, y1 + t * dy
        return math.sqrt((px - closest_x)**2 + (py - closest_y)**2), t
