"""
Renderer - pure conversion of (snapshot, positions, interaction) into a Scene.

A Scene is the full list of primitives for one frame: one circle and label
per node, one line and label per renderable edge, plus overlay panels for an
open context menu or a selection. It is rebuilt from scratch on every change.

Edges with a missing endpoint are not drawn; how many were dropped is kept
on the Scene so the UI can say so.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Tuple

from graphlens.errors import DanglingEdgeError
from graphlens.interaction.constants import CANVAS_ACTIONS, NODE_ACTIONS, NODE_RADIUS
from graphlens.interaction.controller import InteractionState, Mode
from graphlens.layout import NodePosition
from graphlens.model import EdgeDescriptor, GraphSnapshot, NodeDescriptor

logger = logging.getLogger(__name__)


# Per-mode styling
READ_ONLY_STYLE = {
    'node_fill': '#69b3a2',
    'node_stroke': '#ffffff',
    'edge_stroke': '#aaaaaa',
    'edge_width': 2,
    'node_label_color': '#222222',
    'node_label_size': 14,
    'node_label_dx': 15,
    'node_label_dy': 5,
    'edge_label_color': '#555555',
    'edge_label_size': 12,
}

EDITABLE_STYLE = {
    'node_fill': 'steelblue',
    'node_stroke': '#ffffff',
    'edge_stroke': '#999999',
    'edge_width': 2,
    'node_label_color': '#333333',
    'node_label_size': 10,
    'node_label_dx': 12,
    'node_label_dy': -12,
    'edge_label_color': '#777777',
    'edge_label_size': 10,
}

_SELECTED_STROKE = '#ff7f0e'


@dataclass(frozen=True)
class Circle:
    node_id: str
    x: float
    y: float
    r: float
    fill: str
    stroke: str
    stroke_width: float


@dataclass(frozen=True)
class Line:
    edge_id: str
    x1: float
    y1: float
    x2: float
    y2: float
    stroke: str
    stroke_width: float


@dataclass(frozen=True)
class Label:
    owner_id: str
    kind: str  # 'node' | 'edge'
    text: str
    x: float
    y: float
    font_size: int
    fill: str


@dataclass(frozen=True)
class MenuOverlay:
    x: float
    y: float
    target_kind: str
    target_id: Optional[str]
    actions: Tuple[str, ...]


@dataclass(frozen=True)
class DetailsOverlay:
    kind: str  # 'node' | 'link'
    item_id: str
    title: str
    fields: Tuple[Tuple[str, str], ...]
    properties_json: str
    raw_json: str
    show_raw: bool


@dataclass(frozen=True)
class Scene:
    width: float
    height: float
    circles: Tuple[Circle, ...] = ()
    lines: Tuple[Line, ...] = ()
    labels: Tuple[Label, ...] = ()
    overlays: Tuple[Any, ...] = ()
    dropped_edges: int = 0
    banner: Optional[str] = None

    @property
    def menu(self) -> Optional[MenuOverlay]:
        return next((o for o in self.overlays if isinstance(o, MenuOverlay)), None)

    @property
    def details(self) -> Optional[DetailsOverlay]:
        return next((o for o in self.overlays if isinstance(o, DetailsOverlay)), None)


def to_json(value: Any) -> str:
    return json.dumps(_plain(value), indent=2, default=str, ensure_ascii=False)


def _plain(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {str(k): _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return value


def _node_raw(node: NodeDescriptor) -> Mapping[str, Any]:
    if node.raw:
        return node.raw
    return {'id': node.id, 'labels': list(node.labels), 'properties': node.properties}


def _edge_raw(edge: EdgeDescriptor) -> Mapping[str, Any]:
    if edge.raw:
        return edge.raw
    return {
        'id': edge.id,
        'source': edge.source_id,
        'target': edge.target_id,
        'type': edge.type,
        'properties': edge.properties,
    }


def _node_details(node: NodeDescriptor, pos: Optional[NodePosition], show_raw: bool) -> DetailsOverlay:
    fields = [
        ('Label', node.labels[0] if node.labels else '-'),
        ('Id', node.id),
    ]
    if pos is not None:
        fields.append(('Position', f"x: {pos.x:.2f}, y: {pos.y:.2f}"))
        fields.append(('Velocity', f"vx: {pos.vx:.4f}, vy: {pos.vy:.4f}"))
    return DetailsOverlay(
        kind='node',
        item_id=node.id,
        title='Node',
        fields=tuple(fields),
        properties_json=to_json(node.properties),
        raw_json=to_json(_node_raw(node)),
        show_raw=show_raw,
    )


def _edge_details(edge: EdgeDescriptor, show_raw: bool) -> DetailsOverlay:
    return DetailsOverlay(
        kind='link',
        item_id=edge.id,
        title='Relationship',
        fields=(
            ('Type', edge.type or '-'),
            ('Id', edge.id),
            ('Source Node', edge.source_id),
            ('Target Node', edge.target_id),
        ),
        properties_json=to_json(edge.properties),
        raw_json=to_json(_edge_raw(edge)),
        show_raw=show_raw,
    )


def render(snapshot: GraphSnapshot,
           positions: Dict[str, NodePosition],
           state: InteractionState,
           mode: Mode = Mode.READ_ONLY,
           width: float = 800,
           height: float = 600,
           banner: Optional[str] = None) -> Scene:
    """Build the full scene for one frame."""
    style = EDITABLE_STYLE if mode is Mode.EDITABLE else READ_ONLY_STYLE
    selection = state.selection

    lines = []
    labels = []
    dropped = 0
    for edge in snapshot.edges:
        try:
            snapshot.endpoints(edge)
        except DanglingEdgeError as e:
            dropped += 1
            logger.debug(f"Not drawing edge: {e}")
            continue
        src = positions.get(edge.source_id)
        tgt = positions.get(edge.target_id)
        if src is None or tgt is None:
            continue
        selected = selection is not None and selection.kind == 'link' and selection.item_id == edge.id
        lines.append(Line(
            edge_id=edge.id,
            x1=src.x, y1=src.y, x2=tgt.x, y2=tgt.y,
            stroke=_SELECTED_STROKE if selected else style['edge_stroke'],
            stroke_width=style['edge_width'] + (1 if selected else 0),
        ))
        labels.append(Label(
            owner_id=edge.id,
            kind='edge',
            text=edge.type,
            x=(src.x + tgt.x) / 2,
            y=(src.y + tgt.y) / 2,
            font_size=style['edge_label_size'],
            fill=style['edge_label_color'],
        ))

    circles = []
    for node in snapshot.nodes:
        pos = positions.get(node.id)
        if pos is None:
            continue
        selected = selection is not None and selection.kind == 'node' and selection.item_id == node.id
        circles.append(Circle(
            node_id=node.id,
            x=pos.x, y=pos.y, r=NODE_RADIUS,
            fill=style['node_fill'],
            stroke=_SELECTED_STROKE if selected else style['node_stroke'],
            stroke_width=3 if selected else 1.5,
        ))
        labels.append(Label(
            owner_id=node.id,
            kind='node',
            text=node.caption,
            x=pos.x + style['node_label_dx'],
            y=pos.y + style['node_label_dy'],
            font_size=style['node_label_size'],
            fill=style['node_label_color'],
        ))

    overlays = []
    menu = state.context_menu
    if menu is not None:
        actions = CANVAS_ACTIONS if menu.target_kind == 'canvas' else NODE_ACTIONS
        overlays.append(MenuOverlay(menu.x, menu.y, menu.target_kind, menu.target_id, actions))

    if selection is not None:
        if selection.kind == 'node':
            node = snapshot.node(selection.item_id)
            if node is not None:
                overlays.append(_node_details(node, positions.get(node.id), state.show_raw))
        else:
            edge = snapshot.edge(selection.item_id)
            if edge is not None:
                overlays.append(_edge_details(edge, state.show_raw))

    return Scene(
        width=width,
        height=height,
        circles=tuple(circles),
        lines=tuple(lines),
        labels=tuple(labels),
        overlays=tuple(overlays),
        dropped_edges=dropped,
        banner=banner,
    )
