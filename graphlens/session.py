"""
GraphSession - the one authoritative state container behind a canvas.

Holds the current snapshot, the layout engine, the interaction controller
and the error banner. Read-only viewers and the editable demo are the same
session class with a different mode and snapshot source.

Listeners are called with a reason string:
- 'positions': a layout tick
- 'snapshot': the graph was replaced
- 'interaction': drag/selection/menu state changed
- 'error': the banner changed
"""

import logging
from typing import Callable, Dict, List, Mapping, Optional, Tuple

from graphlens.interaction.constants import CANVAS_HEIGHT, CANVAS_WIDTH, NEW_LINK_TYPE
from graphlens.interaction.controller import InteractionController, InteractionState, Mode
from graphlens.layout import LayoutEngine, NodePosition
from graphlens.model import EMPTY_SNAPSHOT, EdgeDescriptor, GraphSnapshot, NodeDescriptor
from graphlens.renderer import Scene, render

logger = logging.getLogger(__name__)

SessionListener = Callable[[str], None]


class GraphSession:
    """Snapshot + positions + interaction state for one canvas."""

    def __init__(self, mode: Mode = Mode.READ_ONLY,
                 width: float = CANVAS_WIDTH, height: float = CANVAS_HEIGHT,
                 autorun: bool = False, interval: float = 1 / 60, seed: int = 0):
        self.mode = mode
        self.width = width
        self.height = height
        self.active = True
        self.error: Optional[str] = None
        self._snapshot = EMPTY_SNAPSHOT
        self._listeners: List[SessionListener] = []
        self.layout = LayoutEngine(width, height, interval=interval, autorun=autorun, seed=seed)
        self.controller = InteractionController(self, mode)
        self.layout.add_listener(self._on_positions)
        self.controller.set_on_state_change(self._on_interaction)

    @property
    def snapshot(self) -> GraphSnapshot:
        return self._snapshot

    @property
    def positions(self) -> Dict[str, NodePosition]:
        return self.layout.positions

    @property
    def state(self) -> InteractionState:
        return self.controller.state

    def subscribe(self, callback: SessionListener) -> None:
        self._listeners.append(callback)

    def unsubscribe(self, callback: SessionListener) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    def _notify(self, reason: str) -> None:
        for callback in list(self._listeners):
            callback(reason)

    def _on_positions(self, positions: Dict[str, NodePosition]) -> None:
        self._notify('positions')

    def _on_interaction(self, state: InteractionState) -> None:
        self._notify('interaction')

    def replace_snapshot(self, snapshot: GraphSnapshot,
                         seeds: Optional[Mapping[str, Tuple[float, float]]] = None) -> None:
        """
        Swap in a new snapshot.

        Positions and interaction state are reconciled before any listener
        runs, so no render sees the new graph with stale positions.
        """
        self._snapshot = snapshot
        self.layout.sync(snapshot, seeds)
        self.controller.reconcile(snapshot)
        self._notify('snapshot')

    def set_error(self, message: Optional[str]) -> None:
        if message == self.error:
            return
        self.error = message
        self._notify('error')

    def scene(self) -> Scene:
        return render(
            self._snapshot,
            self.layout.positions,
            self.controller.state,
            self.mode,
            width=self.width,
            height=self.height,
            banner=self.error,
        )

    def bind_to_client(self, client) -> None:
        """Close with the NiceGUI client; a dropped socket that reconnects keeps the session."""
        client.on_delete(self.close)

    def close(self) -> None:
        """Deactivate: stop ticking and drop listeners. Late results are discarded."""
        if not self.active:
            return
        self.active = False
        self.layout.stop()
        self._listeners.clear()
        logger.debug("Graph session closed")


DEMO_POSITIONS = {'1': (100.0, 100.0), '2': (300.0, 200.0)}


def demo_snapshot() -> GraphSnapshot:
    """The locally authored starting graph for the editor: 1 -> 2."""
    return GraphSnapshot(
        [NodeDescriptor('1'), NodeDescriptor('2')],
        [EdgeDescriptor('1-2', '1', '2', NEW_LINK_TYPE)],
    )


def create_editor_session(**kwargs) -> GraphSession:
    session = GraphSession(mode=Mode.EDITABLE, **kwargs)
    session.replace_snapshot(demo_snapshot(), seeds=DEMO_POSITIONS)
    return session
