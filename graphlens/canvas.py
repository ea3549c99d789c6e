"""
Graph Canvas - the NiceGUI element that shows a GraphSession.

The scene is painted as SVG content on a ``ui.interactive_image`` whose
mouse events feed the InteractionController. Every session change repaints
the full scene; overlay cards are rebuilt only for structural or
interaction changes, not on every layout tick.
"""

from typing import Callable, Dict
from urllib.parse import quote

from nicegui import ui

from graphlens import panels
from graphlens.interaction.handlers import MOUSE_EVENTS, setup_canvas_handlers
from graphlens.renderer import Scene
from graphlens.session import GraphSession
from graphlens.svg import scene_to_svg


def _blank_source(width: float, height: float) -> str:
    svg = (
        f"<svg xmlns='http://www.w3.org/2000/svg' width='{int(width)}' height='{int(height)}'>"
        f"<rect width='100%' height='100%' fill='white'/></svg>"
    )
    return 'data:image/svg+xml;utf8,' + quote(svg)


def describe_scene(scene: Scene, skipped_records: int = 0) -> str:
    """One-line status under the canvas."""
    text = f"{len(scene.circles)} nodes, {len(scene.lines)} relationships"
    if scene.dropped_edges:
        text += f" ({scene.dropped_edges} hidden: endpoint not in result)"
    if skipped_records:
        text += f", {skipped_records} malformed record(s) skipped"
    return text


class GraphCanvas:
    """Renders a GraphSession and routes gestures back into it."""

    def __init__(self, session: GraphSession):
        self.session = session
        self.handlers: Dict[str, Callable] = setup_canvas_handlers(session.controller)
        self.image = None
        self._menu_container = None
        self._details_container = None
        self._banner = None
        self._status = None
        self._last_menu = None
        self._last_details = None

    def build(self) -> 'GraphCanvas':
        """Create the UI elements. Call once inside a page."""
        width, height = self.session.width, self.session.height

        self._banner = ui.label('').classes('text-negative font-bold p-2 bg-red-1 rounded')
        self._banner.set_visibility(False)

        with ui.row().classes('items-start no-wrap gap-4'):
            with ui.element('div').classes('relative').style(f'width: {width}px; height: {height}px;'):
                self.image = ui.interactive_image(
                    _blank_source(width, height),
                    content='',
                    on_mouse=self.handlers['handle_mouse'],
                    events=MOUSE_EVENTS,
                    cross=False,
                ).style(f'width: {width}px; height: {height}px; border: 1px solid black;')
                self.image.on('contextmenu', js_handler='(e) => e.preventDefault()')
                self._menu_container = ui.element('div').classes('absolute top-0 left-0')
            self._details_container = ui.card().classes('w-80 gap-2')
            self._details_container.set_visibility(False)

        self._status = ui.label('').classes('text-sm text-grey-7')

        self.session.subscribe(self._on_session_change)
        self.refresh()
        return self

    def _on_session_change(self, reason: str) -> None:
        self.refresh(overlays=reason != 'positions')

    def refresh(self, overlays: bool = True) -> None:
        if self.image is None:
            return
        scene = self.session.scene()
        self.image.content = scene_to_svg(scene)
        self._status.set_text(describe_scene(scene, self.session.snapshot.skipped_records))
        panels.render_banner(self._banner, scene.banner)

        if not overlays:
            return
        menu = scene.menu
        if menu != self._last_menu:
            self._last_menu = menu
            panels.render_context_menu(self._menu_container, menu, self.handlers)
        details = scene.details
        if details != self._last_details:
            self._last_details = details
            panels.render_details(self._details_container, details, self.handlers)
