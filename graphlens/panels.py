"""
Overlay panels for the graph canvas - NiceGUI rendering helpers.

Materializes the overlay entries of a Scene:
- MenuOverlay -> context menu card at the click point
- DetailsOverlay -> details card with a collapsible raw JSON section
plus the error banner and the JSON pane of the query console.
"""

import json
from typing import Any, Callable, Dict, Optional

from nicegui import ui

from graphlens.renderer import DetailsOverlay, MenuOverlay


ACTION_LABELS = {
    'add_node': 'Add Node',
    'delete_node': 'Delete Node',
    'add_link': 'Add Link',
}


def render_context_menu(container, menu: Optional[MenuOverlay], handlers: Dict[str, Callable]) -> None:
    """Rebuild the context menu card inside ``container`` (cleared first)."""
    container.clear()
    if menu is None:
        return

    with container:
        with ui.card().classes('absolute p-2 gap-2 shadow-lg').style(
            f'left: {menu.x:.0f}px; top: {menu.y:.0f}px; z-index: 1000; pointer-events: auto;'
        ):
            if 'add_node' in menu.actions:
                ui.button(ACTION_LABELS['add_node'], on_click=handlers['handle_add_node']).props('flat dense')
            if 'delete_node' in menu.actions:
                ui.button(ACTION_LABELS['delete_node'], on_click=handlers['handle_delete_node']) \
                    .props('flat dense color=negative')
            if 'add_link' in menu.actions:
                with ui.row().classes('items-center gap-1 no-wrap'):
                    target_input = ui.input(placeholder='Target Node ID').props('dense outlined')
                    ui.button(
                        ACTION_LABELS['add_link'],
                        on_click=lambda: handlers['handle_add_link'](target_input.value),
                    ).props('flat dense')
                target_input.on('keydown.enter', lambda: handlers['handle_add_link'](target_input.value))
            ui.button('Cancel', on_click=handlers['handle_close_menu']).props('flat dense color=grey')


def render_details(container, details: Optional[DetailsOverlay], handlers: Dict[str, Callable]) -> None:
    """Rebuild the selection details card inside ``container``."""
    container.clear()
    if details is None:
        container.set_visibility(False)
        return

    container.set_visibility(True)
    with container:
        with ui.row().classes('w-full items-center justify-between'):
            ui.label('Details').classes('text-lg font-bold')
            ui.button(icon='close', on_click=handlers['handle_clear_selection']) \
                .props('flat round dense color=grey').tooltip('Close')
        ui.label(details.title).classes('text-md font-semibold')
        for name, value in details.fields:
            with ui.row().classes('gap-1 no-wrap'):
                ui.label(f'{name}:').classes('font-bold')
                ui.label(value).classes('break-all')
        ui.label('Properties:').classes('font-bold')
        ui.code(details.properties_json, language='json').classes('w-full')

        toggle_text = 'Hide Full JSON' if details.show_raw else 'Show Full JSON'
        ui.button(toggle_text, on_click=handlers['handle_toggle_raw']).props('color=primary dense')
        if details.show_raw:
            with ui.card().classes('w-full bg-grey-1'):
                ui.label('Full JSON').classes('font-bold')
                ui.code(details.raw_json, language='json').classes('w-full')


def render_banner(label, message: Optional[str]) -> None:
    """Show or hide the error banner label."""
    label.set_text(message or '')
    label.set_visibility(bool(message))


def render_json(container, data: Any) -> None:
    """Pretty-print a query result (or error) into ``container``."""
    container.clear()
    if data is None:
        return
    with container:
        ui.code(json.dumps(data, indent=2, default=str, ensure_ascii=False), language='json') \
            .classes('w-full')
