"""
Canvas Handlers - NiceGUI event wiring for the graph canvas.

Keeps the pages in app.py free of gesture plumbing: mouse and keyboard
events are normalized here and forwarded to the InteractionController.
"""

from typing import Any, Callable, Dict

from nicegui import events

from graphlens.interaction.controller import InteractionController


# Mouse events the canvas subscribes to
MOUSE_EVENTS = ['mousedown', 'mousemove', 'mouseup', 'click', 'dblclick', 'contextmenu']

# Field order when a payload arrives as a list
REQUESTED_EVENT_KEYS = ['type', 'x', 'y', 'button']


def normalize_mouse_payload(raw_payload: Any) -> Dict[str, Any]:
    """Normalize NiceGUI mouse payloads into {'type', 'x', 'y', 'button'}."""
    if isinstance(raw_payload, events.MouseEventArguments):
        return {
            'type': raw_payload.type,
            'x': raw_payload.image_x,
            'y': raw_payload.image_y,
            'button': raw_payload.button,
        }
    if isinstance(raw_payload, dict):
        return {
            'type': raw_payload.get('mouse_event_type', raw_payload.get('type')),
            'x': raw_payload.get('image_x', raw_payload.get('offsetX', raw_payload.get('x'))),
            'y': raw_payload.get('image_y', raw_payload.get('offsetY', raw_payload.get('y'))),
            'button': raw_payload.get('button', 0),
        }
    if isinstance(raw_payload, (list, tuple)):
        payload = {
            REQUESTED_EVENT_KEYS[i]: raw_payload[i]
            for i in range(min(len(raw_payload), len(REQUESTED_EVENT_KEYS)))
        }
        payload.setdefault('button', 0)
        return payload
    return {}


def setup_canvas_handlers(controller: InteractionController) -> Dict[str, Callable]:
    """
    Build the event handlers for one canvas.

    Args:
        controller: the session's InteractionController

    Returns:
        Dict with handler functions for binding to UI events
    """

    def handle_mouse(event):
        """Dispatch a canvas mouse event to the matching gesture."""
        payload = normalize_mouse_payload(event)
        kind = payload.get('type')
        x, y = payload.get('x'), payload.get('y')
        if kind is None or x is None or y is None:
            return

        if kind == 'mousedown':
            controller.pointer_down(x, y, payload.get('button') or 0)
        elif kind == 'mousemove':
            controller.pointer_move(x, y)
        elif kind == 'mouseup':
            controller.pointer_up()
        elif kind == 'click':
            controller.click(x, y)
        elif kind == 'dblclick':
            controller.double_click(x, y)
        elif kind == 'contextmenu':
            controller.right_click(x, y)

    def handle_key(e):
        """Escape closes an open menu, then clears the selection."""
        if e.key == 'Escape' and e.action.keydown:
            if controller.state.context_menu is not None:
                controller.close_menu()
            else:
                controller.clear_selection()

    def handle_add_node():
        controller.add_node()

    def handle_delete_node():
        controller.delete_node()

    def handle_add_link(target_id: str):
        controller.add_link(target_id)

    return {
        'handle_mouse': handle_mouse,
        'handle_key': handle_key,
        'handle_add_node': handle_add_node,
        'handle_delete_node': handle_delete_node,
        'handle_add_link': handle_add_link,
        'handle_close_menu': controller.close_menu,
        'handle_toggle_raw': controller.toggle_raw,
        'handle_clear_selection': controller.clear_selection,
    }
