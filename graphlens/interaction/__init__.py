"""
Interaction layer for GraphLens.

This package turns pointer gestures into state transitions and graph edits:
- InteractionController: single source of truth for drag/selection/menu state
- GraphActions: snapshot mutations (add/delete node, add link)
- handlers: NiceGUI event wiring (imports nicegui, so it is not re-exported)

Usage:
    from graphlens.interaction import InteractionController, GraphActions, Mode
    from graphlens.interaction.handlers import setup_canvas_handlers
"""

from graphlens.interaction.constants import (
    NODE_RADIUS,
    NODE_HIT_TOLERANCE,
    EDGE_HOVER_TOLERANCE,
    CANVAS_WIDTH,
    CANVAS_HEIGHT,
)
from graphlens.interaction.actions import GraphActions
from graphlens.interaction.controller import (
    ContextMenu,
    InteractionController,
    InteractionState,
    Mode,
    Selection,
)

__all__ = [
    'InteractionController',
    'InteractionState',
    'ContextMenu',
    'Selection',
    'Mode',
    'GraphActions',
    'NODE_RADIUS',
    'NODE_HIT_TOLERANCE',
    'EDGE_HOVER_TOLERANCE',
    'CANVAS_WIDTH',
    'CANVAS_HEIGHT',
]
