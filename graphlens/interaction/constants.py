"""
Shared constants for the interaction layer.

Hit detection here and drawing in the renderer must agree on node size,
so both read NODE_RADIUS from this module.
"""

# Drawn node radius in canvas pixels
NODE_RADIUS = 10

# Extra pixels around a node that still count as a hit
NODE_HIT_TOLERANCE = 4

# Distance in pixels to detect a pointer over an edge
EDGE_HOVER_TOLERANCE = 6

# Canvas size
CANVAS_WIDTH = 800
CANVAS_HEIGHT = 600

# Relationship type given to links authored in the editor
NEW_LINK_TYPE = 'LINK'

# Context menu actions per target kind
CANVAS_ACTIONS = ('add_node',)
NODE_ACTIONS = ('delete_node', 'add_link')
