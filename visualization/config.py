"""Styling and interaction constants for concept graph rendering."""

# Node circles by role: selected > root > depth 1 > deeper
NODE_STYLES = {
    'selected': {'radius': 16.0, 'fill': '#f59e0b', 'stroke': '#b45309', 'stroke_width': 3.0},
    'root': {'radius': 8.0, 'fill': '#0ea5e9', 'stroke': '#fff', 'stroke_width': 1.5},
    'depth1': {'radius': 6.0, 'fill': '#6366f1', 'stroke': '#fff', 'stroke_width': 1.5},
    'other': {'radius': 4.0, 'fill': '#a78bfa', 'stroke': '#fff', 'stroke_width': 1.5},
}

# Label text and background plate
LABEL_FONT_SIZE = 12.0
SELECTED_LABEL_FONT_SIZE = 13.8  # 1.15em of 12px
LABEL_COLOR = '#222'
SELECTED_LABEL_COLOR = '#b45309'
LABEL_OFFSET_X = 12.0
PLATE_OFFSET_X = 8.0
PLATE_OFFSET_Y = -10.0
PLATE_HEIGHT = 20.0
PLATE_PADDING = 8.0
PLATE_FILL = '#fff'
SELECTED_PLATE_FILL = '#fffbe8'
PLATE_STROKE = '#e5e7eb'
SELECTED_PLATE_STROKE = '#f59e0b'
PLATE_STROKE_WIDTH = 1.2

# Edges
HIGHLIGHT_EDGE_COLOR = '#f59e0b'
HIGHLIGHT_EDGE_WIDTH = 2.5
DIM_EDGE_COLOR = 'rgba(34,34,34,0.25)'
DIM_EDGE_WIDTH = 1.2

# Opacity for the selection's first-order neighbourhood vs everything else
FULL_OPACITY = 1.0
PLATE_OPACITY = 0.95
DIMMED_OPACITY = 0.5

EMPTY_GRAPH_MESSAGE = "No related concepts found to build a graph."

# Viewport and view transform
MIN_VIEW_HEIGHT = 350.0
DEFAULT_VIEW_WIDTH = 800.0
DEFAULT_VIEW_HEIGHT = 480.0
ZOOM_SCALE_EXTENT = (0.3, 5.0)
WHEEL_DELTA_FACTOR = 0.002
RECENTER_DURATION = 0.5  # seconds
TOOLTIP_OFFSET = (10.0, -15.0)
