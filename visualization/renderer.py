"""
Rendering of concept graphs from live simulation positions.

The renderer is stateless: every call to ``render`` recomputes the full set
of glyphs from the graph, the current positions and the selection, so a
frame never reuses geometry from an earlier frame. A Scene can then be
turned into an interactive plotly figure or a static matplotlib image.
"""

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Set, Tuple

import matplotlib.pyplot as plt
from matplotlib.colors import to_rgba
import plotly.graph_objects as go

from concept_graph.graph_data import GraphData, GraphNode
from concept_graph.layout_algorithms import estimate_text_width

from . import config as style
from .viewport import Tooltip, ViewTransform, Viewport

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NodeGlyph:
    """Circle, label and label plate of one node, in layout coordinates."""
    id: str
    label: str
    x: float
    y: float
    radius: float
    fill: str
    stroke: str
    stroke_width: float
    opacity: float
    plate_width: float
    plate_fill: str
    plate_stroke: str
    plate_opacity: float
    font_size: float
    font_weight: int
    label_color: str
    highlighted: bool
    selected: bool


@dataclass(frozen=True)
class EdgeGlyph:
    source: str
    target: str
    x1: float
    y1: float
    x2: float
    y2: float
    stroke: str
    stroke_width: float
    opacity: float
    highlighted: bool


@dataclass(frozen=True)
class Scene:
    """Everything drawn for one frame."""
    viewport: Viewport
    nodes: Tuple[NodeGlyph, ...] = ()
    edges: Tuple[EdgeGlyph, ...] = ()
    transform: ViewTransform = ViewTransform()
    tooltip: Tooltip = Tooltip()
    message: Optional[str] = None

    @property
    def is_blank(self) -> bool:
        return not self.nodes and not self.edges

    def node(self, node_id: str) -> NodeGlyph:
        for glyph in self.nodes:
            if glyph.id == node_id:
                return glyph
        raise KeyError(node_id)

    def edges_between(self, a: str, b: str) -> List[EdgeGlyph]:
        return [e for e in self.edges if {e.source, e.target} == {a, b}]


def highlight_set(graph: GraphData, selected_id: Optional[str]) -> Set[str]:
    """The selected node plus its first-order neighbours, in either direction."""
    if selected_id is None or selected_id not in graph:
        return set()
    return graph.neighbours(selected_id) | {selected_id}


def _role(node: GraphNode, selected_id: Optional[str]) -> str:
    if node.id == selected_id:
        return 'selected'
    if node.is_root:
        return 'root'
    if node.depth == 1:
        return 'depth1'
    return 'other'


_RGBA = re.compile(r'rgba?\(\s*([\d.]+)\s*,\s*([\d.]+)\s*,\s*([\d.]+)\s*(?:,\s*([\d.]+)\s*)?\)')


def _mpl_color(css: str, opacity: float = 1.0) -> Tuple[float, float, float, float]:
    """CSS colour string to a matplotlib RGBA tuple, folding in ``opacity``."""
    match = _RGBA.fullmatch(css.strip())
    if match:
        r, g, b, a = match.groups()
        rgba = (float(r) / 255, float(g) / 255, float(b) / 255, float(a) if a else 1.0)
    else:
        rgba = to_rgba(css)
    return rgba[0], rgba[1], rgba[2], rgba[3] * opacity


class ConceptGraphRenderer:
    """
    Builds Scenes from a graph and positions, and draws them.

    Styling follows the node's role (selected > root > depth 1 > deeper).
    When a selection is given, the selection and its first-order
    neighbourhood render at full opacity and everything else is dimmed.
    """

    def __init__(self, figsize: Tuple[int, int] = (10, 8)):
        self.figsize = figsize

    def empty_scene(self, viewport: Viewport,
                    message: str = style.EMPTY_GRAPH_MESSAGE) -> Scene:
        return Scene(viewport=viewport, message=message)

    def render(self,
               graph: GraphData,
               positions: Dict[str, Tuple[float, float]],
               viewport: Viewport,
               selected_id: Optional[str] = None,
               transform: Optional[ViewTransform] = None,
               tooltip: Optional[Tooltip] = None) -> Scene:
        """
        Compute the glyphs for one frame.

        Args:
            graph: Graph snapshot being drawn
            positions: Current layout positions by node id; nodes without a
                position yet are skipped, along with their edges
            viewport: Drawing surface
            selected_id: Concept currently in focus
            transform: Current zoom/pan transform
            tooltip: Hover label state

        Returns:
            Scene for this frame
        """
        transform = transform or ViewTransform()
        tooltip = tooltip or Tooltip()

        if graph.is_empty:
            return Scene(viewport=viewport, transform=transform, tooltip=tooltip,
                         message=style.EMPTY_GRAPH_MESSAGE)

        emphasised = highlight_set(graph, selected_id)
        dim_others = selected_id is not None

        node_glyphs = []
        for node in graph.nodes.values():
            if node.id not in positions:
                continue
            x, y = positions[node.id]
            role = _role(node, selected_id)
            shape = style.NODE_STYLES[role]
            is_selected = role == 'selected'
            highlighted = node.id in emphasised
            full = highlighted or not dim_others

            node_glyphs.append(NodeGlyph(
                id=node.id,
                label=node.label,
                x=x,
                y=y,
                radius=shape['radius'],
                fill=shape['fill'],
                stroke=shape['stroke'],
                stroke_width=shape['stroke_width'],
                opacity=style.FULL_OPACITY if full else style.DIMMED_OPACITY,
                plate_width=estimate_text_width(node.label) + style.PLATE_PADDING,
                plate_fill=style.SELECTED_PLATE_FILL if is_selected else style.PLATE_FILL,
                plate_stroke=style.SELECTED_PLATE_STROKE if is_selected else style.PLATE_STROKE,
                plate_opacity=style.PLATE_OPACITY if full else style.DIMMED_OPACITY,
                font_size=style.SELECTED_LABEL_FONT_SIZE if is_selected else style.LABEL_FONT_SIZE,
                font_weight=700 if is_selected else 400,
                label_color=style.SELECTED_LABEL_COLOR if is_selected else style.LABEL_COLOR,
                highlighted=highlighted,
                selected=is_selected,
            ))

        edge_glyphs = []
        for edge in graph.edges:
            if edge.source not in positions or edge.target not in positions:
                continue
            x1, y1 = positions[edge.source]
            x2, y2 = positions[edge.target]
            highlighted = selected_id is not None and edge.touches(selected_id)
            full = highlighted or not dim_others

            edge_glyphs.append(EdgeGlyph(
                source=edge.source,
                target=edge.target,
                x1=x1, y1=y1, x2=x2, y2=y2,
                stroke=style.HIGHLIGHT_EDGE_COLOR if highlighted else style.DIM_EDGE_COLOR,
                stroke_width=style.HIGHLIGHT_EDGE_WIDTH if highlighted else style.DIM_EDGE_WIDTH,
                opacity=style.FULL_OPACITY if full else style.DIMMED_OPACITY,
                highlighted=highlighted,
            ))

        return Scene(viewport=viewport, nodes=tuple(node_glyphs), edges=tuple(edge_glyphs),
                     transform=transform, tooltip=tooltip)

    def _visible_range(self, scene: Scene) -> Tuple[Tuple[float, float], Tuple[float, float]]:
        """Layout-space rectangle currently shown through the view transform."""
        left, top, width, height = scene.viewport.view_box
        x0, y0 = scene.transform.invert((left, top))
        x1, y1 = scene.transform.invert((left + width, top + height))
        return (x0, x1), (y0, y1)

    def to_plotly(self, scene: Scene, title: str = "Related Concepts Graph") -> go.Figure:
        """Create an interactive plotly figure for a scene."""
        (x0, x1), (y0, y1) = self._visible_range(scene)

        # One trace per edge style; plotly only supports opacity per trace
        edge_groups: Dict[Tuple[str, float, float], Tuple[List, List]] = {}
        for edge in scene.edges:
            key = (edge.stroke, edge.stroke_width, edge.opacity)
            xs, ys = edge_groups.setdefault(key, ([], []))
            xs.extend([edge.x1, edge.x2, None])
            ys.extend([edge.y1, edge.y2, None])

        traces = [
            go.Scatter(x=xs, y=ys, mode='lines', hoverinfo='none', opacity=opacity,
                       line=dict(width=width, color=color), showlegend=False)
            for (color, width, opacity), (xs, ys) in edge_groups.items()
        ]

        if scene.nodes:
            traces.append(go.Scatter(
                x=[n.x for n in scene.nodes],
                y=[n.y for n in scene.nodes],
                mode='markers',
                hoverinfo='text',
                hovertext=[f"<b>{n.label}</b><br>{n.id}" for n in scene.nodes],
                customdata=[n.id for n in scene.nodes],
                marker=dict(
                    size=[2 * n.radius for n in scene.nodes],
                    color=[n.fill for n in scene.nodes],
                    opacity=[n.opacity for n in scene.nodes],
                    line=dict(width=[n.stroke_width for n in scene.nodes],
                              color=[n.stroke for n in scene.nodes]),
                ),
                showlegend=False,
            ))

        annotations = [
            dict(
                x=n.x, y=n.y, xref='x', yref='y',
                text=f"<b>{n.label}</b>" if n.font_weight >= 700 else n.label,
                showarrow=False,
                xanchor='left',
                xshift=style.PLATE_OFFSET_X,
                width=n.plate_width,
                height=style.PLATE_HEIGHT,
                align='left',
                bgcolor=n.plate_fill,
                bordercolor=n.plate_stroke,
                borderwidth=style.PLATE_STROKE_WIDTH,
                borderpad=0,
                opacity=n.plate_opacity,
                font=dict(size=n.font_size, color=n.label_color),
            )
            for n in scene.nodes
        ]
        if scene.message:
            annotations.append(dict(
                text=scene.message, showarrow=False, xref='paper', yref='paper',
                x=0.5, y=0.5, font=dict(color='gray', size=14)
            ))

        fig = go.Figure(
            data=traces,
            layout=go.Layout(
                title=dict(text=title, font=dict(size=16)),
                width=scene.viewport.width,
                height=scene.viewport.height,
                showlegend=False,
                hovermode='closest',
                dragmode='pan',
                plot_bgcolor='#f7f7fa',
                margin=dict(b=20, l=5, r=5, t=40),
                annotations=annotations,
                xaxis=dict(range=[x0, x1], showgrid=False, zeroline=False, showticklabels=False),
                # Layout y grows downwards, as on screen
                yaxis=dict(range=[y1, y0], showgrid=False, zeroline=False,
                           showticklabels=False, scaleanchor='x'),
            )
        )
        return fig

    def write_html(self, scene: Scene, save_path: Path, title: str = "Related Concepts Graph"):
        fig = self.to_plotly(scene, title=title)
        fig.write_html(str(save_path))
        logger.info("Wrote interactive graph to %s", save_path)

    def to_matplotlib(self, scene: Scene, title: str = "Related Concepts Graph"):
        """
        Create a static matplotlib figure for a scene.

        Label plates are drawn as rectangles in layout units, sized by the
        same text-width estimate the collision force uses.

        Returns:
            (fig, ax); the caller owns the figure and must close it
        """
        fig, ax = plt.subplots(figsize=self.figsize)
        (x0, x1), (y0, y1) = self._visible_range(scene)

        for edge in scene.edges:
            ax.plot([edge.x1, edge.x2], [edge.y1, edge.y2],
                    color=_mpl_color(edge.stroke, edge.opacity),
                    linewidth=edge.stroke_width, zorder=1)

        for n in scene.nodes:
            ax.add_patch(plt.Circle(
                (n.x, n.y), n.radius,
                facecolor=_mpl_color(n.fill, n.opacity),
                edgecolor=_mpl_color(n.stroke, n.opacity),
                linewidth=n.stroke_width, zorder=2
            ))
            ax.add_patch(plt.Rectangle(
                (n.x + style.PLATE_OFFSET_X, n.y + style.PLATE_OFFSET_Y),
                n.plate_width, style.PLATE_HEIGHT,
                facecolor=_mpl_color(n.plate_fill, n.plate_opacity),
                edgecolor=_mpl_color(n.plate_stroke, n.plate_opacity),
                linewidth=style.PLATE_STROKE_WIDTH, zorder=3
            ))
            ax.text(n.x + style.LABEL_OFFSET_X, n.y, n.label,
                    va='center', ha='left', zorder=4,
                    fontsize=n.font_size * 0.75,
                    fontweight='bold' if n.font_weight >= 700 else 'normal',
                    color=_mpl_color(n.label_color, n.opacity))

        if scene.message:
            ax.text(0.5, 0.5, scene.message, transform=ax.transAxes,
                    ha='center', va='center', color='gray', fontsize=12)

        ax.set_xlim(x0, x1)
        ax.set_ylim(y1, y0)
        ax.set_aspect('equal')
        ax.axis('off')
        ax.set_title(title, fontsize=16, fontweight='bold')
        fig.tight_layout()
        return fig, ax

    def save_static(self, scene: Scene, save_path: Path, title: str = "Related Concepts Graph"):
        """Create a static matplotlib image of a scene."""
        fig, _ = self.to_matplotlib(scene, title=title)
        fig.savefig(save_path, dpi=150, bbox_inches='tight')
        plt.close(fig)
        logger.info("Wrote static graph to %s", save_path)
