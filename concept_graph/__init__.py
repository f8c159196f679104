"""Graph construction and force-directed layout for concept exploration."""

from .graph_data import GraphData, GraphNode, GraphEdge, GraphIntegrityError, EXPORT_FORMATS
from .builder import GraphBuilder, build_concept_graph, DEFAULT_MAX_DEPTH
from .layout_algorithms import ForceConfig, ForceSimulation, compute_layout

__all__ = [
    'GraphData', 'GraphNode', 'GraphEdge', 'GraphIntegrityError', 'EXPORT_FORMATS',
    'GraphBuilder', 'build_concept_graph', 'DEFAULT_MAX_DEPTH',
    'ForceConfig', 'ForceSimulation', 'compute_layout'
]
