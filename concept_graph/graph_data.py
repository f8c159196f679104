"""
Concept graph snapshot produced by one exploration build.

A GraphData is created once per root concept and is not modified after the
builder returns it. Node positions are deliberately absent: they belong to
the force simulation running over the snapshot, not to the snapshot itself.
"""

import json
import networkx as nx
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Set, Tuple

EXPORT_FORMATS = ('json', 'graphml', 'gexf')


class GraphIntegrityError(ValueError):
    """A graph snapshot violates one of its structural invariants."""


@dataclass(frozen=True)
class GraphNode:
    """A concept placed in the graph at its first-discovery depth."""
    id: str
    label: str
    type: str
    depth: int
    is_root: bool = False


@dataclass(frozen=True)
class GraphEdge:
    """Edge stored as discoverer -> discovered; undirected for display."""
    source: str
    target: str

    def touches(self, node_id: str) -> bool:
        return self.source == node_id or self.target == node_id


class GraphData:
    """
    Immutable node/edge snapshot of one exploration.

    Invariants checked on construction:
    - every edge endpoint is a node
    - exactly one node is the root, it has depth 0 and id ``root_id``
    - depths are non-negative
    """

    def __init__(self, root_id: str, nodes: Iterable[GraphNode],
                 edges: Iterable[GraphEdge] = ()):
        self.root_id = root_id
        self._nodes: Dict[str, GraphNode] = {}
        for node in nodes:
            if node.id in self._nodes:
                raise GraphIntegrityError(f"Duplicate node id {node.id!r}")
            self._nodes[node.id] = node
        self._edges: Tuple[GraphEdge, ...] = tuple(edges)
        self._validate()

    def _validate(self):
        root = self._nodes.get(self.root_id)
        if root is None:
            raise GraphIntegrityError(f"Root {self.root_id!r} is not a node")
        if not root.is_root or root.depth != 0:
            raise GraphIntegrityError("Root node must have depth 0 and is_root set")

        for node in self._nodes.values():
            if node.depth < 0:
                raise GraphIntegrityError(f"Node {node.id!r} has negative depth")
            if node.is_root and node.id != self.root_id:
                raise GraphIntegrityError(f"Node {node.id!r} is a second root")

        for edge in self._edges:
            if edge.source not in self._nodes or edge.target not in self._nodes:
                raise GraphIntegrityError(
                    f"Edge {edge.source!r} -> {edge.target!r} has a missing endpoint"
                )

    @property
    def nodes(self) -> Dict[str, GraphNode]:
        # Copy so callers cannot mutate the snapshot
        return dict(self._nodes)

    @property
    def edges(self) -> Tuple[GraphEdge, ...]:
        return self._edges

    @property
    def root(self) -> GraphNode:
        return self._nodes[self.root_id]

    @property
    def is_empty(self) -> bool:
        """True when the build found nothing beyond the root."""
        return len(self._nodes) <= 1 and not self._edges

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    def node(self, node_id: str) -> GraphNode:
        return self._nodes[node_id]

    def node_ids(self) -> FrozenSet[str]:
        return frozenset(self._nodes)

    def edge_set(self) -> Set[Tuple[str, str]]:
        return {(edge.source, edge.target) for edge in self._edges}

    def neighbours(self, node_id: Optional[str]) -> Set[str]:
        """First-order neighbours of ``node_id``, following edges either way."""
        if node_id is None:
            return set()
        found = set()
        for edge in self._edges:
            if edge.source == node_id and edge.target != node_id:
                found.add(edge.target)
            elif edge.target == node_id and edge.source != node_id:
                found.add(edge.source)
        return found

    def to_networkx(self) -> nx.DiGraph:
        """Directed networkx view with node attributes."""
        graph = nx.DiGraph(root=self.root_id)
        for node in self._nodes.values():
            graph.add_node(node.id, label=node.label, type=node.type,
                           depth=node.depth, is_root=node.is_root)
        graph.add_edges_from(self.edge_set())
        return graph

    def compute_graph_metrics(self) -> Dict[str, Any]:
        """Summary statistics of the snapshot."""
        undirected = self.to_networkx().to_undirected()
        depth_counts: Dict[int, int] = {}
        for node in self._nodes.values():
            depth_counts[node.depth] = depth_counts.get(node.depth, 0) + 1

        return {
            'num_nodes': len(self._nodes),
            'num_edges': len(self._edges),
            'nodes_per_depth': dict(sorted(depth_counts.items())),
            'is_connected': nx.is_connected(undirected) if len(undirected) else False,
            'average_degree': (
                sum(d for _, d in undirected.degree()) / len(undirected)
                if len(undirected) else 0.0
            ),
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            'root': self.root_id,
            'nodes': [
                {'id': n.id, 'label': n.label, 'type': n.type,
                 'depth': n.depth, 'isRoot': n.is_root}
                for n in self._nodes.values()
            ],
            'edges': [{'source': e.source, 'target': e.target} for e in self._edges],
        }

    def export(self, filepath: Path, format: str = 'json'):
        """Export graph to file ('json', 'graphml' or 'gexf')."""
        filepath = Path(filepath)

        if format == 'json':
            with open(filepath, 'w') as f:
                json.dump(self.to_dict(), f, indent=2)
        elif format == 'graphml':
            nx.write_graphml(self.to_networkx(), filepath)
        elif format == 'gexf':
            nx.write_gexf(self.to_networkx(), filepath)
        else:
            raise ValueError(f"Unknown export format: {format}")

    def __repr__(self) -> str:
        return (f"GraphData(root={self.root_id!r}, nodes={len(self._nodes)}, "
                f"edges={len(self._edges)})")


def graph_from_dict(data: Dict[str, Any]) -> GraphData:
    """Rebuild a snapshot from ``GraphData.to_dict`` output."""
    nodes: List[GraphNode] = [
        GraphNode(id=n['id'], label=n['label'], type=n['type'],
                  depth=n['depth'], is_root=n.get('isRoot', False))
        for n in data['nodes']
    ]
    edges = [GraphEdge(e['source'], e['target']) for e in data['edges']]
    return GraphData(data['root'], nodes, edges)
