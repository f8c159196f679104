"""Unit tests for graph snapshots and their export."""

import json
import tempfile
import unittest
from pathlib import Path

import networkx as nx

from concept_graph.graph_data import (
    GraphData, GraphEdge, GraphIntegrityError, GraphNode, graph_from_dict
)


def sample_graph():
    nodes = [
        GraphNode('A', 'Alpha', 'Concept', 0, is_root=True),
        GraphNode('B', 'Beta', 'Concept', 1),
        GraphNode('C', 'Gamma', 'Person', 2),
    ]
    edges = [GraphEdge('A', 'B'), GraphEdge('B', 'C'), GraphEdge('C', 'B')]
    return GraphData('A', nodes, edges)


class TestGraphData(unittest.TestCase):
    """Test cases for GraphData invariants and queries."""

    def test_invariants_hold_for_valid_graph(self):
        graph = sample_graph()
        self.assertEqual(len(graph), 3)
        self.assertEqual(graph.root.id, 'A')
        self.assertFalse(graph.is_empty)

    def test_edge_with_missing_endpoint_rejected(self):
        with self.assertRaises(GraphIntegrityError):
            GraphData('A', [GraphNode('A', 'A', 't', 0, True)], [GraphEdge('A', 'Z')])

    def test_duplicate_node_rejected(self):
        with self.assertRaises(GraphIntegrityError):
            GraphData('A', [GraphNode('A', 'A', 't', 0, True), GraphNode('A', 'A', 't', 1)])

    def test_root_must_be_depth_zero(self):
        with self.assertRaises(GraphIntegrityError):
            GraphData('A', [GraphNode('A', 'A', 't', 1, True)])

    def test_second_root_rejected(self):
        with self.assertRaises(GraphIntegrityError):
            GraphData('A', [GraphNode('A', 'A', 't', 0, True), GraphNode('B', 'B', 't', 0, True)])

    def test_nodes_view_is_a_copy(self):
        graph = sample_graph()
        graph.nodes.pop('A')
        self.assertIn('A', graph)

    def test_neighbours_follow_both_directions(self):
        graph = sample_graph()
        self.assertEqual(graph.neighbours('B'), {'A', 'C'})
        self.assertEqual(graph.neighbours('A'), {'B'})
        self.assertEqual(graph.neighbours(None), set())

    def test_metrics(self):
        metrics = sample_graph().compute_graph_metrics()
        self.assertEqual(metrics['num_nodes'], 3)
        self.assertEqual(metrics['num_edges'], 3)
        self.assertEqual(metrics['nodes_per_depth'], {0: 1, 1: 1, 2: 1})
        self.assertTrue(metrics['is_connected'])

    def test_to_networkx(self):
        nx_graph = sample_graph().to_networkx()
        self.assertIsInstance(nx_graph, nx.DiGraph)
        self.assertTrue(nx_graph.has_edge('C', 'B'))
        self.assertEqual(nx_graph.nodes['C']['depth'], 2)

    def test_json_export_round_trip(self):
        graph = sample_graph()
        with tempfile.TemporaryDirectory() as temp_dir:
            path = Path(temp_dir) / 'graph.json'
            graph.export(path, format='json')
            with open(path) as f:
                loaded = graph_from_dict(json.load(f))

        self.assertEqual(loaded.nodes, graph.nodes)
        self.assertEqual(loaded.edges, graph.edges)

    def test_graphml_export(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            path = Path(temp_dir) / 'graph.graphml'
            sample_graph().export(path, format='graphml')
            loaded = nx.read_graphml(path)
        self.assertEqual(set(loaded.nodes), {'A', 'B', 'C'})

    def test_unknown_export_format(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            with self.assertRaises(ValueError):
                sample_graph().export(Path(temp_dir) / 'graph.bin', format='bin')


if __name__ == '__main__':
    unittest.main()
