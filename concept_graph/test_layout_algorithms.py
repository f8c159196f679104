"""
Unit tests for the force-directed layout simulation.

Covers convergence, the force geometry, and the drag/pin mutation surface.
"""

import math
import unittest

import numpy as np

from concept_graph.graph_data import GraphData, GraphEdge, GraphNode
from concept_graph.layout_algorithms import (
    ForceConfig, ForceSimulation, collision_radius, compute_layout,
    estimate_text_width, END, TICK
)


def star_graph(n_leaves=6):
    nodes = [GraphNode('root', 'Root concept', 'Concept', 0, is_root=True)]
    edges = []
    for i in range(n_leaves):
        nodes.append(GraphNode(f'leaf{i}', f'Leaf {i}', 'Concept', 1))
        edges.append(GraphEdge('root', f'leaf{i}'))
    nodes.append(GraphNode('deep', 'Deep', 'Concept', 2))
    edges.append(GraphEdge('leaf0', 'deep'))
    return GraphData('root', nodes, edges)


class TestFootprint(unittest.TestCase):
    """Test cases for label width and collision radius estimates."""

    def test_text_width_has_minimum(self):
        self.assertEqual(estimate_text_width('abc'), 30.0)
        self.assertEqual(estimate_text_width('a' * 10), 70.0)

    def test_collision_radius_by_role(self):
        root = GraphNode('A', 'A', 't', 0, is_root=True)
        child = GraphNode('B', 'B', 't', 1)
        deep = GraphNode('C', 'C' * 10, 't', 2)

        self.assertAlmostEqual(collision_radius(root), math.sqrt(64 + 900 / 16) + 8)
        self.assertAlmostEqual(collision_radius(child), math.sqrt(36 + 900 / 16) + 8)
        self.assertAlmostEqual(collision_radius(deep), math.sqrt(16 + 4900 / 16) + 8)


class TestForceSimulation(unittest.TestCase):
    """Test cases for ForceSimulation."""

    def setUp(self):
        self.graph = star_graph()
        self.simulation = ForceSimulation(self.graph, seed=7)

    def test_default_alpha_decay(self):
        config = ForceConfig()
        self.assertAlmostEqual(config.alpha_decay, 1 - 0.001 ** (1 / 300))

    def test_settles_and_stops(self):
        ticks = self.simulation.run_until_settled(max_ticks=1000)

        self.assertLess(ticks, 1000)
        self.assertTrue(290 <= ticks <= 310)
        self.assertFalse(self.simulation.running)
        self.assertLess(self.simulation.alpha, self.simulation.config.alpha_min)

    def test_end_fires_once(self):
        ended = []
        ticked = []
        self.simulation.on(END, ended.append)
        self.simulation.on(TICK, ticked.append)
        ticks = self.simulation.run_until_settled()
        # Further steps are no-ops once stopped
        self.assertFalse(self.simulation.step())

        self.assertEqual(len(ended), 1)
        self.assertEqual(len(ticked), ticks)

    def test_listeners_can_be_cleared(self):
        ended = []
        self.simulation.on(END, ended.append)
        self.simulation.on(END, None)
        self.simulation.run_until_settled()
        self.assertEqual(ended, [])

    def test_unknown_event_rejected(self):
        with self.assertRaises(ValueError):
            self.simulation.on('zoom', print)

    def test_layout_is_centred(self):
        self.simulation.run_until_settled()
        positions = np.array(list(self.simulation.positions().values()))
        centroid = positions.mean(axis=0)
        self.assertLess(abs(centroid[0]), 1.0)
        self.assertLess(abs(centroid[1]), 1.0)

    def test_nodes_do_not_collapse(self):
        self.simulation.run_until_settled()
        positions = np.array(list(self.simulation.positions().values()))
        diffs = positions[:, np.newaxis, :] - positions[np.newaxis, :, :]
        distances = np.sqrt((diffs ** 2).sum(axis=-1))
        off_diagonal = distances[~np.eye(len(positions), dtype=bool)]
        self.assertGreater(off_diagonal.min(), 10.0)

    def test_linked_pair_stays_near_link_distance(self):
        nodes = [GraphNode('A', 'A', 't', 0, True), GraphNode('B', 'B', 't', 1)]
        graph = GraphData('A', nodes, [GraphEdge('A', 'B')])
        positions = compute_layout(graph, seed=1)

        distance = math.dist(positions['A'], positions['B'])
        self.assertGreater(distance, 40)
        self.assertLess(distance, 200)

    def test_positions_are_finite(self):
        self.simulation.run_until_settled()
        for x, y in self.simulation.positions().values():
            self.assertTrue(math.isfinite(x) and math.isfinite(y))

    def test_same_seed_same_layout(self):
        other = ForceSimulation(self.graph, seed=7)
        self.simulation.run_until_settled()
        other.run_until_settled()
        for node_id, (x, y) in self.simulation.positions().items():
            ox, oy = other.position(node_id)
            self.assertAlmostEqual(x, ox)
            self.assertAlmostEqual(y, oy)

    def test_single_node_graph(self):
        graph = GraphData('A', [GraphNode('A', 'A', 't', 0, True)])
        simulation = ForceSimulation(graph)
        simulation.run_until_settled()
        self.assertFalse(simulation.running)
        self.assertEqual(simulation.position('A'), (0.0, 0.0))

    def test_self_loop_is_simulated(self):
        nodes = [GraphNode('A', 'A', 't', 0, True), GraphNode('B', 'B', 't', 1)]
        graph = GraphData('A', nodes, [GraphEdge('A', 'A'), GraphEdge('A', 'B')])
        simulation = ForceSimulation(graph, seed=2)

        self.assertEqual(len(simulation._sources), len(graph.edges))
        simulation.run_until_settled()
        self.assertFalse(simulation.running)
        for x, y in simulation.positions().values():
            self.assertTrue(math.isfinite(x) and math.isfinite(y))

    def test_pinned_node_stays_put(self):
        self.simulation.pin('leaf1', 100.0, 50.0)
        self.simulation.tick(20)

        self.assertEqual(self.simulation.position('leaf1'), (100.0, 50.0))
        self.assertTrue(self.simulation.is_fixed('leaf1'))
        i = self.simulation.index['leaf1']
        self.assertEqual(self.simulation.vx[i], 0.0)

    def test_release_returns_node_to_physics(self):
        self.simulation.pin('leaf1', 300.0, 300.0)
        self.simulation.tick(5)
        self.assertTrue(self.simulation.release('leaf1'))
        self.assertFalse(self.simulation.is_fixed('leaf1'))

        self.simulation.tick(50)
        self.assertNotEqual(self.simulation.position('leaf1'), (300.0, 300.0))

    def test_persistent_pin_survives_release(self):
        self.simulation.pin('leaf2', -40.0, 25.0)
        self.simulation.set_pinned('leaf2', True)

        self.assertFalse(self.simulation.release('leaf2'))
        self.simulation.tick(10)
        self.assertEqual(self.simulation.position('leaf2'), (-40.0, 25.0))
        self.assertTrue(self.simulation.is_pinned('leaf2'))

        self.simulation.set_pinned('leaf2', False)
        self.assertFalse(self.simulation.is_fixed('leaf2'))
        self.assertFalse(self.simulation.is_pinned('leaf2'))

    def test_set_pinned_fixes_current_position(self):
        self.simulation.tick(10)
        before = self.simulation.position('deep')
        self.simulation.set_pinned('deep', True)
        self.simulation.tick(10)
        self.assertEqual(self.simulation.position('deep'), before)

    def test_alpha_target_keeps_simulation_warm(self):
        self.simulation.set_alpha_target(0.3)
        ticks = self.simulation.run_until_settled(max_ticks=500)

        self.assertEqual(ticks, 500)
        self.assertTrue(self.simulation.running)
        self.assertAlmostEqual(self.simulation.alpha, 0.3, places=2)

    def test_restart_after_settling(self):
        self.simulation.run_until_settled()
        self.simulation.set_alpha_target(0.3).restart()
        self.assertTrue(self.simulation.step())
        self.assertGreater(self.simulation.alpha, self.simulation.config.alpha_min)

    def test_stop_freezes_positions(self):
        self.simulation.tick(5)
        self.simulation.stop()
        before = self.simulation.positions()
        self.assertFalse(self.simulation.step())
        self.assertEqual(self.simulation.positions(), before)

    def test_unknown_node(self):
        with self.assertRaises(KeyError):
            self.simulation.pin('nope', 0.0, 0.0)

    def test_kinetic_energy_decays(self):
        self.simulation.tick(10)
        early = self.simulation.kinetic_energy()
        self.simulation.run_until_settled()
        self.assertLess(self.simulation.kinetic_energy(), early)


if __name__ == '__main__':
    unittest.main()
