"""
Force-directed layout for concept graphs.

This module implements an iterative force simulation in the style of
d3-force: every tick cools a global ``alpha`` towards ``alpha_target``,
accumulates velocity from a set of forces, then integrates positions.
Nodes live in an arena of numpy arrays indexed by position in
``ForceSimulation.node_ids``; the arena belongs to one simulation and is
discarded with it.

Forces, applied in this order each tick:
- link: springs pulling edge endpoints towards ``link_distance``
- charge: pairwise repulsion between all nodes
- center: shifts the centroid onto ``center``
- collision: keeps node footprints (circle plus label) from overlapping
"""

import math
import logging
import numpy as np
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from scipy.spatial import cKDTree

from .graph_data import GraphData, GraphNode

logger = logging.getLogger(__name__)

TICK = 'tick'
END = 'end'

# Phyllotaxis seeding, as used by d3-force
INITIAL_RADIUS = 10.0
INITIAL_ANGLE = math.pi * (3 - math.sqrt(5))


def estimate_text_width(label: str) -> float:
    """Approximate rendered label width: 7 units per character, at least 30."""
    return max(30.0, 7.0 * len(label))


def base_radius(node: GraphNode) -> float:
    """Circle radius by role: root 8, depth-1 6, deeper 4."""
    if node.is_root:
        return 8.0
    if node.depth == 1:
        return 6.0
    return 4.0


def collision_radius(node: GraphNode) -> float:
    """Effective footprint radius covering the circle and its label."""
    base = base_radius(node)
    text_width = estimate_text_width(node.label)
    return math.sqrt(base * base + (text_width * text_width) / 16) + 8


@dataclass
class ForceConfig:
    """Parameters of the force simulation."""
    link_distance: float = 80.0
    charge_strength: float = -150.0
    charge_distance_min: float = 1.0
    center_x: float = 0.0
    center_y: float = 0.0
    collision_strength: float = 1.0
    alpha: float = 1.0
    alpha_min: float = 0.001
    alpha_decay: Optional[float] = None  # 1 - alpha_min ** (1 / 300) when unset
    alpha_target: float = 0.0
    velocity_decay: float = 0.4
    drag_alpha_target: float = 0.3  # energy held while the user drags a node

    def __post_init__(self):
        if self.alpha_decay is None:
            self.alpha_decay = 1 - self.alpha_min ** (1 / 300)
        if not 0 < self.alpha_min < 1:
            raise ValueError(f"alpha_min must be in (0, 1), got {self.alpha_min}")
        if not 0 <= self.velocity_decay <= 1:
            raise ValueError(f"velocity_decay must be in [0, 1], got {self.velocity_decay}")


class ForceSimulation:
    """
    One simulation run over a GraphData snapshot.

    The simulation starts running on creation. Drive it with ``step`` (one
    tick plus events, what an animation loop calls) or ``run_until_settled``.
    ``stop`` halts it for good unless ``restart`` is called.
    """

    def __init__(self, graph: GraphData, config: Optional[ForceConfig] = None,
                 seed: Optional[int] = None):
        self.graph = graph
        self.config = config or ForceConfig()
        self._rng = np.random.default_rng(seed)

        self.node_ids: List[str] = list(graph.nodes)
        self.index: Dict[str, int] = {nid: i for i, nid in enumerate(self.node_ids)}
        n_nodes = len(self.node_ids)

        # Arena
        i = np.arange(n_nodes)
        radius = INITIAL_RADIUS * np.sqrt(0.5 + i)
        angle = i * INITIAL_ANGLE
        self.x = radius * np.cos(angle)
        self.y = radius * np.sin(angle)
        self.vx = np.zeros(n_nodes)
        self.vy = np.zeros(n_nodes)
        self.fx = np.full(n_nodes, np.nan)
        self.fy = np.full(n_nodes, np.nan)
        self.pinned = np.zeros(n_nodes, dtype=bool)
        self.radii = np.array(
            [collision_radius(graph.node(nid)) for nid in self.node_ids], dtype=float
        )

        # Links: strength 1/min(degree), bias towards the lower-degree end
        pairs = [(self.index[e.source], self.index[e.target]) for e in graph.edges]
        self._sources = np.array([s for s, _ in pairs], dtype=int)
        self._targets = np.array([t for _, t in pairs], dtype=int)
        count = np.bincount(
            np.concatenate([self._sources, self._targets]), minlength=n_nodes
        ).astype(float)
        if pairs:
            self._link_strength = 1.0 / np.minimum(count[self._sources], count[self._targets])
            self._link_bias = count[self._sources] / (count[self._sources] + count[self._targets])
        else:
            self._link_strength = np.zeros(0)
            self._link_bias = np.zeros(0)

        self.alpha = self.config.alpha
        self.alpha_target = self.config.alpha_target
        self._listeners: Dict[str, List[Callable[['ForceSimulation'], None]]] = {
            TICK: [], END: []
        }
        self._running = True
        self.tick_count = 0

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def running(self) -> bool:
        return self._running

    @property
    def settled(self) -> bool:
        return self.alpha < self.config.alpha_min

    def restart(self) -> 'ForceSimulation':
        self._running = True
        return self

    def stop(self) -> 'ForceSimulation':
        self._running = False
        return self

    def on(self, event: str, callback: Optional[Callable[['ForceSimulation'], None]]):
        """Register a listener for 'tick' or 'end'; None clears the event."""
        if event not in self._listeners:
            raise ValueError(f"Unknown simulation event: {event}")
        if callback is None:
            self._listeners[event].clear()
        else:
            self._listeners[event].append(callback)
        return self

    def _emit(self, event: str):
        for callback in list(self._listeners[event]):
            callback(self)

    def set_alpha_target(self, value: float) -> 'ForceSimulation':
        self.alpha_target = value
        return self

    def reheat(self, alpha: float = 1.0) -> 'ForceSimulation':
        self.alpha = alpha
        return self.restart()

    def step(self) -> bool:
        """
        Advance one tick if running.

        Fires 'tick' after the tick and 'end' when alpha drops below
        ``alpha_min``, at which point the simulation stops itself.

        Returns:
            True if a tick was performed
        """
        if not self._running:
            return False

        self.tick()
        self._emit(TICK)

        if self.settled:
            self._running = False
            logger.debug("Simulation settled after %d ticks", self.tick_count)
            self._emit(END)
        return True

    def run_until_settled(self, max_ticks: int = 1000) -> int:
        """Step until the simulation stops or ``max_ticks`` is reached."""
        ticks = 0
        while ticks < max_ticks and self.step():
            ticks += 1
        return ticks

    # ------------------------------------------------------------------
    # Integration
    # ------------------------------------------------------------------

    def tick(self, iterations: int = 1):
        """Advance the physics without firing events."""
        cfg = self.config
        for _ in range(iterations):
            self.alpha += (self.alpha_target - self.alpha) * cfg.alpha_decay

            self._apply_link_force()
            self._apply_charge_force()
            self._apply_center_force()
            self._apply_collision_force()

            fixed_x = ~np.isnan(self.fx)
            fixed_y = ~np.isnan(self.fy)

            self.vx *= 1 - cfg.velocity_decay
            self.vy *= 1 - cfg.velocity_decay
            self.x += self.vx
            self.y += self.vy

            self.x[fixed_x] = self.fx[fixed_x]
            self.vx[fixed_x] = 0.0
            self.y[fixed_y] = self.fy[fixed_y]
            self.vy[fixed_y] = 0.0

            self.tick_count += 1

    def _jiggle(self, shape) -> np.ndarray:
        return (self._rng.random(shape) - 0.5) * 1e-6

    def _apply_link_force(self):
        if len(self._sources) == 0:
            return
        s, t = self._sources, self._targets

        dx = self.x[t] + self.vx[t] - self.x[s] - self.vx[s]
        dy = self.y[t] + self.vy[t] - self.y[s] - self.vy[s]
        zero = (dx == 0) & (dy == 0)
        if zero.any():
            dx[zero] = self._jiggle(zero.sum())
            dy[zero] = self._jiggle(zero.sum())

        length = np.hypot(dx, dy)
        scale = (length - self.config.link_distance) / length * self.alpha * self._link_strength
        dx *= scale
        dy *= scale

        b = self._link_bias
        np.subtract.at(self.vx, t, dx * b)
        np.subtract.at(self.vy, t, dy * b)
        np.add.at(self.vx, s, dx * (1 - b))
        np.add.at(self.vy, s, dy * (1 - b))

    def _apply_charge_force(self):
        n_nodes = len(self.x)
        if n_nodes < 2:
            return

        # dx[i, j] points from node i to node j
        dx = self.x[np.newaxis, :] - self.x[:, np.newaxis]
        dy = self.y[np.newaxis, :] - self.y[:, np.newaxis]
        off_diagonal = ~np.eye(n_nodes, dtype=bool)

        coincident = off_diagonal & (dx == 0) & (dy == 0)
        if coincident.any():
            dx[coincident] = self._jiggle(coincident.sum())
            dy[coincident] = self._jiggle(coincident.sum())

        dist2 = dx * dx + dy * dy
        min2 = self.config.charge_distance_min ** 2
        close = off_diagonal & (dist2 < min2)
        dist2[close] = np.sqrt(min2 * dist2[close])
        dist2[~off_diagonal] = 1.0

        weight = np.where(off_diagonal, self.config.charge_strength * self.alpha / dist2, 0.0)
        self.vx += (dx * weight).sum(axis=1)
        self.vy += (dy * weight).sum(axis=1)

    def _apply_center_force(self):
        if len(self.x) == 0:
            return
        self.x -= self.x.mean() - self.config.center_x
        self.y -= self.y.mean() - self.config.center_y

    def _apply_collision_force(self):
        n_nodes = len(self.x)
        if n_nodes < 2:
            return

        px = self.x + self.vx
        py = self.y + self.vy
        tree = cKDTree(np.column_stack([px, py]))
        pairs = tree.query_pairs(r=2 * self.radii.max(), output_type='ndarray')
        if len(pairs) == 0:
            return
        i, j = pairs[:, 0], pairs[:, 1]

        dx = px[i] - px[j]
        dy = py[i] - py[j]
        reach = self.radii[i] + self.radii[j]
        dist2 = dx * dx + dy * dy
        overlap = dist2 < reach * reach
        if not overlap.any():
            return
        i, j, dx, dy, reach, dist2 = (
            i[overlap], j[overlap], dx[overlap], dy[overlap], reach[overlap], dist2[overlap]
        )

        zero = dist2 == 0
        if zero.any():
            dx[zero] = self._jiggle(zero.sum())
            dy[zero] = self._jiggle(zero.sum())
            dist2 = dx * dx + dy * dy

        dist = np.sqrt(dist2)
        push = (reach - dist) / dist * self.config.collision_strength
        dx *= push
        dy *= push

        ri2 = self.radii[i] ** 2
        rj2 = self.radii[j] ** 2
        share = rj2 / (ri2 + rj2)
        np.add.at(self.vx, i, dx * share)
        np.add.at(self.vy, i, dy * share)
        np.subtract.at(self.vx, j, dx * (1 - share))
        np.subtract.at(self.vy, j, dy * (1 - share))

    # ------------------------------------------------------------------
    # Mutation surface
    # ------------------------------------------------------------------

    def _idx(self, node_id: str) -> int:
        try:
            return self.index[node_id]
        except KeyError:
            raise KeyError(f"Node {node_id!r} is not in this simulation") from None

    def pin(self, node_id: str, x: float, y: float):
        """Hold a node at (x, y); forces no longer move it."""
        i = self._idx(node_id)
        self.fx[i] = x
        self.fy[i] = y

    def release(self, node_id: str) -> bool:
        """
        Return a node to physics control unless it is persistently pinned.

        Returns:
            True if the node was released
        """
        i = self._idx(node_id)
        if self.pinned[i]:
            return False
        self.fx[i] = np.nan
        self.fy[i] = np.nan
        return True

    def set_pinned(self, node_id: str, pinned: bool):
        """
        Mark a node as persistently pinned (survives ``release``).

        Pinning without an active pin fixes the node where it currently is;
        unpinning frees it immediately.
        """
        i = self._idx(node_id)
        self.pinned[i] = pinned
        if pinned:
            if np.isnan(self.fx[i]):
                self.fx[i] = self.x[i]
                self.fy[i] = self.y[i]
        else:
            self.fx[i] = np.nan
            self.fy[i] = np.nan

    def is_pinned(self, node_id: str) -> bool:
        return bool(self.pinned[self._idx(node_id)])

    def is_fixed(self, node_id: str) -> bool:
        """True while the node has a pinned-position override."""
        return not np.isnan(self.fx[self._idx(node_id)])

    def position(self, node_id: str) -> Tuple[float, float]:
        i = self._idx(node_id)
        return float(self.x[i]), float(self.y[i])

    def positions(self) -> Dict[str, Tuple[float, float]]:
        return {nid: (float(self.x[i]), float(self.y[i]))
                for i, nid in enumerate(self.node_ids)}

    def kinetic_energy(self) -> float:
        return float(0.5 * np.sum(self.vx ** 2 + self.vy ** 2))


def compute_layout(graph: GraphData, config: Optional[ForceConfig] = None,
                   seed: Optional[int] = None,
                   max_ticks: int = 1000) -> Dict[str, Tuple[float, float]]:
    """
    Run a simulation to rest and return its final positions.

    Args:
        graph: Graph snapshot to lay out
        config: Force parameters
        seed: Seed for the tie-breaking jitter
        max_ticks: Upper bound on ticks

    Returns:
        Dictionary mapping node ids to (x, y) positions
    """
    simulation = ForceSimulation(graph, config=config, seed=seed)
    simulation.run_until_settled(max_ticks=max_ticks)
    simulation.stop()
    return simulation.positions()
