"""
Interaction controller for the concept graph view.

The controller owns one build/simulate/render cycle at a time. Pointer input
arrives as PointerEvent values dispatched synchronously; each event either
mutates the simulation (drag), the view transform (pan, zoom), the tooltip
(hover), or asks the host to re-root the exploration (click).

A new ``load`` tears down the current cycle first: the in-flight build is
cancelled, the simulation is halted, and the scene is cleared. A generation
counter makes sure that a build finishing after it was superseded is never
drawn.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from catalogue.client import ConceptResolver
from catalogue.schemas import ConceptRecord
from concept_graph.builder import GraphBuilder, DEFAULT_MAX_DEPTH
from concept_graph.graph_data import GraphData
from concept_graph.layout_algorithms import ForceConfig, ForceSimulation, END, TICK

from . import config as style
from .renderer import ConceptGraphRenderer, Scene
from .viewport import Tooltip, ViewAnimation, ViewTransform, Viewport

logger = logging.getLogger(__name__)


class InputEvent(str, Enum):
    """Pointer input understood by the controller."""
    CLICK = "click"
    HOVER_START = "hover-start"
    HOVER_END = "hover-end"
    DRAG_START = "drag-start"
    DRAG_MOVE = "drag-move"
    DRAG_END = "drag-end"
    WHEEL = "wheel"


@dataclass(frozen=True)
class PointerEvent:
    """
    One pointer event in container pixel coordinates.

    ``node_id`` is the node under the pointer, None for the background.
    ``delta`` is the wheel delta (positive scrolls out).
    """
    kind: InputEvent
    x: float = 0.0
    y: float = 0.0
    node_id: Optional[str] = None
    delta: float = 0.0


@dataclass
class _DragState:
    node_id: Optional[str]  # None while panning the background
    last_x: float
    last_y: float


class InteractionController:
    """
    Owns the active graph, its simulation and the view onto it.

    Args:
        resolver: Resolves related-concept stubs during builds
        on_node_click: Called with a node id when the user clicks a node
            other than the selection
        width, height: Measured container size
        max_depth: BFS depth bound for builds
        force_config: Simulation parameters
        renderer: Scene builder
        clock: Monotonic time source, in seconds
        seed: Seed for the simulation's tie-breaking jitter
    """

    def __init__(self,
                 resolver: ConceptResolver,
                 on_node_click: Optional[Callable[[str], None]] = None,
                 width: float = style.DEFAULT_VIEW_WIDTH,
                 height: float = style.DEFAULT_VIEW_HEIGHT,
                 max_depth: int = DEFAULT_MAX_DEPTH,
                 force_config: Optional[ForceConfig] = None,
                 renderer: Optional[ConceptGraphRenderer] = None,
                 clock: Callable[[], float] = time.monotonic,
                 seed: Optional[int] = None):
        self.resolver = resolver
        self.on_node_click = on_node_click
        self.max_depth = max_depth
        self.force_config = force_config or ForceConfig()
        self.renderer = renderer or ConceptGraphRenderer()
        self.clock = clock
        self.seed = seed

        self._container = Viewport.measure(width, height)
        self.viewport = self._container
        self.graph: Optional[GraphData] = None
        self.simulation: Optional[ForceSimulation] = None
        self.selected_id: Optional[str] = None
        self.transform = ViewTransform()
        self.tooltip = Tooltip()
        self.scene = Scene(viewport=self.viewport)
        self.generation = 0
        self.loading = False

        self._build_task: Optional[asyncio.Task] = None
        self._animation: Optional[ViewAnimation] = None
        self._drag: Optional[_DragState] = None
        self._recentred = False
        self._frame_time: Optional[float] = None

    # ------------------------------------------------------------------
    # Cycle lifecycle
    # ------------------------------------------------------------------

    def resize(self, width: float, height: float):
        """Record a new container size; applied at the next load."""
        self._container = Viewport.measure(width, height)

    async def load(self, root: Optional[ConceptRecord],
                   selected_id: Optional[str] = None) -> Optional[GraphData]:
        """
        Start a new cycle for ``root``.

        Args:
            root: Root concept, or None to show nothing
            selected_id: Concept in focus; defaults to the root's id

        Returns:
            The built graph, or None if there was no root or this load was
            superseded before its build finished
        """
        self.teardown()
        self.generation += 1
        generation = self.generation
        self.viewport = self._container
        self.scene = Scene(viewport=self.viewport)

        if root is None:
            self.selected_id = selected_id
            return None
        self.selected_id = selected_id if selected_id is not None else root.id

        builder = GraphBuilder(self.resolver, max_depth=self.max_depth)
        task = asyncio.ensure_future(builder.build(root))
        self._build_task = task
        self.loading = True
        try:
            graph = await task
        except asyncio.CancelledError:
            if generation != self.generation:
                logger.debug("Build for %s abandoned", root.id)
                return None
            raise
        finally:
            if self._build_task is task:
                self._build_task = None
                self.loading = False

        if generation != self.generation:
            logger.debug("Discarding superseded graph for %s", root.id)
            return None

        self._start(graph)
        return graph

    def _start(self, graph: GraphData):
        self.graph = graph
        self.transform = ViewTransform()
        self._recentred = False

        if graph.is_empty:
            logger.info("No related concepts for %s", graph.root_id)
            self.scene = self.renderer.empty_scene(self.viewport)
            return

        simulation = ForceSimulation(graph, config=self.force_config, seed=self.seed)
        simulation.on(END, self._on_settled)
        self.simulation = simulation
        self.scene = self._render()

    def teardown(self):
        """Halt the active cycle and clear everything drawn."""
        if self._build_task is not None and not self._build_task.done():
            self._build_task.cancel()
        self._build_task = None
        self.loading = False

        if self.simulation is not None:
            self.simulation.stop()
            self.simulation.on(TICK, None)
            self.simulation.on(END, None)
        self.simulation = None
        self.graph = None
        self._animation = None
        self._drag = None
        self.tooltip = Tooltip()
        self.scene = Scene(viewport=self.viewport)

    def close(self):
        """Discard the controller's cycle; late build results are ignored."""
        self.teardown()
        self.generation += 1

    # ------------------------------------------------------------------
    # Frames
    # ------------------------------------------------------------------

    def _on_settled(self, simulation: ForceSimulation):
        if simulation is not self.simulation or self._recentred:
            return
        if self.selected_id is None or self.selected_id not in self.graph:
            return
        # View transform only; node coordinates stay where physics left them
        target = self.transform.centred_on(simulation.position(self.selected_id))
        # Same time base as the frame that settled the layout
        started_at = self.clock() if self._frame_time is None else self._frame_time
        self._animation = ViewAnimation(self.transform, target, started_at,
                                        style.RECENTER_DURATION)
        self._recentred = True

    def _render(self) -> Scene:
        if self.graph is None:
            return Scene(viewport=self.viewport)
        if self.simulation is None:
            return self.renderer.empty_scene(self.viewport)
        return self.renderer.render(
            self.graph, self.simulation.positions(), self.viewport,
            selected_id=self.selected_id, transform=self.transform, tooltip=self.tooltip
        )

    def frame(self, now: Optional[float] = None) -> Scene:
        """
        Advance the simulation one tick and the view animation, then redraw.

        Args:
            now: Frame time in seconds; defaults to the controller clock.
                A transition started during this frame uses the same time base.
        """
        now = self.clock() if now is None else now
        if self.simulation is not None:
            self._frame_time = now
            try:
                self.simulation.step()
            finally:
                self._frame_time = None
        if self._animation is not None:
            self.transform = self._animation.value_at(now)
            if self._animation.done(now):
                self._animation = None
        self.scene = self._render()
        return self.scene

    @property
    def animating(self) -> bool:
        return self._animation is not None

    def settle(self, max_ticks: int = 1000) -> Scene:
        """Run frames until the layout is at rest, skipping the view animation."""
        ticks = 0
        while self.simulation is not None and self.simulation.running and ticks < max_ticks:
            self.frame()
            ticks += 1
        if self._animation is not None:
            self.transform = self._animation.end
            self._animation = None
        self.scene = self._render()
        return self.scene

    # ------------------------------------------------------------------
    # Input
    # ------------------------------------------------------------------

    def to_layout(self, px: float, py: float):
        """Container pixel coordinates to layout coordinates."""
        return self.transform.invert(self.viewport.to_view(px, py))

    def set_node_pinned(self, node_id: str, pinned: bool):
        """Persistently pin or free a node; pinned nodes stay put after a drag."""
        if self.simulation is None:
            raise RuntimeError("No active simulation")
        self.simulation.set_pinned(node_id, pinned)

    def dispatch(self, event: PointerEvent) -> bool:
        """
        Apply one pointer event.

        Returns:
            True if the event changed something or reached the host
        """
        handler = {
            InputEvent.CLICK: self._on_click,
            InputEvent.HOVER_START: self._on_hover_start,
            InputEvent.HOVER_END: self._on_hover_end,
            InputEvent.DRAG_START: self._on_drag_start,
            InputEvent.DRAG_MOVE: self._on_drag_move,
            InputEvent.DRAG_END: self._on_drag_end,
            InputEvent.WHEEL: self._on_wheel,
        }[event.kind]
        handled = handler(event)
        if handled:
            self.scene = self._render()
        return handled

    def _on_node(self, event: PointerEvent) -> bool:
        return event.node_id is not None and self.graph is not None and event.node_id in self.graph

    def _on_click(self, event: PointerEvent) -> bool:
        if not self._on_node(event) or event.node_id == self.selected_id:
            return False
        if self.on_node_click is not None:
            self.on_node_click(event.node_id)
        return True

    def _on_hover_start(self, event: PointerEvent) -> bool:
        if not self._on_node(event):
            return False
        node = self.graph.node(event.node_id)
        dx, dy = style.TOOLTIP_OFFSET
        self.tooltip = Tooltip(visible=True, node_id=node.id,
                               text=f"{node.label}\n{node.id}",
                               x=event.x + dx, y=event.y + dy)
        return True

    def _on_hover_end(self, event: PointerEvent) -> bool:
        if not self.tooltip.visible:
            return False
        self.tooltip = Tooltip()
        return True

    def _on_drag_start(self, event: PointerEvent) -> bool:
        if self._on_node(event) and self.simulation is not None:
            # Keep energy up while dragging so neighbours react
            self.simulation.set_alpha_target(self.force_config.drag_alpha_target).restart()
            x, y = self.simulation.position(event.node_id)
            self.simulation.pin(event.node_id, x, y)
            self._drag = _DragState(event.node_id, event.x, event.y)
            return True
        if self.graph is None:
            return False
        self._animation = None
        self._drag = _DragState(None, event.x, event.y)
        return True

    def _on_drag_move(self, event: PointerEvent) -> bool:
        drag = self._drag
        if drag is None:
            return False
        if drag.node_id is not None:
            self.simulation.pin(drag.node_id, *self.to_layout(event.x, event.y))
        else:
            self.transform = self.transform.translate_by(event.x - drag.last_x,
                                                         event.y - drag.last_y)
        drag.last_x, drag.last_y = event.x, event.y
        return True

    def _on_drag_end(self, event: PointerEvent) -> bool:
        drag = self._drag
        if drag is None:
            return False
        self._drag = None
        if drag.node_id is not None and self.simulation is not None:
            self.simulation.set_alpha_target(0.0)
            self.simulation.release(drag.node_id)
        return True

    def _on_wheel(self, event: PointerEvent) -> bool:
        if self.graph is None:
            return False
        self._animation = None
        factor = 2 ** (-event.delta * style.WHEEL_DELTA_FACTOR)
        self.transform = self.transform.scale_about(
            factor, self.viewport.to_view(event.x, event.y), style.ZOOM_SCALE_EXTENT
        )
        return True
