"""
Drawing surface geometry and pure view transforms.

Node coordinates live in layout space, centred on the origin. The drawing
surface uses a view box of ``[-w/2, -h/2, w, h]`` so layout space and view
space coincide until the user zooms or pans; a ViewTransform then maps
layout points into view space without touching the layout itself.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

from .config import MIN_VIEW_HEIGHT, ZOOM_SCALE_EXTENT

Point = Tuple[float, float]


@dataclass(frozen=True)
class Viewport:
    """Measured size of the container the graph is drawn into."""
    width: float
    height: float

    def __post_init__(self):
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"Viewport must have a positive size, got {self.width}x{self.height}")

    @classmethod
    def measure(cls, width: float, height: float) -> 'Viewport':
        """Viewport for a container, enforcing the minimum height."""
        return cls(float(width), max(float(height), MIN_VIEW_HEIGHT))

    @property
    def view_box(self) -> Tuple[float, float, float, float]:
        return (-self.width / 2, -self.height / 2, self.width, self.height)

    def to_view(self, px: float, py: float) -> Point:
        """Container pixel coordinates to view coordinates."""
        return px - self.width / 2, py - self.height / 2


@dataclass(frozen=True)
class ViewTransform:
    """Zoom ``k`` followed by translation (x, y), as d3-zoom models it."""
    k: float = 1.0
    x: float = 0.0
    y: float = 0.0

    def apply(self, point: Point) -> Point:
        return point[0] * self.k + self.x, point[1] * self.k + self.y

    def invert(self, point: Point) -> Point:
        return (point[0] - self.x) / self.k, (point[1] - self.y) / self.k

    def translate_by(self, dx: float, dy: float) -> 'ViewTransform':
        return ViewTransform(self.k, self.x + dx, self.y + dy)

    def scale_about(self, factor: float, anchor: Point,
                    extent: Tuple[float, float] = ZOOM_SCALE_EXTENT) -> 'ViewTransform':
        """Zoom by ``factor`` keeping the view point ``anchor`` fixed."""
        k = min(max(self.k * factor, extent[0]), extent[1])
        layout_x, layout_y = self.invert(anchor)
        return ViewTransform(k, anchor[0] - layout_x * k, anchor[1] - layout_y * k)

    def centred_on(self, point: Point) -> 'ViewTransform':
        """Same zoom, translated so ``point`` maps onto the origin."""
        return ViewTransform(self.k, -point[0] * self.k, -point[1] * self.k)

    def interpolate(self, other: 'ViewTransform', t: float) -> 'ViewTransform':
        return ViewTransform(
            self.k + (other.k - self.k) * t,
            self.x + (other.x - self.x) * t,
            self.y + (other.y - self.y) * t,
        )


def ease_cubic_in_out(t: float) -> float:
    t *= 2
    if t <= 1:
        return t * t * t / 2
    t -= 2
    return (t * t * t + 2) / 2


class ViewAnimation:
    """Timed transition between two view transforms."""

    def __init__(self, start: ViewTransform, end: ViewTransform,
                 started_at: float, duration: float):
        self.start = start
        self.end = end
        self.started_at = started_at
        self.duration = duration

    def progress(self, now: float) -> float:
        if self.duration <= 0:
            return 1.0
        return min(max((now - self.started_at) / self.duration, 0.0), 1.0)

    def value_at(self, now: float) -> ViewTransform:
        t = self.progress(now)
        if t >= 1.0:
            return self.end
        return self.start.interpolate(self.end, ease_cubic_in_out(t))

    def done(self, now: float) -> bool:
        return self.progress(now) >= 1.0


@dataclass(frozen=True)
class Tooltip:
    """Floating hover label, positioned in container pixels."""
    visible: bool = False
    node_id: Optional[str] = None
    text: str = ''
    x: float = 0.0
    y: float = 0.0
