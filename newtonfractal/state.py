"""Interactive explorer state and its navigation updates."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Optional

from .mapping import FrameSize, Viewport, canvas_to_complex, complex_to_pixel
from .pipeline import RenderParameters
from .polynomial import RootSet

DEFAULT_ITERATIONS = 20
ZOOM_RATIO = 0.95
ZOOM_SHIFT = 0.025
PAN_STEP = 0.01
MARKER_SIZE = 10.0
MARKER_REACH = 5.0


def clamp_decrement(count: int) -> int:
    """Decrease ``count`` by one without going below zero."""

    return max(int(count) - 1, 0)


@dataclass(frozen=True)
class ExplorerState:
    """Roots, viewport and iteration count owned by the presentation layer.

    Every update returns a new state; the render pipeline only ever reads one.
    """

    size: FrameSize
    roots: RootSet = field(default_factory=RootSet.default)
    viewport: Viewport = field(default_factory=Viewport.default)
    iterations: int = DEFAULT_ITERATIONS

    def __post_init__(self) -> None:
        if int(self.iterations) < 0:
            raise ValueError(f"iterations must be non-negative, got {self.iterations}")

    @classmethod
    def default(cls, size: Optional[FrameSize] = None) -> "ExplorerState":
        return cls(size=size if size is not None else FrameSize(1024, 768))

    def to_parameters(self) -> RenderParameters:
        return RenderParameters(
            roots=self.roots,
            viewport=self.viewport,
            size=self.size,
            iterations=self.iterations,
        )

    @property
    def unit_height(self) -> float:
        return self.viewport.unit_height(self.size.width, self.size.height)

    def reset(self) -> "ExplorerState":
        return ExplorerState.default(self.size)

    def increase_iterations(self) -> "ExplorerState":
        return replace(self, iterations=self.iterations + 1)

    def decrease_iterations(self) -> "ExplorerState":
        return replace(self, iterations=clamp_decrement(self.iterations))

    def move_root(self, index: int, x: float, y: float) -> "ExplorerState":
        """Place root ``index`` under canvas position ``(x, y)``."""

        value = canvas_to_complex(x, y, self.viewport, self.size.width, self.size.height)
        return replace(self, roots=self.roots.replace_root(index, value))

    def pan_pixels(self, dx: float, dy: float) -> "ExplorerState":
        """Drag the view by a canvas displacement."""

        viewport = self.viewport
        left = viewport.left - dx * viewport.unit_width / self.size.width
        top = viewport.top + dy * self.unit_height / self.size.height
        return replace(self, viewport=replace(viewport, left=left, top=top))

    def pan_step(self, horizontal: int = 0, vertical: int = 0) -> "ExplorerState":
        """Keyboard pan; both axes move by a fraction of the view width."""

        viewport = self.viewport
        left = viewport.left + horizontal * viewport.unit_width * PAN_STEP
        top = viewport.top + vertical * viewport.unit_width * PAN_STEP
        return replace(self, viewport=replace(viewport, left=left, top=top))

    def zoom(self, steps: float) -> "ExplorerState":
        """Zoom in for positive ``steps`` and out for negative ones."""

        if steps == 0:
            return self
        viewport = self.viewport
        top = viewport.top - self.unit_height * steps * ZOOM_SHIFT
        left = viewport.left + viewport.unit_width * steps * ZOOM_SHIFT
        unit_width = viewport.unit_width * ZOOM_RATIO ** steps
        return replace(self, viewport=Viewport(left=left, top=top, unit_width=unit_width))

    def root_markers(self) -> list[tuple[float, float, float, float]]:
        """``(x, y, width, height)`` boxes centred on each root."""

        markers = []
        for root in self.roots:
            px, py = complex_to_pixel(root, self.viewport, self.size.width, self.size.height)
            half = MARKER_SIZE / 2.0
            markers.append((px - half, py - half, MARKER_SIZE, MARKER_SIZE))
        return markers

    def hit_test(self, x: float, y: float) -> Optional[int]:
        """Index of the first root whose marker is under ``(x, y)``."""

        for index, (left, top, width, height) in enumerate(self.root_markers()):
            center_x = left + width / 2.0
            center_y = top + height / 2.0
            if abs(center_x - x) < MARKER_REACH and abs(center_y - y) < MARKER_REACH:
                return index
        return None
