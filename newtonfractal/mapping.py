"""Mapping between pixel indices and the complex plane."""

from __future__ import annotations

import numbers
from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True)
class Viewport:
    """Region of the complex plane covered by a frame.

    ``left`` and ``top`` are the plane coordinates of the top-left pixel and
    ``unit_width`` is the plane width spanned by the whole frame. The height
    is derived from the frame's aspect ratio so pixels stay square.
    """

    left: float
    top: float
    unit_width: float

    def __post_init__(self) -> None:
        if not self.unit_width > 0:
            raise ValueError(f"unit_width must be positive, got {self.unit_width!r}")

    @classmethod
    def default(cls) -> "Viewport":
        return cls(left=-5.0, top=4.0, unit_width=10.0)

    def unit_height(self, width: int, height: int) -> float:
        return self.unit_width * (float(height) / float(width))

    def pixel_size(self, width: int) -> float:
        return float(np.float64(self.unit_width) / np.float64(width))


@dataclass(frozen=True)
class FrameSize:
    """Dimensions of the grid and of the pixel buffer rendered from it."""

    width: int
    height: int

    def __post_init__(self) -> None:
        for value in (self.width, self.height):
            if isinstance(value, bool) or not isinstance(value, numbers.Integral):
                raise ValueError(f"frame dimensions must be integers, got {self.width!r}x{self.height!r}")
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"frame dimensions must be positive, got {self.width}x{self.height}")

    @property
    def cells(self) -> int:
        return self.width * self.height

    @property
    def shape(self) -> tuple[int, int]:
        return self.height, self.width

    @property
    def buffer_shape(self) -> tuple[int, int, int]:
        return self.height, self.width, 4


def pixel_to_complex(row: float, col: float, viewport: Viewport, grid_height: int, grid_width: int) -> complex:
    """Plane coordinate of grid cell ``(row, col)``.

    ``grid_height`` does not enter the formula; the vertical step equals the
    horizontal one.
    """

    unit = np.float64(viewport.pixel_size(grid_width))
    x = np.float64(viewport.left) + unit * np.float64(col)
    y = np.float64(viewport.top) - unit * np.float64(row)
    return complex(float(x), float(y))


def pixel_to_complex_inverse(value: complex, viewport: Viewport, grid_height: int, grid_width: int) -> tuple[float, float]:
    """Return the fractional ``(row, col)`` that maps onto ``value``."""

    unit = np.float64(viewport.pixel_size(grid_width))
    col = (np.float64(value.real) - np.float64(viewport.left)) / unit
    row = (np.float64(viewport.top) - np.float64(value.imag)) / unit
    return float(row), float(col)


def complex_to_pixel(value: complex, viewport: Viewport, canvas_width: int, canvas_height: int) -> tuple[float, float]:
    """Canvas position ``(x, y)`` of a plane coordinate, used for root markers."""

    unit_height = viewport.unit_height(canvas_width, canvas_height)
    px = (np.float64(value.real) - viewport.left) / viewport.unit_width * canvas_width
    py = (viewport.top - np.float64(value.imag)) / unit_height * canvas_height
    return float(px), float(py)


def canvas_to_complex(x: float, y: float, viewport: Viewport, canvas_width: int, canvas_height: int) -> complex:
    unit_height = viewport.unit_height(canvas_width, canvas_height)
    real = np.float64(x) / canvas_width * viewport.unit_width + viewport.left
    imag = viewport.top - np.float64(y) / canvas_height * unit_height
    return complex(float(real), float(imag))
