"""The three data-parallel stages of a Newton basin render."""

from __future__ import annotations

import numpy as np

from .backends import ComputeBackend
from .mapping import FrameSize, Viewport
from .polynomial import RootSet, SymmetricCoefficients, evaluate_cubic, evaluate_derivative

FILL_INTENSITY = 255


def initialize_grid(backend: ComputeBackend, viewport: Viewport, size: FrameSize, dtype):
    """Map every cell ``(row, col)`` to its starting point in the plane."""

    rows, cols = backend.index_space(size.height, size.width)
    unit = viewport.pixel_size(size.width)
    x = cols * unit + float(viewport.left)
    y = float(viewport.top) - rows * unit
    return backend.make_complex(x, y, dtype)


def newton_sweep(grid, total, pair_sum, product):
    """Apply one Newton-Raphson update to every cell.

    Each cell depends only on its own previous value. A vanishing derivative
    produces inf or nan, which is carried forward untouched.
    """

    return grid - evaluate_cubic(grid, total, pair_sum, product) / evaluate_derivative(grid, total, pair_sum)


def iterate(backend: ComputeBackend, grid, coefficients: SymmetricCoefficients, count: int, dtype):
    if count < 0:
        raise ValueError(f"iteration count must be non-negative, got {count}")
    params = tuple(backend.scalar(value, dtype) for value in coefficients.as_tuple())
    return backend.repeat(newton_sweep, grid, count, params)


def squared_distance(backend: ComputeBackend, grid, root: complex):
    dx = backend.real(grid) - root.real
    dy = backend.imag(grid) - root.imag
    return dx * dx + dy * dy


def classify(backend: ComputeBackend, grid, roots: RootSet):
    """One-hot ``(height, width, 4)`` uint8 masks naming each cell's nearest root.

    Ties go to ``a`` first, then ``b``. Cells holding nan fail every
    comparison and land in basin ``c``.
    """

    d_a = squared_distance(backend, grid, roots.a)
    d_b = squared_distance(backend, grid, roots.b)
    d_c = squared_distance(backend, grid, roots.c)

    nearest_a = (d_a <= d_b) & (d_a <= d_c)
    nearest_b = ~nearest_a & (d_b <= d_a) & (d_b <= d_c)
    nearest_c = ~nearest_a & ~nearest_b

    mask_a = backend.mask(nearest_a, FILL_INTENSITY)
    mask_b = backend.mask(nearest_b, FILL_INTENSITY)
    mask_c = backend.mask(nearest_c, FILL_INTENSITY)
    return backend.stack([mask_a, mask_b, mask_c, backend.zeros_like(mask_a)])


def basin_labels(pixels: np.ndarray) -> np.ndarray:
    """Collapse a host pixel buffer to per-cell basin indices (0, 1 or 2)."""

    return np.argmax(pixels[..., :3], axis=-1)
