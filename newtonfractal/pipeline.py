"""Orchestration of a full Newton basin render."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

import numpy as np

from .backends import PRECISIONS, ComputeBackend, select_backend
from .errors import SizeMismatchError
from .kernels import classify, initialize_grid, iterate
from .mapping import FrameSize, Viewport
from .polynomial import RootSet, SymmetricCoefficients


@dataclass(frozen=True)
class RenderParameters:
    """Everything a single render depends on."""

    roots: RootSet
    viewport: Viewport
    size: FrameSize
    iterations: int

    def __post_init__(self) -> None:
        if int(self.iterations) < 0:
            raise ValueError(f"iterations must be non-negative, got {self.iterations}")


@dataclass(frozen=True)
class RenderResult:
    """Pixel buffer of a render together with the converged grid."""

    pixels: np.ndarray
    grid: np.ndarray
    coefficients: SymmetricCoefficients
    parameters: RenderParameters


def _pixel_view(out: Any, size: FrameSize) -> np.ndarray:
    expected = size.cells * 4
    if isinstance(out, np.ndarray):
        if out.nbytes != expected:
            raise SizeMismatchError("pixel", expected, out.nbytes)
        if out.dtype != np.uint8:
            raise ValueError(f"pixel buffer must have dtype uint8, got {out.dtype}")
        if not (out.flags.c_contiguous and out.flags.writeable):
            raise ValueError("pixel buffer must be contiguous and writable")
        return out.reshape(size.buffer_shape)

    view = memoryview(out)
    if view.nbytes != expected:
        raise SizeMismatchError("pixel", expected, view.nbytes)
    if view.readonly:
        raise ValueError("pixel buffer must be writable")
    return np.frombuffer(out, dtype=np.uint8).reshape(size.buffer_shape)


def _grid_view(grid: np.ndarray, size: FrameSize, dtype) -> np.ndarray:
    expected = size.cells * np.dtype(dtype).itemsize
    if grid.nbytes != expected:
        raise SizeMismatchError("grid", expected, grid.nbytes)
    if grid.dtype != np.dtype(dtype):
        raise ValueError(f"grid buffer must have dtype {np.dtype(dtype)}, got {grid.dtype}")
    if not (grid.flags.c_contiguous and grid.flags.writeable):
        raise ValueError("grid buffer must be contiguous and writable")
    return grid.reshape(size.shape)


class NewtonPipeline:
    """Run grid initialisation, Newton sweeps and classification on a backend.

    The pipeline keeps no per-frame state. Concurrent calls must not share
    ``out`` or ``grid`` buffers.
    """

    def __init__(self, backend: Optional[ComputeBackend] = None, precision: str = "double") -> None:
        if precision not in PRECISIONS:
            raise ValueError(f"Unknown precision '{precision}'. Valid choices: {', '.join(PRECISIONS)}.")
        self.backend = backend if backend is not None else select_backend()
        self.precision = precision

    def __repr__(self) -> str:
        return f"NewtonPipeline(backend={self.backend!r}, precision={self.precision!r})"

    @property
    def grid_dtype(self) -> type:
        return self.backend.numpy_dtype(self.precision)

    def render(
        self,
        roots,
        viewport: Viewport,
        size: FrameSize,
        iterations: int,
        *,
        out: Any = None,
        grid: Optional[np.ndarray] = None,
    ) -> np.ndarray:
        """Render one frame and return its ``(height, width, 4)`` pixel buffer.

        Blocks until every stage has finished. ``out`` and ``grid`` are
        optional caller-owned buffers; ``grid`` receives the converged values.
        """

        roots = RootSet.from_values(*roots)
        iterations = int(iterations)
        if iterations < 0:
            raise ValueError(f"iterations must be non-negative, got {iterations}")

        pixels = _pixel_view(out, size) if out is not None else np.zeros(size.buffer_shape, dtype=np.uint8)
        host_grid = _grid_view(grid, size, self.grid_dtype) if grid is not None else None

        coefficients = SymmetricCoefficients.from_roots(roots)
        backend = self.backend
        dtype = backend.complex_dtype(self.precision)

        pixels.fill(0)
        with backend.scope():
            values = initialize_grid(backend, viewport, size, dtype)
            values = iterate(backend, values, coefficients, iterations, dtype)
            masks = backend.to_host(classify(backend, values, roots))
            if host_grid is not None:
                host_grid[...] = backend.to_host(values)

        np.bitwise_or(pixels, masks, out=pixels)
        return pixels

    def render_frame(
        self,
        params: RenderParameters,
        *,
        out: Any = None,
        grid: Optional[np.ndarray] = None,
    ) -> RenderResult:
        if grid is None:
            grid = np.empty(params.size.shape, dtype=self.grid_dtype)
        pixels = self.render(
            params.roots,
            params.viewport,
            params.size,
            params.iterations,
            out=out,
            grid=grid,
        )
        return RenderResult(
            pixels=pixels,
            grid=grid.reshape(params.size.shape),
            coefficients=SymmetricCoefficients.from_roots(params.roots),
            parameters=params,
        )


def render_frame(
    params: RenderParameters,
    *,
    backend: Optional[ComputeBackend] = None,
    precision: str = "double",
) -> RenderResult:
    """Render a Newton basin frame given the supplied parameters."""

    return NewtonPipeline(backend, precision=precision).render_frame(params)


class FrameCache:
    """Re-render only when the parameters differ from the last render."""

    def __init__(self, pipeline: NewtonPipeline) -> None:
        self.pipeline = pipeline
        self.renders = 0
        self._params: Optional[RenderParameters] = None
        self._pixels: Optional[np.ndarray] = None

    @property
    def dirty(self) -> bool:
        return self._params is None

    def invalidate(self) -> None:
        self._params = None

    def render(self, params: RenderParameters) -> np.ndarray:
        if self._params is not None and self._params == params:
            return self._pixels

        buffer = self._pixels if self._pixels is not None and self._pixels.shape == params.size.buffer_shape else None
        self._params = None
        self._pixels = self.pipeline.render(
            params.roots,
            params.viewport,
            params.size,
            params.iterations,
            out=buffer,
        )
        self._params = params
        self.renders += 1
        return self._pixels
