"""Public API for Newton basin rendering utilities."""

from .backends import (
    PRECISIONS,
    ComputeBackend,
    NumpyBackend,
    TensorFlowBackend,
    available_backends,
    select_backend,
    select_device,
)
from .errors import BackendUnavailableError, NewtonFractalError, SizeMismatchError
from .kernels import FILL_INTENSITY, basin_labels, classify, initialize_grid, iterate, newton_sweep
from .mapping import (
    FrameSize,
    Viewport,
    canvas_to_complex,
    complex_to_pixel,
    pixel_to_complex,
    pixel_to_complex_inverse,
)
from .pipeline import FrameCache, NewtonPipeline, RenderParameters, RenderResult, render_frame
from .polynomial import RootSet, SymmetricCoefficients
from .state import ExplorerState, clamp_decrement

__all__ = [
    "BackendUnavailableError",
    "ComputeBackend",
    "ExplorerState",
    "FILL_INTENSITY",
    "FrameCache",
    "FrameSize",
    "NewtonFractalError",
    "NewtonPipeline",
    "NumpyBackend",
    "PRECISIONS",
    "RenderParameters",
    "RenderResult",
    "RootSet",
    "SizeMismatchError",
    "SymmetricCoefficients",
    "TensorFlowBackend",
    "Viewport",
    "available_backends",
    "basin_labels",
    "canvas_to_complex",
    "clamp_decrement",
    "classify",
    "complex_to_pixel",
    "initialize_grid",
    "iterate",
    "newton_sweep",
    "pixel_to_complex",
    "pixel_to_complex_inverse",
    "render_frame",
    "select_backend",
    "select_device",
]
