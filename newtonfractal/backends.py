"""Data-parallel execution backends.

Every pipeline stage is written against :class:`ComputeBackend`, which offers
element-wise array primitives over a 2D index space plus ``repeat``, the
ordered composition of a pure ``Grid -> Grid`` step. Each application of the
step observes the complete output of the previous one, so consecutive sweeps
are separated by a full-grid barrier regardless of backend.
"""

from __future__ import annotations

import abc
import contextlib
import functools
from typing import Callable, Optional, Sequence

import numpy as np
import tensorflow as tf

from .errors import BackendUnavailableError

PRECISIONS = ("double", "single")

_NUMPY_DTYPES = {"double": np.complex128, "single": np.complex64}
_TF_DTYPES = {"double": tf.complex128, "single": tf.complex64}


def _check_precision(precision: str) -> str:
    if precision not in PRECISIONS:
        raise ValueError(f"Unknown precision '{precision}'. Valid choices: {', '.join(PRECISIONS)}.")
    return precision


class ComputeBackend(abc.ABC):
    """Map pure element-wise functions over a ``(height, width)`` index space."""

    name = "abstract"

    def __init__(self, device: str) -> None:
        self.device = device

    def __repr__(self) -> str:
        return f"{type(self).__name__}(device={self.device!r})"

    def describe(self) -> str:
        return f"{self.name} on {self.device}"

    def scope(self):
        return contextlib.nullcontext()

    def numpy_dtype(self, precision: str) -> type:
        return _NUMPY_DTYPES[_check_precision(precision)]

    @abc.abstractmethod
    def complex_dtype(self, precision: str):
        """Backend dtype for complex grids of the given precision."""

    @abc.abstractmethod
    def index_space(self, height: int, width: int):
        """Return float64 ``(rows, cols)`` index arrays of shape ``(height, width)``."""

    @abc.abstractmethod
    def make_complex(self, real, imag, dtype):
        ...

    @abc.abstractmethod
    def real(self, values):
        ...

    @abc.abstractmethod
    def imag(self, values):
        ...

    @abc.abstractmethod
    def scalar(self, value, dtype):
        ...

    @abc.abstractmethod
    def mask(self, condition, intensity: int):
        """uint8 array holding ``intensity`` where ``condition`` is true, else 0."""

    @abc.abstractmethod
    def zeros_like(self, values):
        ...

    @abc.abstractmethod
    def stack(self, channels: Sequence):
        """Interleave equally shaped arrays along a new last axis."""

    @abc.abstractmethod
    def repeat(self, step: Callable, grid, count: int, params: tuple):
        """Apply ``step(grid, *params)`` ``count`` times in order."""

    @abc.abstractmethod
    def to_host(self, values) -> np.ndarray:
        """Copy ``values`` into a numpy array, waiting for pending device work."""

    @abc.abstractmethod
    def from_host(self, array: np.ndarray):
        ...


class NumpyBackend(ComputeBackend):
    """Vectorised execution on the host."""

    name = "numpy"

    def __init__(self, device: str = "/CPU:0") -> None:
        super().__init__(device)

    def scope(self):
        # Vanishing derivatives yield inf/nan cells; they are part of the image.
        return np.errstate(divide="ignore", invalid="ignore", over="ignore")

    def complex_dtype(self, precision: str):
        return self.numpy_dtype(precision)

    def index_space(self, height: int, width: int):
        rows = np.arange(height, dtype=np.float64)
        cols = np.arange(width, dtype=np.float64)
        return np.meshgrid(rows, cols, indexing="ij")

    def make_complex(self, real, imag, dtype):
        values = np.empty(np.shape(real), dtype=dtype)
        values.real = real
        values.imag = imag
        return values

    def real(self, values):
        return np.real(values)

    def imag(self, values):
        return np.imag(values)

    def scalar(self, value, dtype):
        return np.dtype(dtype).type(value)

    def mask(self, condition, intensity: int):
        return np.where(condition, np.uint8(intensity), np.uint8(0))

    def zeros_like(self, values):
        return np.zeros_like(values)

    def stack(self, channels: Sequence):
        return np.stack(channels, axis=-1)

    def repeat(self, step: Callable, grid, count: int, params: tuple):
        for _ in range(int(count)):
            grid = step(grid, *params)
        return grid

    def to_host(self, values) -> np.ndarray:
        return np.asarray(values)

    def from_host(self, array: np.ndarray):
        return np.asarray(array)


def _compile_repeat(step: Callable) -> Callable:
    def run(grid: tf.Tensor, count: tf.Tensor, params: tuple) -> tf.Tensor:
        i = tf.constant(0, dtype=tf.int32)

        def cond(i: tf.Tensor, current: tf.Tensor) -> tf.Tensor:
            return tf.less(i, count)

        def body(i: tf.Tensor, current: tf.Tensor) -> tuple[tf.Tensor, tf.Tensor]:
            return i + 1, step(current, *params)

        _, result = tf.while_loop(cond, body, (i, grid))
        return result

    return tf.function(run, reduce_retracing=True)


class TensorFlowBackend(ComputeBackend):
    """Execution on a TensorFlow device (GPU when available)."""

    name = "tensorflow"

    def __init__(self, device: Optional[str] = None) -> None:
        super().__init__(device if device is not None else select_device())
        self._compiled: dict[Callable, Callable] = {}

    def scope(self):
        return tf.device(self.device)

    def complex_dtype(self, precision: str):
        return _TF_DTYPES[_check_precision(precision)]

    def index_space(self, height: int, width: int):
        rows = tf.range(height, dtype=tf.float64)
        cols = tf.range(width, dtype=tf.float64)
        return tf.meshgrid(rows, cols, indexing="ij")

    def make_complex(self, real, imag, dtype):
        values = tf.complex(tf.cast(real, tf.float64), tf.cast(imag, tf.float64))
        return tf.cast(values, dtype)

    def real(self, values):
        return tf.math.real(values)

    def imag(self, values):
        return tf.math.imag(values)

    def scalar(self, value, dtype):
        return tf.constant(value, dtype=dtype)

    def mask(self, condition, intensity: int):
        shape = tf.shape(condition)
        full = tf.fill(shape, tf.constant(intensity, dtype=tf.uint8))
        return tf.where(condition, full, tf.zeros(shape, dtype=tf.uint8))

    def zeros_like(self, values):
        return tf.zeros_like(values)

    def stack(self, channels: Sequence):
        return tf.stack(list(channels), axis=-1)

    def repeat(self, step: Callable, grid, count: int, params: tuple):
        compiled = self._compiled.get(step)
        if compiled is None:
            compiled = self._compiled[step] = _compile_repeat(step)
        return compiled(grid, tf.constant(int(count), dtype=tf.int32), tuple(params))

    def to_host(self, values) -> np.ndarray:
        return values.numpy()

    def from_host(self, array: np.ndarray):
        return tf.convert_to_tensor(array)


@functools.lru_cache(maxsize=None)
def select_device() -> str:
    """Prefer the first visible GPU and fall back to the CPU."""

    gpus = tf.config.list_physical_devices("GPU")
    if gpus:
        try:
            for gpu in gpus:
                tf.config.experimental.set_memory_growth(gpu, True)
            return "/GPU:0"
        except RuntimeError:
            return "/CPU:0"
    return "/CPU:0"


def _device_visible(device: str) -> bool:
    try:
        spec = tf.DeviceSpec.from_string(device)
    except ValueError:
        return False
    if spec.device_type is None:
        return False
    physical = tf.config.list_physical_devices(spec.device_type.upper())
    index = spec.device_index or 0
    return index < len(physical)


_BACKENDS = {
    "numpy": NumpyBackend,
    "tensorflow": TensorFlowBackend,
}


def available_backends() -> tuple[str, ...]:
    return ("auto",) + tuple(_BACKENDS)


def select_backend(name: str = "auto", device: Optional[str] = None) -> ComputeBackend:
    """Construct the backend named ``name``.

    ``auto`` runs on TensorFlow, preferring an accelerator and falling back
    to host threads.
    """

    key = (name or "auto").lower()
    if key == "auto":
        key = "tensorflow"
    if key not in _BACKENDS:
        raise BackendUnavailableError(
            f"Unknown backend '{name}'. Valid choices: {', '.join(available_backends())}."
        )

    if device is not None and not _device_visible(device):
        raise BackendUnavailableError(f"Device '{device}' is not available.")

    if key == "numpy":
        if device is not None and tf.DeviceSpec.from_string(device).device_type.upper() != "CPU":
            raise BackendUnavailableError("The numpy backend only runs on the CPU.")
        return NumpyBackend()
    return TensorFlowBackend(device)
