"""Exceptions raised by the Newton fractal pipeline."""

from __future__ import annotations


class NewtonFractalError(Exception):
    """Base class for errors reported to callers of the pipeline."""


class BackendUnavailableError(NewtonFractalError, RuntimeError):
    """No data-parallel backend could be constructed for the request."""


class SizeMismatchError(NewtonFractalError, ValueError):
    """A caller-provided buffer does not match the frame dimensions."""

    def __init__(self, name: str, expected: int, actual: int) -> None:
        super().__init__(f"{name} buffer holds {actual} bytes, expected {expected}")
        self.name = name
        self.expected = expected
        self.actual = actual
