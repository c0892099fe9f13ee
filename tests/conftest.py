import numpy as np
import pytest

from newtonfractal import FrameSize, NumpyBackend, RootSet, TensorFlowBackend, Viewport


@pytest.fixture(params=["numpy", "tensorflow"])
def backend(request):
    if request.param == "numpy":
        return NumpyBackend()
    return TensorFlowBackend("/CPU:0")


@pytest.fixture
def numpy_backend():
    return NumpyBackend()


@pytest.fixture
def roots():
    return RootSet.default()


@pytest.fixture
def viewport():
    return Viewport.default()


@pytest.fixture
def small_size():
    return FrameSize(64, 48)


@pytest.fixture
def rng():
    return np.random.default_rng(1234)
