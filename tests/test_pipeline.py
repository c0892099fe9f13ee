import numpy as np
import pytest

from newtonfractal import (
    FILL_INTENSITY,
    FrameCache,
    FrameSize,
    NewtonPipeline,
    RenderParameters,
    RootSet,
    SizeMismatchError,
    Viewport,
    classify,
    pixel_to_complex,
    pixel_to_complex_inverse,
    render_frame,
)

SCENARIO_SIZE = FrameSize(1024, 768)


@pytest.fixture
def pipeline(backend):
    return NewtonPipeline(backend)


def _pixel_at(value, viewport, size):
    row, col = pixel_to_complex_inverse(value, viewport, size.height, size.width)
    return int(round(row)), int(round(col))


def test_end_to_end_scenario(pipeline, roots, viewport):
    pixels = pipeline.render(roots, viewport, SCENARIO_SIZE, 20)
    assert pixels.shape == (768, 1024, 4)
    assert len(pixels.tobytes()) == 1024 * 768 * 4

    row, col = _pixel_at(roots.a, viewport, SCENARIO_SIZE)
    assert pixels[row, col].tolist() == [FILL_INTENSITY, 0, 0, 0]

    row, col = _pixel_at(0j, viewport, SCENARIO_SIZE)
    again = pipeline.render(roots, viewport, SCENARIO_SIZE, 20)
    assert np.count_nonzero(pixels[row, col, :3]) == 1
    assert pixels[row, col].tolist() == again[row, col].tolist()
    assert pixels.tobytes() == again.tobytes()


def test_every_root_pixel_lands_in_its_own_basin(pipeline, roots, viewport):
    size = FrameSize(256, 192)
    pixels = pipeline.render(roots, viewport, size, 20)
    for channel, root in enumerate(roots):
        row, col = _pixel_at(root, viewport, size)
        assert pixels[row, col, channel] == FILL_INTENSITY


def test_zero_iterations_classifies_starting_points(pipeline, roots, viewport, small_size):
    pixels = pipeline.render(roots, viewport, small_size, 0)
    start = np.array(
        [[pixel_to_complex(r, c, viewport, small_size.height, small_size.width) for c in range(small_size.width)]
         for r in range(small_size.height)]
    )
    backend = pipeline.backend
    with backend.scope():
        expected = backend.to_host(classify(backend, backend.from_host(start), roots))
    np.testing.assert_array_equal(pixels, expected)


def test_rerender_is_byte_identical(pipeline, roots, viewport, small_size):
    first = pipeline.render(roots, viewport, small_size, 25).tobytes()
    pipeline.render(RootSet(1, -1, 1j), Viewport(-2, 2, 4), small_size, 3)
    second = pipeline.render(roots, viewport, small_size, 25).tobytes()
    assert first == second


def test_caller_buffer_is_cleared_and_filled(pipeline, roots, viewport, small_size):
    out = bytearray(b"\x07" * (small_size.cells * 4))
    pixels = pipeline.render(roots, viewport, small_size, 10, out=out)
    assert bytes(out) == pixels.tobytes()
    assert np.all(pixels[..., 3] == 0)
    assert bytes(out) == pipeline.render(roots, viewport, small_size, 10).tobytes()


def test_caller_numpy_buffer_is_reused(pipeline, roots, viewport, small_size):
    out = np.full(small_size.cells * 4, 9, dtype=np.uint8)
    pixels = pipeline.render(roots, viewport, small_size, 10, out=out)
    assert np.shares_memory(pixels, out)
    assert set(np.unique(out).tolist()) <= {0, FILL_INTENSITY}


def test_caller_grid_receives_converged_values(pipeline, roots, viewport, small_size):
    grid = np.zeros(small_size.shape, dtype=np.complex128)
    pipeline.render(roots, viewport, small_size, 40, grid=grid)
    distance = np.min(np.abs(grid[..., None] - np.array(roots)), axis=-1)
    assert np.count_nonzero(distance < 1e-6) > small_size.cells // 2


@pytest.mark.parametrize("out", [bytearray(10), np.zeros((2, 2, 4), dtype=np.uint8)])
def test_pixel_buffer_size_mismatch(numpy_backend, roots, viewport, small_size, out):
    with pytest.raises(SizeMismatchError):
        NewtonPipeline(numpy_backend).render(roots, viewport, small_size, 1, out=out)


def test_grid_buffer_size_mismatch(numpy_backend, roots, viewport, small_size):
    grid = np.zeros(small_size.cells, dtype=np.complex64)
    with pytest.raises(SizeMismatchError) as excinfo:
        NewtonPipeline(numpy_backend).render(roots, viewport, small_size, 1, grid=grid)
    assert excinfo.value.expected == small_size.cells * 16
    assert isinstance(excinfo.value, ValueError)


def test_read_only_buffer_rejected(numpy_backend, roots, viewport, small_size):
    with pytest.raises(ValueError):
        NewtonPipeline(numpy_backend).render(roots, viewport, small_size, 1, out=bytes(small_size.cells * 4))


def test_negative_iterations_rejected(numpy_backend, roots, viewport, small_size):
    with pytest.raises(ValueError):
        NewtonPipeline(numpy_backend).render(roots, viewport, small_size, -1)
    with pytest.raises(ValueError):
        RenderParameters(roots, viewport, small_size, -1)


def test_unknown_precision_rejected(numpy_backend):
    with pytest.raises(ValueError):
        NewtonPipeline(numpy_backend, precision="half")


def test_single_precision_render(backend, roots, viewport, small_size):
    pipeline = NewtonPipeline(backend, precision="single")
    grid = np.zeros(small_size.shape, dtype=np.complex64)
    pixels = pipeline.render(roots, viewport, small_size, 20, grid=grid)
    assert pipeline.grid_dtype == np.complex64
    row, col = _pixel_at(roots.b, viewport, small_size)
    assert pixels[row, col].tolist() == [0, FILL_INTENSITY, 0, 0]


def test_render_frame_result(numpy_backend, roots, viewport, small_size):
    params = RenderParameters(roots, viewport, small_size, 5)
    result = render_frame(params, backend=numpy_backend)
    assert result.parameters is params
    assert result.pixels.shape == small_size.buffer_shape
    assert result.grid.shape == small_size.shape
    assert result.coefficients.total == roots.a + roots.b + roots.c


def test_frame_cache_skips_unchanged_parameters(numpy_backend, roots, viewport, small_size):
    cache = FrameCache(NewtonPipeline(numpy_backend))
    params = RenderParameters(roots, viewport, small_size, 5)
    assert cache.dirty

    first = cache.render(params)
    second = cache.render(RenderParameters(roots, viewport, small_size, 5))
    assert second is first
    assert cache.renders == 1
    assert not cache.dirty

    cache.render(RenderParameters(roots, viewport, small_size, 6))
    assert cache.renders == 2

    cache.invalidate()
    cache.render(RenderParameters(roots, viewport, small_size, 6))
    assert cache.renders == 3
