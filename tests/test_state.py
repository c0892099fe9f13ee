import pytest

from newtonfractal import ExplorerState, FrameSize, RenderParameters, RootSet, Viewport, clamp_decrement


@pytest.fixture
def state():
    return ExplorerState.default()


def test_defaults(state):
    assert state.size == FrameSize(1024, 768)
    assert state.roots == RootSet.default()
    assert state.viewport == Viewport.default()
    assert state.iterations == 20


def test_decrement_clamps_at_zero(state):
    assert clamp_decrement(0) == 0
    assert clamp_decrement(5) == 4

    empty = ExplorerState(size=state.size, iterations=0)
    assert empty.decrease_iterations().iterations == 0
    assert empty.decrease_iterations().decrease_iterations().iterations == 0
    assert empty.increase_iterations().iterations == 1
    assert state.decrease_iterations().iterations == 19


def test_negative_iterations_rejected(state):
    with pytest.raises(ValueError):
        ExplorerState(size=state.size, iterations=-1)


def test_zoom_in_one_step(state):
    zoomed = state.zoom(1)
    assert zoomed.viewport.unit_width == pytest.approx(9.5)
    assert zoomed.viewport.left == pytest.approx(-4.75)
    assert zoomed.viewport.top == pytest.approx(4.0 - 7.5 * 0.025)
    assert zoomed.unit_height == pytest.approx(9.5 * 0.75)


def test_zoom_out_and_back(state):
    assert state.zoom(0) is state
    assert state.zoom(-2).viewport.unit_width == pytest.approx(10.0 / 0.95 ** 2)


def test_pan_by_pixels(state):
    assert state.pan_pixels(1024, 0).viewport.left == pytest.approx(-15.0)
    assert state.pan_pixels(0, 768).viewport.top == pytest.approx(11.5)


def test_pan_by_keyboard_step(state):
    assert state.pan_step(horizontal=1).viewport.left == pytest.approx(-4.9)
    assert state.pan_step(vertical=-1).viewport.top == pytest.approx(3.9)


def test_move_root_follows_canvas(state):
    moved = state.move_root(0, 512, 384)
    assert moved.roots.a == complex(0.0, 0.25)
    assert moved.roots.b == state.roots.b
    assert state.roots.a == RootSet.default().a


def test_root_markers_and_hit_test(state):
    x, y, width, height = state.root_markers()[0]
    assert x == pytest.approx(307.2 - 5.0)
    assert y == pytest.approx(307.2 - 5.0)
    assert (width, height) == (10.0, 10.0)

    assert state.hit_test(307, 308) == 0
    assert state.hit_test(0, 0) is None


def test_reset_keeps_size(state):
    size = FrameSize(320, 240)
    changed = ExplorerState.default(size).zoom(3).increase_iterations().move_root(2, 10, 10)
    assert changed.reset() == ExplorerState.default(size)


def test_to_parameters(state):
    params = state.to_parameters()
    assert params == RenderParameters(state.roots, state.viewport, state.size, 20)
