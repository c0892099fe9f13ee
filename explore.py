import os
import sys
import time
import warnings
from dataclasses import dataclass

_VERBOSE_FLAGS = {"--verbose", "-v"}
_cli_verbose = any(arg in _VERBOSE_FLAGS for arg in sys.argv[1:])
_env_log_level = os.environ.get("TF_CPP_MIN_LOG_LEVEL")
_suppress_messages = (not _cli_verbose) and _env_log_level != "0"

if _suppress_messages and _env_log_level is None:
    os.environ["TF_CPP_MIN_LOG_LEVEL"] = "3"

if _suppress_messages:
    warnings.filterwarnings(
        "ignore",
        message=r"Protobuf gencode version .* is exactly one major version older than the runtime version .*",
        category=UserWarning,
        module="google.protobuf",
    )

VERBOSE = _cli_verbose


def log(message, *args, **kwargs):
    if VERBOSE:
        print(message, *args, **kwargs)


import numpy as np
import tensorflow as tf

if _suppress_messages:
    tf.get_logger().setLevel("ERROR")
    for handler in tf.get_logger().handlers:
        handler.setLevel("ERROR")

import PIL.Image
import PIL.ImageDraw
import matplotlib.pyplot as plt

from newtonfractal import (
    PRECISIONS,
    ExplorerState,
    FrameSize,
    NewtonFractalError,
    NewtonPipeline,
    RootSet,
    Viewport,
    available_backends,
    basin_labels,
    select_backend,
)

from argparse import ArgumentParser

MARKER_COLOR = (255, 255, 255)
ROOT_OPTIONS = ('--root-a', '--root-b', '--root-c')


@dataclass
class RenderConfig:
    state: ExplorerState
    backend: str
    device: str | None
    precision: str
    repeat: int
    show: bool


def build_parser():
    parser = ArgumentParser(description="Render the Newton basins of a cubic with three movable roots.")

    parser.add_argument('--width', type=int,
                        dest='width', help='number of grid columns (pixels) in the frame',
                        metavar='WIDTH', default=1024)

    parser.add_argument('--height', type=int,
                        dest='height', help='number of grid rows (pixels) in the frame',
                        metavar='HEIGHT', default=768)

    parser.add_argument('--iterations', type=int,
                        dest='iterations', help='number of Newton-Raphson sweeps applied to every pixel',
                        metavar='ITERATIONS', default=20)

    parser.add_argument('--root-a', type=str, dest='root_a', metavar='COMPLEX', default='-2+1j',
                        help='first root of the cubic, as a Python complex literal such as -2+1j (basin drawn in channel 0)')

    parser.add_argument('--root-b', type=str, dest='root_b', metavar='COMPLEX', default='2+2j',
                        help='second root of the cubic (basin drawn in channel 1)')

    parser.add_argument('--root-c', type=str, dest='root_c', metavar='COMPLEX', default='-1-2j',
                        help='third root of the cubic (basin drawn in channel 2)')

    parser.add_argument('--left', type=float,
                        dest='left', help='real coordinate of the top-left pixel',
                        metavar='LEFT', default=-5.0)

    parser.add_argument('--top', type=float,
                        dest='top', help='imaginary coordinate of the top-left pixel',
                        metavar='TOP', default=4.0)

    parser.add_argument('--unit-width', type=float,
                        dest='unit_width', help='width of the complex plane spanned by the frame',
                        metavar='UNIT_WIDTH', default=10.0)

    parser.add_argument('--backend', type=str, default='auto', choices=available_backends(),
                        help='Data-parallel backend. "auto" uses TensorFlow on the first GPU, else the CPU.')

    parser.add_argument('--device', type=str, default=None,
                        help='TensorFlow device to run on, e.g. "/GPU:0" or "/CPU:0".')

    parser.add_argument('--precision', type=str, default='double', choices=PRECISIONS,
                        help='Floating-point precision of the complex grid.')

    parser.add_argument('--repeat', type=int, default=1,
                        help='Number of identical renders to run; reports renders per second.')

    parser.add_argument('--show', action='store_true',
                        help='Display the frame with root markers in a matplotlib window.')

    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Enable verbose logging, including TensorFlow and hardware diagnostics.')

    return parser


def _parse_root(parser: ArgumentParser, option: str, text: str) -> complex:
    try:
        return complex(text.replace(' ', ''))
    except ValueError:
        parser.error(f"{option} must be a complex number such as -2+1j, got '{text}'.")


def _attach_root_values(argv):
    """Join `--root-x VALUE` pairs so values such as -1-2j are not read as options."""

    args = list(argv)
    joined = []
    i = 0
    while i < len(args):
        if args[i] in ROOT_OPTIONS and i + 1 < len(args):
            joined.append(f"{args[i]}={args[i + 1]}")
            i += 2
        else:
            joined.append(args[i])
            i += 1
    return joined


def parse_arguments(parser: ArgumentParser, argv=None):
    if argv is None:
        argv = sys.argv[1:]
    return parser.parse_args(_attach_root_values(argv))


def resolve_render_config(opt, parser: ArgumentParser) -> RenderConfig:
    if opt.width <= 0 or opt.height <= 0:
        parser.error("--width and --height must be positive.")
    if opt.iterations < 0:
        parser.error("--iterations must be zero or more.")
    if not opt.unit_width > 0:
        parser.error("--unit-width must be positive.")
    if opt.repeat < 1:
        parser.error("--repeat must be at least 1.")

    roots = RootSet(
        _parse_root(parser, '--root-a', opt.root_a),
        _parse_root(parser, '--root-b', opt.root_b),
        _parse_root(parser, '--root-c', opt.root_c),
    )
    state = ExplorerState(
        size=FrameSize(opt.width, opt.height),
        roots=roots,
        viewport=Viewport(left=opt.left, top=opt.top, unit_width=opt.unit_width),
        iterations=opt.iterations,
    )
    return RenderConfig(
        state=state,
        backend=opt.backend,
        device=opt.device,
        precision=opt.precision,
        repeat=opt.repeat,
        show=bool(opt.show),
    )


def basin_shares(pixels: np.ndarray) -> dict[str, float]:
    labels = basin_labels(pixels)
    counts = np.bincount(labels.ravel(), minlength=3)
    total = max(int(labels.size), 1)
    return {name: counts[index] / total for index, name in enumerate("abc")}


def draw_root_markers(pixels: np.ndarray, state: ExplorerState) -> PIL.Image.Image:
    """Convert ``pixels`` to an RGB image and outline each root."""

    image = PIL.Image.fromarray(np.ascontiguousarray(pixels[..., :3]), "RGB")
    draw = PIL.ImageDraw.Draw(image)
    for x, y, width, height in state.root_markers():
        x0, y0 = int(round(x)), int(round(y))
        draw.rectangle([(x0, y0), (x0 + int(width), y0 + int(height))], outline=MARKER_COLOR)
    return image


def show_frame(image: PIL.Image.Image, state: ExplorerState) -> None:
    fig, ax = plt.subplots(figsize=(state.size.width / 100, state.size.height / 100), dpi=100)
    ax.imshow(np.asarray(image))
    ax.set_axis_off()
    roots = ", ".join(f"{name}={value:.4g}" for name, value in zip("abc", state.roots))
    ax.set_title(f"{roots}  iterations={state.iterations}", fontsize=9)
    fig.tight_layout()
    plt.show()


def main(argv=None):
    parser = build_parser()
    opt = parse_arguments(parser, argv)

    config = resolve_render_config(opt, parser)

    global VERBOSE
    VERBOSE = bool(opt.verbose)

    log("TensorFlow version: %s" % tf.__version__)

    try:
        backend = select_backend(config.backend, config.device)
        pipeline = NewtonPipeline(backend, precision=config.precision)
    except NewtonFractalError as exc:
        print(f"Unable to start: {exc}", file=sys.stderr)
        return 1

    log("Rendering with %s at %s precision" % (backend.describe(), config.precision))

    state = config.state
    params = state.to_parameters()
    pixels = np.zeros(state.size.buffer_shape, dtype=np.uint8)

    start = time.perf_counter()
    for i in range(config.repeat):
        if config.repeat > 1:
            print("render {0} out of {1}".format(i, config.repeat), end='\r')
        pipeline.render(params.roots, params.viewport, params.size, params.iterations, out=pixels)
    elapsed = time.perf_counter() - start

    if config.repeat > 1:
        print()
    log("Rendered %dx%d with %d iterations in %.3fs" % (state.size.width, state.size.height, state.iterations, elapsed))
    if elapsed > 0:
        print("Renders per second: %.2f" % (config.repeat / elapsed))

    for name, share in basin_shares(pixels).items():
        print("basin {0}: {1:6.2%}".format(name, share))

    if config.show:
        show_frame(draw_root_markers(pixels, state), state)

    return 0


if __name__ == '__main__':
    sys.exit(main())
