import os
import sys
import time
from argparse import ArgumentParser
from pathlib import Path

_VERBOSE_FLAGS = {"--verbose", "-v"}
_cli_verbose = any(arg in _VERBOSE_FLAGS for arg in sys.argv[1:])
_env_log_level = os.environ.get("TF_CPP_MIN_LOG_LEVEL")
_suppress_messages = (not _cli_verbose) and _env_log_level != "0"

if _suppress_messages and _env_log_level is None:
    os.environ["TF_CPP_MIN_LOG_LEVEL"] = "3"

VERBOSE = _cli_verbose


def log(message, *args, **kwargs):
    if VERBOSE:
        print(message, *args, **kwargs)


import tensorflow as tf

if _suppress_messages:
    tf.get_logger().setLevel("ERROR")
    for handler in tf.get_logger().handlers:
        handler.setLevel("ERROR")

import PIL.Image

from buddhabrot import (
    ConfigurationError,
    DegenerateRunError,
    RunConfig,
    Viewport,
    format_report,
    render_buddhabrot,
)
from buddhabrot.colors import POLICIES
from buddhabrot.orbits import BACKENDS

EXIT_OPEN_FAILED = 2
EXIT_WRITE_FAILED = 3
EXIT_DEGENERATE = 4

_COMPRESSION = {"TIFF": "tiff_adobe_deflate"}


def select_device():
    gpus = tf.config.list_physical_devices('GPU')
    if not gpus:
        log("No GPU found, using CPU")
        return '/CPU:0'
    try:
        for gpu in gpus:
            tf.config.experimental.set_memory_growth(gpu, True)
    except RuntimeError as e:
        log(e)
        return '/CPU:0'
    log("GPU found, using %s" % gpus[0].name)
    return '/GPU:0'


def build_parser():
    parser = ArgumentParser(description='Render a buddhabrot density image.')

    parser.add_argument('--width', type=int, dest='width', help='image width in pixels',
                        metavar='WIDTH', default=720)
    parser.add_argument('--height', type=int, dest='height', help='image height in pixels',
                        metavar='HEIGHT', default=450)
    parser.add_argument('--max-iterations', type=int, dest='max_iterations',
                        help='iteration cap; points still bounded after this many steps count as inside the set',
                        metavar='MAX_ITERATIONS', default=2000)

    parser.add_argument('--real-min', type=float, dest='real_min', help='left edge of the viewport',
                        metavar='REAL_MIN', default=-2.0)
    parser.add_argument('--real-max', type=float, dest='real_max', help='right edge of the viewport',
                        metavar='REAL_MAX', default=1.0)
    parser.add_argument('--imag-min', type=float, dest='imag_min', help='top edge of the viewport',
                        metavar='IMAG_MIN', default=-1.0)
    parser.add_argument('--imag-max', type=float, dest='imag_max', help='bottom edge of the viewport',
                        metavar='IMAG_MAX', default=1.0)

    parser.add_argument('--policy', choices=POLICIES, default='percentile',
                        help='colouring policy: percentile-adaptive bands, fixed fractions of the maximum, '
                             'a power curve, or a matplotlib colormap.')
    parser.add_argument('--colormap', type=str, dest='colormap',
                        help='matplotlib colormap used by the colormap policy (e.g. "inferno", "magma")',
                        metavar='COLORMAP', default='inferno')
    parser.add_argument('--gamma', type=float, default=1.0, help='Gamma applied by the colormap policy.')

    parser.add_argument('--backend', choices=BACKENDS, default='vectorized',
                        help='"vectorized" runs on TensorFlow/NumPy, "python" is the per-pixel reference.')
    parser.add_argument('--workers', type=int, default=1,
                        help='Worker threads for the per-pixel passes of the python backend.')

    parser.add_argument('--output', dest='output', type=str, default=None,
                        help='Destination image file. Default: buddhabrot.<format>.')
    parser.add_argument('--format', choices=('tiff', 'png'), dest='format', default='tiff',
                        help='Lossless output format. Default: "tiff".')
    parser.add_argument('--no-stats', dest='show_stats', action='store_false',
                        help='Do not print the statistics report.')
    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Enable verbose logging, including TensorFlow and hardware diagnostics.')

    return parser


def resolve_output_path(opt, parser):
    image_format = opt.format
    if opt.output is None:
        return Path(f"buddhabrot.{image_format}").expanduser().resolve()
    output_path = Path(opt.output).expanduser()
    if output_path.exists() and output_path.is_dir():
        parser.error("--output must point to a file, not a directory.")
    suffix = output_path.suffix.lower()
    if not suffix:
        output_path = output_path.with_suffix(f".{image_format}")
    elif suffix.lstrip(".") not in ({"tiff", "tif"} if image_format == "tiff" else {image_format}):
        parser.error(f"--output extension {output_path.suffix} does not match --format {image_format}.")
    return output_path.resolve()


class EncodeError(Exception):
    """Raised when the raster cannot be written; ``exit_code`` tells open and write failures apart."""

    def __init__(self, message, exit_code):
        super().__init__(message)
        self.exit_code = exit_code


def write_raster(raster, width, height, output_path, image_format):
    """Encode an interleaved RGB buffer losslessly to ``output_path``.

    A partially written file is removed when encoding fails.
    """

    image = PIL.Image.frombytes("RGB", (width, height), bytes(raster))
    pil_format = image_format.upper()
    options = {}
    if pil_format in _COMPRESSION:
        options["compression"] = _COMPRESSION[pil_format]

    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        handle = open(output_path, "wb")
    except OSError as exc:
        raise EncodeError(f"Could not open output image {output_path}: {exc}", EXIT_OPEN_FAILED) from exc

    # closing flushes buffered bytes, a failure there is a write failure
    try:
        with handle:
            image.save(handle, format=pil_format, **options)
    except (OSError, RuntimeError) as exc:
        if output_path.is_file():
            output_path.unlink()
        raise EncodeError(f"Error writing image {output_path}: {exc}", EXIT_WRITE_FAILED) from exc


def report_progress(stage, seconds):
    log("  %s done in %.2fs" % (stage, seconds))


def main(argv=None):
    parser = build_parser()
    opt = parser.parse_args(argv)

    global VERBOSE
    VERBOSE = bool(opt.verbose)

    output_path = resolve_output_path(opt, parser)
    if opt.workers < 1:
        parser.error("--workers must be at least 1.")

    try:
        config = RunConfig(
            width=opt.width,
            height=opt.height,
            max_iterations=opt.max_iterations,
            viewport=Viewport(opt.real_min, opt.real_max, opt.imag_min, opt.imag_max),
        )
    except ConfigurationError as exc:
        parser.error(str(exc))

    log("TensorFlow version: %s" % tf.__version__)
    device = select_device() if opt.backend == 'vectorized' else None

    log("Rendering %dx%d, %d iterations, %s backend" % (config.width, config.height, config.max_iterations, opt.backend))
    started = time.perf_counter()
    try:
        result = render_buddhabrot(
            config,
            policy=opt.policy,
            backend=opt.backend,
            workers=opt.workers,
            device=device,
            colormap=opt.colormap,
            gamma=opt.gamma,
            progress=report_progress,
        )
    except DegenerateRunError as exc:
        print(f"Degenerate run: {exc}", file=sys.stderr)
        return EXIT_DEGENERATE
    except ConfigurationError as exc:
        parser.error(str(exc))
    log("Rendered in %.2fs" % (time.perf_counter() - started))

    if opt.show_stats:
        print(format_report(config, result.stats, show_percentiles=opt.policy == 'percentile'))

    try:
        write_raster(result.raster, result.width, result.height, output_path, opt.format)
    except EncodeError as exc:
        print(exc, file=sys.stderr)
        return exc.exit_code
    log("Wrote %s" % output_path)
    return 0


if __name__ == '__main__':
    sys.exit(main())
