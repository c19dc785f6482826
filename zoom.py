import os
import re
import sys
import warnings
from pathlib import Path

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
        kwargs.setdefault("file", sys.stderr)
        print(message, *args, **kwargs)


import tensorflow as tf

if _suppress_messages:
    try:
        tf.get_logger().setLevel("ERROR")
        for handler in tf.get_logger().handlers:
            handler.setLevel("ERROR")
    except Exception:
        pass

from argparse import ArgumentParser

from spiralzoom import (
    CameraPath,
    GifWriter,
    ImageSequenceWriter,
    RangeTracker,
    RenderContext,
    ScalarCsvWriter,
    build_gradient,
    run_sequence,
    write_gradient_csv,
    write_gradient_preview,
)
from spiralzoom.gradient import DEFAULT_LINEAR_STEPS, DEFAULT_TABLE_SIZE, GRADIENT_KINDS
from spiralzoom.ranging import DEFAULT_SMOOTHING
from spiralzoom.renderer import DEFAULT_MAX_ITERATIONS

EXIT_USAGE = 1
EXIT_INVALID = 2

STATIC_NAMES = ("center-real", "center-imag", "radius-start", "radius-end", "frames", "image-width", "image-height")
SPIRAL_NAMES = ("center-real", "center-imag", "radius-start", "radius-end", "theta-start", "turns", "frames", "image-width", "image-height")
_INT_NAMES = {"frames", "image-width", "image-height"}
NEGATIVE_NUMBER = r"^-(\d+\.?\d*|\.\d+)([eE][-+]?\d+)?$"


def select_device():
    """Use the first visible GPU when TensorFlow can see one, otherwise the CPU."""

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


def usage_line(prog):
    return "Usage: %s center-real center-imag radius-start radius-end [theta-start turns] frames image-width image-height" % prog


def build_parser():
    parser = ArgumentParser(
        prog='zoom.py',
        description='Render a zooming, optionally spiralling, sequence of Mandelbrot frames.',
    )

    # Treat exponent-form negatives such as -1e-3 as values, not options.
    parser._negative_number_matcher = re.compile(NEGATIVE_NUMBER)

    parser.add_argument('values', nargs='*', metavar='VALUE',
                        help='center-real center-imag radius-start radius-end [theta-start turns] frames image-width image-height')

    parser.add_argument('--max-iterations', type=int,
                        dest='max_iterations', help='iteration cap of the escape-time function',
                        metavar='MAX_ITERATIONS', default=DEFAULT_MAX_ITERATIONS)

    parser.add_argument('--gradient', choices=GRADIENT_KINDS, default='spline',
                        help='How the gradient table is built from its control colors.')

    parser.add_argument('--colormap', type=str,
                        dest='colormap', help='matplotlib colormap used when --gradient colormap is selected',
                        metavar='COLORMAP', default='twilight_shifted')

    parser.add_argument('--table-size', type=int,
                        dest='table_size', help='number of entries in spline or colormap gradient tables',
                        metavar='TABLE_SIZE', default=DEFAULT_TABLE_SIZE)

    parser.add_argument('--linear-steps', type=int, nargs='+',
                        dest='linear_steps', help='steps per segment for the linear gradient (one value or one per segment)',
                        metavar='STEPS', default=[DEFAULT_LINEAR_STEPS])

    parser.add_argument('--adaptive', action='store_true',
                        help='Calibrate the color range to each frame, smoothed across frames.')

    parser.add_argument('--smoothing', type=float, default=DEFAULT_SMOOTHING,
                        help='Fraction of the way the adaptive range moves toward each new frame.')

    parser.add_argument('--workers', type=int, default=1,
                        help='Number of row bands evaluated in parallel per frame.')

    parser.add_argument('--frame-dir', dest='frame_dir', type=str, default='.',
                        help='Directory in which to store the frame sequence.')

    parser.add_argument('--prefix', type=str, default='frame',
                        help='Filename prefix for frames (frame-0000, frame-0001, ...).')

    parser.add_argument('--format', type=str,
                        dest='format', help='file format for frames. Can be any extension supported by Pillow. Default: "png".',
                        metavar='FORMAT', default='png')

    parser.add_argument('--gif', type=str, default=None,
                        help='Also collect every frame into this animated GIF.')

    parser.add_argument('--gradient-preview', dest='gradient_preview', type=str, default=None,
                        help='Write an image strip of the gradient table at startup.')

    parser.add_argument('--gradient-csv', dest='gradient_csv', type=str, default=None,
                        help='Write the gradient table as CSV at startup.')

    parser.add_argument('--scalar-csv', dest='scalar_csv', action='store_true',
                        help='Also dump each frame\'s raw escape measures as CSV.')

    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Enable verbose logging, including TensorFlow and hardware diagnostics.')

    return parser


def parse_values(values):
    """Convert the positional values into a name -> number mapping."""

    names = SPIRAL_NAMES if len(values) == len(SPIRAL_NAMES) else STATIC_NAMES

    parsed = {}
    for name, raw in zip(names, values):
        try:
            parsed[name] = int(raw) if name in _INT_NAMES else float(raw)
        except ValueError as exc:
            raise ValueError("Malformed value for %s: %r" % (name, raw)) from exc
    return parsed


def invalid_sizes(parsed):
    problems = []
    if parsed["image-width"] <= 0:
        problems.append("image-width must be positive")
    if parsed["image-height"] <= 0:
        problems.append("image-height must be positive")
    return problems


def report_invalid(prog, parsed, problems):
    print(usage_line(prog), file=sys.stderr)
    print("Invalid parameters specified", file=sys.stderr)
    for problem in problems:
        print("  %s" % problem, file=sys.stderr)
    for name, value in parsed.items():
        print("%s = %r" % (name, value), file=sys.stderr)


def build_path(parsed):
    return CameraPath(
        center=complex(parsed["center-real"], parsed["center-imag"]),
        radius_start=parsed["radius-start"],
        radius_end=parsed["radius-end"],
        frame_count=parsed["frames"],
        theta_start=parsed.get("theta-start"),
        turns=parsed.get("turns"),
    )


def build_writers(opt, frame_dir, image_format):
    writers = [ImageSequenceWriter(frame_dir, image_format)]
    if opt.scalar_csv:
        writers.append(ScalarCsvWriter(frame_dir))
    if opt.gif:
        writers.append(GifWriter(Path(opt.gif).expanduser()))
    return writers


def main(argv=None):
    parser = build_parser()
    opt = parser.parse_args(argv)
    prog = parser.prog

    global VERBOSE
    VERBOSE = VERBOSE or bool(opt.verbose)

    if len(opt.values) not in (len(STATIC_NAMES), len(SPIRAL_NAMES)):
        print(usage_line(prog), file=sys.stderr)
        print("Missing parameters", file=sys.stderr)
        return EXIT_USAGE

    try:
        parsed = parse_values(opt.values)
    except ValueError as exc:
        print(usage_line(prog), file=sys.stderr)
        print(exc, file=sys.stderr)
        return EXIT_USAGE

    path = build_path(parsed)
    problems = path.problems() + invalid_sizes(parsed)
    if opt.max_iterations < 1:
        problems.append("max-iterations must be positive")
    if opt.workers < 1:
        problems.append("workers must be positive")
    try:
        tracker = RangeTracker(opt.smoothing) if opt.adaptive else None
        gradient = build_gradient(
            opt.gradient,
            table_size=opt.table_size,
            steps=opt.linear_steps[0] if len(opt.linear_steps) == 1 else opt.linear_steps,
            colormap=opt.colormap,
        )
    except ValueError as exc:
        problems.append(str(exc))
    if problems:
        report_invalid(prog, parsed, problems)
        return EXIT_INVALID

    log("TensorFlow version: %s" % tf.__version__)
    device = select_device()

    if opt.gradient_preview:
        write_gradient_preview(gradient, Path(opt.gradient_preview).expanduser())
        log("Gradient preview written to %s" % opt.gradient_preview)
    if opt.gradient_csv:
        write_gradient_csv(gradient, Path(opt.gradient_csv).expanduser())
        log("Gradient table written to %s" % opt.gradient_csv)

    image_format = (opt.format or "png").lower().lstrip(".") or "png"
    frame_dir = Path(opt.frame_dir).expanduser().resolve()
    frame_dir.mkdir(parents=True, exist_ok=True)

    context = RenderContext(
        gradient=gradient,
        max_iterations=opt.max_iterations,
        tracker=tracker,
        workers=opt.workers,
        device=device,
    )
    log("Rendering %d frames of %dx%d (%s mode, %s gradient with %d entries)" % (
        path.frame_count, parsed["image-width"], parsed["image-height"],
        "adaptive" if context.adaptive else "static", opt.gradient, gradient.size))

    writers = build_writers(opt, frame_dir, image_format)
    try:
        run_sequence(
            path,
            context,
            parsed["image-width"],
            parsed["image-height"],
            writers,
            prefix=opt.prefix,
            extension=image_format,
            report=lambda line: print(line, flush=True),
        )
    finally:
        for writer in writers:
            writer.close()
    return 0


if __name__ == '__main__':
    sys.exit(main())
