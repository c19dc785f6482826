"""Public API for spiral zoom rendering utilities."""

from .generator import CameraPath, FrameSpec, InvalidParameters, compute_radii
from .gradient import (
    DEFAULT_CONTROLS,
    ColormapGradient,
    ControlColor,
    GradientBuilder,
    GradientTable,
    LinearGradient,
    SplineGradient,
    build_gradient,
    write_gradient_csv,
)
from .output import GifWriter, ImageSequenceWriter, ScalarCsvWriter, write_gradient_preview, write_single_image
from .ranging import RangeState, RangeTracker, observed_range, static_range
from .renderer import FrameRenderer, RenderResult, escape_measure, evaluate_grid, pixel_grid
from .sequence import FrameRecord, RenderContext, format_metadata, frame_name, run_sequence

__all__ = [
    "CameraPath",
    "ColormapGradient",
    "ControlColor",
    "DEFAULT_CONTROLS",
    "FrameRecord",
    "FrameRenderer",
    "FrameSpec",
    "GifWriter",
    "GradientBuilder",
    "GradientTable",
    "ImageSequenceWriter",
    "InvalidParameters",
    "LinearGradient",
    "RangeState",
    "RangeTracker",
    "RenderContext",
    "RenderResult",
    "ScalarCsvWriter",
    "SplineGradient",
    "build_gradient",
    "compute_radii",
    "escape_measure",
    "evaluate_grid",
    "format_metadata",
    "frame_name",
    "observed_range",
    "pixel_grid",
    "run_sequence",
    "static_range",
    "write_gradient_csv",
    "write_gradient_preview",
    "write_single_image",
]
