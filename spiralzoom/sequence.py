"""Drive a full zoom sequence frame by frame."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Optional, Sequence

from .generator import CameraPath, FrameSpec
from .gradient import GradientTable
from .output import FrameWriter
from .ranging import RangeState, RangeTracker
from .renderer import DEFAULT_MAX_ITERATIONS, FrameRenderer

FRAME_DIGITS = 4


@dataclass
class RenderContext:
    """Everything shared by the frames of one run, built once and passed explicitly."""

    gradient: GradientTable
    max_iterations: int = DEFAULT_MAX_ITERATIONS
    tracker: Optional[RangeTracker] = None
    workers: int = 1
    device: Optional[str] = None
    _renderer: Optional[FrameRenderer] = field(default=None, init=False, repr=False)

    @property
    def adaptive(self) -> bool:
        return self.tracker is not None

    @property
    def renderer(self) -> FrameRenderer:
        if self._renderer is None:
            self._renderer = FrameRenderer(
                gradient=self.gradient,
                max_iterations=self.max_iterations,
                tracker=self.tracker,
                workers=self.workers,
                device=self.device,
            )
        return self._renderer


@dataclass(frozen=True)
class FrameRecord:
    """What was rendered for a frame and where it went."""

    spec: FrameSpec
    name: str
    value_range: RangeState
    observed: RangeState


def frame_name(index: int, prefix: str = "frame", extension: Optional[str] = "png", digits: int = FRAME_DIGITS) -> str:
    name = f"{prefix}-{index:0{digits}d}"
    if extension:
        name = f"{name}.{extension.lstrip('.')}"
    return name


def _num(value: float) -> str:
    return repr(float(value))


def format_metadata(record: FrameRecord, adaptive: bool) -> str:
    """One report line per frame.

    Static runs report ``<name> <re>,<im> <radius>``; adaptive runs report
    ``<index> <radius> <observed min> <observed max>``.
    """

    spec = record.spec
    if adaptive:
        return f"{spec.index} {_num(spec.radius)} {_num(record.observed.minimum)} {_num(record.observed.maximum)}"
    center = complex(spec.center)
    return f"{record.name} {_num(center.real)},{_num(center.imag)} {_num(spec.radius)}"


def run_sequence(
    path: CameraPath,
    context: RenderContext,
    width: int,
    height: int,
    writers: Sequence[FrameWriter] = (),
    *,
    prefix: str = "frame",
    extension: Optional[str] = "png",
    report: Optional[Callable[[str], None]] = print,
) -> list[FrameRecord]:
    """Render every frame of ``path`` in order and hand each to ``writers``.

    Frames are processed strictly in index order; adaptive range smoothing
    depends on it. Writers receive the frame name without an extension and
    add their own.
    """

    path.validate()
    renderer = context.renderer
    records: list[FrameRecord] = []
    for spec in path:
        result = renderer.render(spec, width, height)
        stem = frame_name(spec.index, prefix, None)
        name = frame_name(spec.index, prefix, extension)
        record = FrameRecord(spec=spec, name=name, value_range=result.value_range, observed=result.observed)
        if report is not None:
            report(format_metadata(record, context.adaptive))
        for writer in writers:
            writer.write(spec.index, stem, result)
        records.append(record)
    return records
