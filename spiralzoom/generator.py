"""Camera path for a zoom sequence: per-frame focus point and view radius."""

from __future__ import annotations

import math
from dataclasses import dataclass
from functools import cached_property
from typing import Iterator, Optional

import numpy as np


class InvalidParameters(ValueError):
    """Raised when a combination of zoom parameters cannot be rendered."""

    def __init__(self, problems: list[str]) -> None:
        super().__init__("; ".join(problems))
        self.problems = problems


@dataclass(frozen=True)
class FrameSpec:
    """Focus point and view radius for one frame."""

    index: int
    center: complex
    radius: float


def compute_radii(radius_start: float, radius_end: float, frame_count: int) -> np.ndarray:
    """Geometric progression of view radii from ``radius_start`` to ``radius_end``."""

    if frame_count <= 0:
        return np.array([], dtype=np.float64)
    if frame_count == 1:
        return np.array([radius_start], dtype=np.float64)

    log_rate = (np.log(np.float64(radius_end)) - np.log(np.float64(radius_start))) / (frame_count - 1)
    radii = np.float64(radius_start) * np.exp(np.arange(frame_count, dtype=np.float64) * log_rate)
    # Pin the endpoints so the sequence starts and ends on the requested radii.
    radii[0] = radius_start
    radii[-1] = radius_end
    return radii


@dataclass(frozen=True)
class CameraPath:
    """Zoom from ``radius_start`` to ``radius_end`` around ``center``.

    When ``theta_start`` and ``turns`` are given the focus spirals in toward the
    center, starting half a view radius away. The drift shrinks with the fraction
    of frames remaining, and the last frame sits on the center itself.
    """

    center: complex
    radius_start: float
    radius_end: float
    frame_count: int
    theta_start: Optional[float] = None
    turns: Optional[float] = None

    @property
    def spiral(self) -> bool:
        return self.theta_start is not None and self.turns is not None

    def problems(self) -> list[str]:
        problems = []
        if self.radius_start <= 0:
            problems.append("radius-start must be positive")
        if self.radius_end <= 0:
            problems.append("radius-end must be positive")
        if self.radius_start == self.radius_end:
            problems.append("radius-start and radius-end must differ")
        if self.frame_count <= 1:
            problems.append("frames must be greater than 1")
        if (self.theta_start is None) != (self.turns is None):
            problems.append("theta-start and turns must be given together")
        return problems

    def validate(self) -> "CameraPath":
        problems = self.problems()
        if problems:
            raise InvalidParameters(problems)
        return self

    @cached_property
    def radii(self) -> np.ndarray:
        return compute_radii(self.radius_start, self.radius_end, self.frame_count)

    def _check_index(self, index: int) -> None:
        if not 0 <= index < self.frame_count:
            raise IndexError(f"frame index {index} outside [0, {self.frame_count - 1}]")

    def radius(self, index: int) -> float:
        self._check_index(index)
        return float(self.radii[index])

    def focus(self, index: int) -> complex:
        self._check_index(index)
        center = complex(self.center)
        if not self.spiral or index == self.frame_count - 1:
            return center
        remaining = (self.frame_count - index) / self.frame_count
        angle = self.theta_start + 2.0 * math.pi * self.turns * remaining
        drift = 0.5 * remaining * self.radius(index)
        return center + complex(drift * math.cos(angle), drift * math.sin(angle))

    def frame(self, index: int) -> FrameSpec:
        return FrameSpec(index=index, center=self.focus(index), radius=self.radius(index))

    def __len__(self) -> int:
        return self.frame_count

    def __iter__(self) -> Iterator[FrameSpec]:
        for index in range(self.frame_count):
            yield self.frame(index)
