"""Scalar range calibration for the color mapping."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

import numpy as np

DEFAULT_SMOOTHING = 0.5


@dataclass(frozen=True)
class RangeState:
    """Input domain of the scalar-to-color mapping."""

    minimum: float
    maximum: float

    @property
    def width(self) -> float:
        return self.maximum - self.minimum


def static_range(max_iterations: int) -> RangeState:
    """The fixed domain ``[0, ln(N)]`` of the escape measure."""

    return RangeState(0.0, math.log(max_iterations))


def observed_range(field: np.ndarray) -> RangeState:
    """Fold a fully computed scalar field down to its min/max."""

    field = np.asarray(field)
    if field.size == 0:
        raise ValueError("cannot take the range of an empty field")
    return RangeState(float(np.min(field)), float(np.max(field)))


class RangeTracker:
    """Track the scalar range across frames, smoothing between updates.

    The first observation seeds the state directly. Each later observation moves
    the bounds toward the new frame's bounds by ``smoothing``; with the default of
    0.5 that is the plain average of the previous and the observed bounds.
    Updates are order dependent, so frames must be fed in sequence.
    """

    def __init__(self, smoothing: float = DEFAULT_SMOOTHING) -> None:
        if not 0.0 < smoothing <= 1.0:
            raise ValueError("smoothing must be in (0, 1]")
        self.smoothing = float(smoothing)
        self._state: Optional[RangeState] = None

    @property
    def state(self) -> Optional[RangeState]:
        return self._state

    def update(self, observed: RangeState) -> RangeState:
        previous = self._state
        if previous is None:
            self._state = observed
        else:
            k = self.smoothing
            self._state = RangeState(
                minimum=previous.minimum + k * (observed.minimum - previous.minimum),
                maximum=previous.maximum + k * (observed.maximum - previous.maximum),
            )
        return self._state

    def observe(self, field: np.ndarray) -> RangeState:
        return self.update(observed_range(field))

    def reset(self) -> None:
        self._state = None
