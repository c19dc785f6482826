"""Gradient tables that map escape measures to RGB colors."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

import numpy as np

from .ranging import RangeState

DEFAULT_TABLE_SIZE = 1000
DEFAULT_LINEAR_STEPS = 200


@dataclass(frozen=True)
class ControlColor:
    """An anchor color placed at ``position`` along the gradient parameter."""

    position: float
    rgb: tuple[int, int, int]


DEFAULT_CONTROLS: tuple[ControlColor, ...] = (
    ControlColor(0.0, (0, 7, 100)),
    ControlColor(0.5, (32, 107, 203)),
    ControlColor(0.667, (237, 255, 255)),
    ControlColor(0.833, (255, 170, 0)),
    ControlColor(1.0, (0, 2, 0)),
)


def validate_controls(controls: Sequence[ControlColor]) -> None:
    """Raise ``ValueError`` unless ``controls`` describe a usable gradient."""

    if len(controls) < 2:
        raise ValueError("a gradient needs at least two control colors")
    positions = [float(control.position) for control in controls]
    if positions[0] != 0.0 or positions[-1] != 1.0:
        raise ValueError("control positions must start at 0 and end at 1")
    if any(b <= a for a, b in zip(positions, positions[1:])):
        raise ValueError("control positions must be strictly increasing")
    for control in controls:
        if len(control.rgb) != 3 or any(not 0 <= channel <= 255 for channel in control.rgb):
            raise ValueError(f"invalid RGB triple {control.rgb!r}")


def _to_uint8(values: np.ndarray) -> np.ndarray:
    return np.clip(np.floor(values + 0.5), 0, 255).astype(np.uint8)


@dataclass(frozen=True)
class GradientTable:
    """Fixed-size lookup table of RGB colors indexed by scaled escape measure."""

    colors: np.ndarray

    def __post_init__(self) -> None:
        colors = np.asarray(self.colors, dtype=np.uint8)
        if colors.ndim != 2 or colors.shape[1] != 3:
            raise ValueError("gradient colors must have shape (size, 3)")
        if colors.shape[0] < 2:
            raise ValueError("a gradient table needs at least two entries")
        object.__setattr__(self, "colors", colors)

    @property
    def size(self) -> int:
        return int(self.colors.shape[0])

    def index_for(self, values, value_range: RangeState) -> np.ndarray:
        """Return the clamped table index for each value in ``values``."""

        values = np.asarray(values, dtype=np.float64)
        last = self.size - 1
        if value_range.width <= 0:
            # Flat field: everything at or below the bound maps to the first entry.
            return np.where(values > value_range.minimum, last, 0).astype(np.int64)
        scaled = np.floor(last * (values - value_range.minimum) / value_range.width)
        return np.clip(scaled, 0, last).astype(np.int64)

    def lookup(self, value: float, value_range: RangeState) -> tuple[int, int, int]:
        index = int(self.index_for(value, value_range))
        return tuple(int(channel) for channel in self.colors[index])

    def colorize(self, field: np.ndarray, value_range: RangeState) -> np.ndarray:
        """Map a scalar field of shape (height, width) to an RGB image."""

        return self.colors[self.index_for(field, value_range)]

    def preview(self, height: int = 48) -> np.ndarray:
        """Return a horizontal strip showing every table entry."""

        return np.repeat(self.colors[np.newaxis, :, :], max(int(height), 1), axis=0)


class GradientBuilder(ABC):
    """Produces a :class:`GradientTable` from some description of a palette."""

    @abstractmethod
    def build(self) -> GradientTable:
        raise NotImplementedError


class SplineGradient(GradientBuilder):
    """Monotone piecewise-cubic interpolation between control colors."""

    def __init__(self, controls: Sequence[ControlColor] = DEFAULT_CONTROLS, table_size: int = DEFAULT_TABLE_SIZE) -> None:
        validate_controls(controls)
        if table_size < 2:
            raise ValueError("table_size must be at least 2")
        self.table_size = int(table_size)
        self.x = np.array([control.position for control in controls], dtype=np.float64)
        self.y = np.array([control.rgb for control in controls], dtype=np.float64)
        self._c1, self._c2, self._c3 = self._coefficients()

    def _coefficients(self) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
        x, y = self.x, self.y
        n = len(x)
        dx = np.diff(x)
        slope = np.diff(y, axis=0) / dx[:, np.newaxis]

        c1 = np.empty_like(y)
        c1[0] = slope[0]
        c1[-1] = slope[-1]
        for i in range(1, n - 1):
            dx1 = x[i] - x[i - 1]
            dx2 = x[i + 1] - x[i]
            dx3 = x[i + 1] - x[i - 1]
            for d in range(3):
                left, right = slope[i - 1, d], slope[i, d]
                if left * right <= 0:
                    c1[i, d] = 0.0
                else:
                    c1[i, d] = 3 * dx3 / ((dx3 + dx2) / left + (dx3 + dx1) / right)

        z = c1[:-1] + c1[1:] - 2 * slope
        c2 = (slope - c1[:-1] - z) / dx[:, np.newaxis]
        c3 = z / (dx * dx)[:, np.newaxis]
        return c1, c2, c3

    def sample(self, t) -> np.ndarray:
        """Evaluate the spline at parameter(s) ``t`` in [0, 1], unrounded."""

        t = np.clip(np.asarray(t, dtype=np.float64), self.x[0], self.x[-1])
        segment = np.clip(np.searchsorted(self.x, t, side="right") - 1, 0, len(self.x) - 2)
        delta = (t - self.x[segment])[..., np.newaxis]
        return (
            self.y[segment]
            + self._c1[segment] * delta
            + self._c2[segment] * delta ** 2
            + self._c3[segment] * delta ** 3
        )

    def build(self) -> GradientTable:
        positions = np.linspace(self.x[0], self.x[-1], self.table_size, dtype=np.float64)
        return GradientTable(_to_uint8(self.sample(positions)))


class LinearGradient(GradientBuilder):
    """Piecewise-linear interpolation with an explicit step count per segment."""

    def __init__(self, controls: Sequence[ControlColor] = DEFAULT_CONTROLS, steps: int | Sequence[int] = DEFAULT_LINEAR_STEPS) -> None:
        validate_controls(controls)
        segments = len(controls) - 1
        if isinstance(steps, int):
            steps = [steps] * segments
        steps = [int(step) for step in steps]
        if len(steps) != segments:
            raise ValueError(f"expected {segments} step counts, got {len(steps)}")
        if any(step < 1 for step in steps):
            raise ValueError("every segment needs at least one step")
        self.colors = np.array([control.rgb for control in controls], dtype=np.float64)
        self.steps = steps

    def build(self) -> GradientTable:
        rows = []
        for start, end, count in zip(self.colors[:-1], self.colors[1:], self.steps):
            ratios = (np.arange(count, dtype=np.float64) / count)[:, np.newaxis]
            rows.append(start + (end - start) * ratios)
        rows.append(self.colors[-1:])
        return GradientTable(_to_uint8(np.concatenate(rows, axis=0)))


class ColormapGradient(GradientBuilder):
    """Sample a named matplotlib colormap into a gradient table."""

    def __init__(self, name: str, table_size: int = DEFAULT_TABLE_SIZE) -> None:
        if table_size < 2:
            raise ValueError("table_size must be at least 2")
        self.name = name
        self.table_size = int(table_size)

    def build(self) -> GradientTable:
        from matplotlib import colormaps

        try:
            cmap = colormaps[self.name]
        except KeyError as exc:
            raise ValueError(f"unknown colormap '{self.name}'") from exc
        rgba = np.asarray(cmap(np.linspace(0.0, 1.0, self.table_size)), dtype=np.float64)
        return GradientTable(_to_uint8(rgba[:, :3] * 255))


GRADIENT_KINDS = ("spline", "linear", "colormap")


def build_gradient(
    kind: str = "spline",
    *,
    controls: Sequence[ControlColor] = DEFAULT_CONTROLS,
    table_size: int = DEFAULT_TABLE_SIZE,
    steps: int | Sequence[int] = DEFAULT_LINEAR_STEPS,
    colormap: str = "twilight_shifted",
) -> GradientTable:
    """Build a gradient table using the interpolation policy named by ``kind``."""

    kind = kind.lower()
    if kind == "spline":
        builder: GradientBuilder = SplineGradient(controls, table_size)
    elif kind == "linear":
        builder = LinearGradient(controls, steps)
    elif kind == "colormap":
        builder = ColormapGradient(colormap, table_size)
    else:
        raise ValueError(f"Unknown gradient kind '{kind}'. Valid choices: {', '.join(GRADIENT_KINDS)}.")
    return builder.build()


def write_gradient_csv(table: GradientTable, path: Path) -> None:
    """Dump ``index, r, g, b`` for each table entry."""

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    rows = np.column_stack((np.arange(table.size), table.colors.astype(np.int64)))
    np.savetxt(str(path), rows, fmt="%d", delimiter=",")
