"""Escape-time evaluation and per-frame rendering."""

from __future__ import annotations

import math
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Optional

import numpy as np
import tensorflow as tf

from .generator import FrameSpec
from .gradient import GradientTable
from .ranging import RangeState, RangeTracker, observed_range, static_range

ESCAPE_RADIUS_SQUARED = 4.0
DEFAULT_MAX_ITERATIONS = 3000


def escape_measure(c: complex, max_iterations: int = DEFAULT_MAX_ITERATIONS) -> float:
    """Smoothed escape time of ``c``: ``ln(n)`` for the escaping iteration ``n``.

    Points that have not escaped after ``max_iterations`` iterations get
    ``ln(max_iterations)``.
    """

    z = 0j
    for n in range(1, max_iterations + 1):
        z = z * z + c
        if z.real * z.real + z.imag * z.imag >= ESCAPE_RADIUS_SQUARED:
            return math.log(n)
    return math.log(max_iterations)


@tf.function
def _escape_step(zs: tf.Tensor, cs: tf.Tensor, ns: tf.Tensor, active: tf.Tensor) -> tuple[tf.Tensor, tf.Tensor, tf.Tensor]:
    """Perform a single iteration for points that have not escaped."""

    zs_new = zs * zs + cs
    zs = tf.where(active, zs_new, zs)
    ns = ns + tf.cast(active, tf.int32)
    re = tf.math.real(zs)
    im = tf.math.imag(zs)
    horizon = tf.cast(ESCAPE_RADIUS_SQUARED, re.dtype)
    new_active = tf.logical_and(active, re * re + im * im < horizon)
    return zs, ns, new_active


@tf.function
def _escape_run(cs: tf.Tensor, max_iterations: tf.Tensor) -> tuple[tf.Tensor, tf.Tensor, tf.Tensor, tf.Tensor]:
    """Iterate ``z <- z^2 + c`` from zero using a TensorFlow while loop."""

    max_iterations = tf.cast(max_iterations, tf.int32)
    i = tf.constant(0, dtype=tf.int32)
    zs = tf.zeros_like(cs)
    ns = tf.zeros(tf.shape(cs), tf.int32)
    active = tf.ones_like(ns, tf.bool)

    def cond(i: tf.Tensor, zs: tf.Tensor, ns: tf.Tensor, active: tf.Tensor) -> tf.Tensor:
        return tf.logical_and(tf.less(i, max_iterations), tf.reduce_any(active))

    def body(i: tf.Tensor, zs: tf.Tensor, ns: tf.Tensor, active: tf.Tensor) -> tuple[tf.Tensor, tf.Tensor, tf.Tensor, tf.Tensor]:
        zs, ns, active = _escape_step(zs, cs, ns, active)
        return i + 1, zs, ns, active

    return tf.while_loop(cond, body, (i, zs, ns, active))


def evaluate_grid(real: np.ndarray, imag: np.ndarray, max_iterations: int = DEFAULT_MAX_ITERATIONS, *, device: Optional[str] = None) -> np.ndarray:
    """Escape measure for every point of the grid ``real x imag``.

    Returns an array of shape ``(len(imag), len(real))``; row ``r`` holds the
    points with imaginary part ``imag[r]``.
    """

    real = np.asarray(real, dtype=np.float64)
    imag = np.asarray(imag, dtype=np.float64)
    if real.size == 0 or imag.size == 0:
        return np.zeros((imag.size, real.size), dtype=np.float64)

    with tf.device(device if device is not None else "/CPU:0"):
        X, Y = tf.meshgrid(tf.convert_to_tensor(real), tf.convert_to_tensor(imag))
        cs = tf.complex(X, Y)
        _, _, ns, active = _escape_run(cs, tf.constant(max_iterations, dtype=tf.int32))

        # Escaped points always have ns >= 1, so the log is finite where it is used.
        ns_float = tf.maximum(tf.cast(ns, tf.float64), tf.constant(1.0, dtype=tf.float64))
        interior = tf.fill(tf.shape(ns_float), tf.constant(math.log(max_iterations), dtype=tf.float64))
        measure = tf.where(active, interior, tf.math.log(ns_float))

    return measure.numpy()


def pixel_grid(spec: FrameSpec, width: int, height: int) -> tuple[np.ndarray, np.ndarray]:
    """Plane coordinates of each pixel column and row for ``spec``.

    Row 0 is the top of the image, which is the most positive imaginary value.
    The focus falls exactly on pixel ``(width // 2, height // 2)``.
    """

    scale = np.float64(2.0) * np.float64(spec.radius) / np.float64(width)
    center = complex(spec.center)
    cols = np.arange(width, dtype=np.float64)
    rows = np.arange(height, dtype=np.float64)
    real = np.float64(center.real) + (cols - width // 2) * scale
    imag = np.float64(center.imag) + (height // 2 - rows) * scale
    return real, imag


@dataclass(frozen=True)
class RenderResult:
    """Scalar field, colored image and calibration used for one frame."""

    spec: FrameSpec
    field: np.ndarray
    image: np.ndarray
    value_range: RangeState
    observed: RangeState


@dataclass
class FrameRenderer:
    """Evaluate and color one frame at a time.

    With a ``tracker`` the color range adapts to each frame's data; without one the
    fixed domain ``[0, ln(max_iterations)]`` is used.
    """

    gradient: GradientTable
    max_iterations: int = DEFAULT_MAX_ITERATIONS
    tracker: Optional[RangeTracker] = None
    workers: int = 1
    device: Optional[str] = None

    def compute_field(self, spec: FrameSpec, width: int, height: int) -> np.ndarray:
        real, imag = pixel_grid(spec, width, height)
        bands = min(max(int(self.workers), 1), height)
        if bands <= 1:
            return evaluate_grid(real, imag, self.max_iterations, device=self.device)

        # Each worker fills a disjoint band of rows.
        field = np.empty((height, width), dtype=np.float64)
        row_groups = np.array_split(np.arange(height), bands)
        with ThreadPoolExecutor(max_workers=bands) as pool:
            futures = [
                (rows, pool.submit(evaluate_grid, real, imag[rows], self.max_iterations, device=self.device))
                for rows in row_groups
            ]
            for rows, future in futures:
                field[rows[0]:rows[-1] + 1] = future.result()
        return field

    def render(self, spec: FrameSpec, width: int, height: int) -> RenderResult:
        field = self.compute_field(spec, width, height)
        observed = observed_range(field)
        if self.tracker is not None:
            value_range = self.tracker.update(observed)
        else:
            value_range = static_range(self.max_iterations)
        image = self.gradient.colorize(field, value_range)
        return RenderResult(spec=spec, field=field, image=image, value_range=value_range, observed=observed)
