"""Escape-time classification of pixels under z <- z**2 + c."""

from __future__ import annotations

from typing import Callable, Optional

import numpy as np
import tensorflow as tf

from .errors import ConfigurationError
from .grid import CancelToken, Grid, check_cancelled, run_rows
from .plane import RunConfig, pixel_to_complex, sample_axes

ESCAPE_RADIUS = 2.0
# Every backend evaluates z**2 + c and |z|**2 >= 4 with the same float operations.
ESCAPE_RADIUS_SQUARED = ESCAPE_RADIUS * ESCAPE_RADIUS
BACKENDS = ("vectorized", "python")

Visitor = Callable[[complex], None]


def escape_time(c: complex, max_iterations: int, visit: Optional[Visitor] = None) -> int:
    """Iterate from ``z = 0`` and return the 1-based step at which ``|z|`` reaches 2.

    Returns ``max_iterations`` when no escape happens first. ``visit`` is
    called with every iterated value that did not escape, so the escaping
    value itself is never reported.
    """

    cr, ci = c.real, c.imag
    zr = zi = 0.0
    for i in range(1, max_iterations):
        zr, zi = zr * zr - zi * zi + cr, 2.0 * zr * zi + ci
        if zr * zr + zi * zi >= ESCAPE_RADIUS_SQUARED:
            return i
        if visit is not None:
            visit(complex(zr, zi))
    return max_iterations


def classify(config: RunConfig, x: int, y: int) -> int:
    return escape_time(pixel_to_complex(config, x, y), config.max_iterations)


def classify_with_trace(config: RunConfig, x: int, y: int, visit: Visitor) -> int:
    """Same as :func:`classify` but reports the orbit to ``visit``."""

    return escape_time(pixel_to_complex(config, x, y), config.max_iterations, visit)


@tf.function
def _classify_step(
    zr: tf.Tensor, zi: tf.Tensor, cr: tf.Tensor, ci: tf.Tensor, counts: tf.Tensor, active: tf.Tensor, step: tf.Tensor
) -> tuple[tf.Tensor, tf.Tensor, tf.Tensor, tf.Tensor]:
    """Advance every still-bounded point by one iteration."""

    two = tf.constant(2.0, dtype=tf.float64)
    zr, zi = (
        tf.where(active, zr * zr - zi * zi + cr, zr),
        tf.where(active, two * zr * zi + ci, zi),
    )
    limit = tf.constant(ESCAPE_RADIUS_SQUARED, dtype=tf.float64)
    escaped = tf.logical_and(active, zr * zr + zi * zi >= limit)
    counts = tf.where(escaped, tf.fill(tf.shape(counts), step), counts)
    active = tf.logical_and(active, tf.logical_not(escaped))
    return zr, zi, counts, active


@tf.function
def _classify_run(cr: tf.Tensor, ci: tf.Tensor, max_iterations: tf.Tensor) -> tf.Tensor:
    """Escape times for a block of seeds using a TensorFlow while loop."""

    max_iterations = tf.cast(max_iterations, tf.int32)
    zr = tf.zeros_like(cr)
    zi = tf.zeros_like(ci)
    counts = tf.fill(tf.shape(cr), max_iterations)
    active = tf.ones(tf.shape(cr), tf.bool)
    step = tf.constant(1, dtype=tf.int32)

    def cond(step, zr, zi, counts, active):
        return tf.logical_and(tf.less(step, max_iterations), tf.reduce_any(active))

    def body(step, zr, zi, counts, active):
        zr, zi, counts, active = _classify_step(zr, zi, cr, ci, counts, active, step)
        return step + 1, zr, zi, counts, active

    _, _, _, counts, _ = tf.while_loop(cond, body, (step, zr, zi, counts, active))
    return counts


def classify_grid(
    config: RunConfig,
    *,
    device: Optional[str] = None,
    row_block: int = 128,
    cancel: Optional[CancelToken] = None,
) -> np.ndarray:
    """Escape times for every pixel, computed in blocks of rows on ``device``."""

    xs, ys = sample_axes(config)
    height, width = config.shape
    iterations = np.empty((height, width), dtype=np.int32)
    max_iterations = tf.constant(config.max_iterations, dtype=tf.int32)
    row_block = max(int(row_block), 1)

    with tf.device(device if device is not None else "/CPU:0"):
        x_tf = tf.convert_to_tensor(xs, dtype=tf.float64)
        for start in range(0, height, row_block):
            check_cancelled(cancel)
            stop = min(start + row_block, height)
            y_tf = tf.convert_to_tensor(ys[start:stop], dtype=tf.float64)
            X, Y = tf.meshgrid(x_tf, y_tf)
            counts = _classify_run(X, Y, max_iterations)
            iterations[start:stop] = counts.numpy()
    return iterations


def classify_grid_python(
    config: RunConfig,
    *,
    workers: int = 1,
    cancel: Optional[CancelToken] = None,
) -> np.ndarray:
    """Reference per-pixel classification, optionally spread over threads."""

    height, width = config.shape
    iterations = np.empty((height, width), dtype=np.int32)

    def classify_row(y: int) -> None:
        for x in range(width):
            check_cancelled(cancel)
            iterations[y, x] = classify(config, x, y)

    run_rows(classify_row, height, workers)
    return iterations


def mark_escapes(
    grid: Grid,
    *,
    backend: str = "vectorized",
    workers: int = 1,
    device: Optional[str] = None,
    cancel: Optional[CancelToken] = None,
) -> np.ndarray:
    """Run the classification pass and store the escape plane on ``grid``."""

    if backend == "vectorized":
        iterations = classify_grid(grid.config, device=device, cancel=cancel)
    elif backend == "python":
        iterations = classify_grid_python(grid.config, workers=workers, cancel=cancel)
    else:
        raise ConfigurationError(f"unknown backend {backend!r}; expected one of {', '.join(BACKENDS)}")
    grid.escapes[...] = iterations < grid.config.max_iterations
    return iterations
