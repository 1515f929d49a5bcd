"""Orbit-density accumulation over the escaping pixels of a grid."""

from __future__ import annotations

import threading
from typing import Optional

import numpy as np

from .errors import ConfigurationError
from .grid import CancelToken, Grid, check_cancelled, run_rows
from .orbits import BACKENDS, ESCAPE_RADIUS_SQUARED, classify_with_trace
from .plane import complex_to_pixel, complex_to_pixel_arrays, sample_axes


class DensityAccumulator:
    """Counts how often orbit values land on each pixel of ``grid``.

    Increments and the running maximum are guarded by a lock so one
    accumulator can be fed from several threads.
    """

    def __init__(self, grid: Grid) -> None:
        self.grid = grid
        self._lock = threading.Lock()

    @property
    def max_count(self) -> int:
        return self.grid.max_count

    def on_visit(self, z: complex) -> None:
        x, y = complex_to_pixel(self.grid.config, z)
        if not self.grid.in_bounds(x, y):
            return
        with self._lock:
            count = self.grid.counts[y, x] + 1
            self.grid.counts[y, x] = count
            if count > self.grid.max_count:
                self.grid.max_count = int(count)

    def trace(self, x: int, y: int) -> int:
        """Re-iterate the seed at pixel ``(x, y)`` and record its orbit."""

        return classify_with_trace(self.grid.config, x, y, self.on_visit)


def accumulate(
    grid: Grid,
    *,
    workers: int = 1,
    cancel: Optional[CancelToken] = None,
) -> DensityAccumulator:
    """Trace every escaping seed of ``grid`` through a :class:`DensityAccumulator`."""

    accumulator = DensityAccumulator(grid)
    escapes = grid.escapes

    def trace_row(y: int) -> None:
        for x in np.flatnonzero(escapes[y]):
            check_cancelled(cancel)
            accumulator.trace(int(x), y)

    run_rows(trace_row, grid.height, workers)
    return accumulator


def accumulate_vectorized(
    grid: Grid,
    *,
    batch_size: int = 65536,
    cancel: Optional[CancelToken] = None,
) -> None:
    """Lock-step NumPy equivalent of :func:`accumulate`.

    Escaping seeds are iterated together in batches and their intermediate
    values are scattered into ``grid.counts`` with ``np.add.at``.
    """

    config = grid.config
    height, width = config.shape
    xs, ys = sample_axes(config)
    rows, cols = np.nonzero(grid.escapes)
    seed_re = xs[cols]
    seed_im = ys[rows]
    batch_size = max(int(batch_size), 1)

    for start in range(0, seed_re.size, batch_size):
        check_cancelled(cancel)
        cr = seed_re[start:start + batch_size]
        ci = seed_im[start:start + batch_size]
        zr = np.zeros_like(cr)
        zi = np.zeros_like(ci)
        active = np.arange(cr.size)
        for _ in range(1, config.max_iterations):
            if active.size == 0:
                break
            ar, ai = zr[active], zi[active]
            ar, ai = ar * ar - ai * ai + cr[active], 2.0 * ar * ai + ci[active]
            zr[active] = ar
            zi[active] = ai
            escaped = ar * ar + ai * ai >= ESCAPE_RADIUS_SQUARED
            px, py = complex_to_pixel_arrays(config, ar[~escaped], ai[~escaped])
            valid = (px >= 0) & (px < width) & (py >= 0) & (py < height)
            if np.any(valid):
                np.add.at(grid.counts, (py[valid], px[valid]), 1)
            active = active[~escaped]

    grid.max_count = int(grid.counts.max()) if grid.counts.size else 0


def accumulate_escapes(
    grid: Grid,
    *,
    backend: str = "vectorized",
    workers: int = 1,
    cancel: Optional[CancelToken] = None,
) -> None:
    """Run the accumulation pass with the strategy matching ``backend``."""

    if backend == "python":
        accumulate(grid, workers=workers, cancel=cancel)
    elif backend == "vectorized":
        accumulate_vectorized(grid, cancel=cancel)
    else:
        raise ConfigurationError(f"unknown backend {backend!r}; expected one of {', '.join(BACKENDS)}")
