"""Summary statistics over a finished visitation-count grid."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np

from .errors import DegenerateRunError
from .grid import Grid
from .plane import RunConfig

DECILES = 10
HISTOGRAM_BUCKETS = 20


@dataclass(frozen=True)
class Statistics:
    """Read-only summary of a count grid, derived once accumulation is done."""

    max_count: int
    mean: float
    frequency: tuple[int, ...]
    num_escaped: int
    total_cells: int
    percentile_limits: tuple[int, ...]

    @property
    def escaped_fraction(self) -> float:
        return self.num_escaped / self.total_cells if self.total_cells else 0.0


@dataclass(frozen=True)
class HistogramBucket:
    index: int
    low: int
    high: int
    count: int
    percent: float
    cumulative_percent: float


def compute_stats(grid: Grid) -> Statistics:
    """Reduce ``grid.counts`` to a :class:`Statistics` value."""

    return stats_from_counts(grid.counts, grid.config)


def stats_from_counts(counts: np.ndarray, config: Optional[RunConfig] = None) -> Statistics:
    """Frequency table, mean and decile limits of the nonzero ``counts``.

    Raises :class:`DegenerateRunError` when every cell is zero, because the
    mean and the percentile limits are undefined for an empty population.
    """

    flat = np.asarray(counts, dtype=np.int64).ravel()
    nonzero = flat[flat > 0]
    num_escaped = int(nonzero.size)
    if num_escaped == 0:
        raise DegenerateRunError("no escaping orbit visited the viewport; statistics are undefined", config)

    max_count = int(nonzero.max())
    frequency = np.bincount(nonzero, minlength=max_count + 1)
    mean = float(nonzero.sum()) / num_escaped

    return Statistics(
        max_count=max_count,
        mean=mean,
        frequency=tuple(int(f) for f in frequency),
        num_escaped=num_escaped,
        total_cells=int(flat.size),
        percentile_limits=percentile_limits(frequency, num_escaped, max_count),
    )


def percentile_limits(frequency: np.ndarray, num_escaped: int, max_count: int) -> tuple[int, ...]:
    """Walk the frequency table upward and record the count at each decile.

    The limit for decile ``k`` is the first count at which the cumulative
    frequency exceeds ``k * num_escaped / 10``. Deciles the walk never
    reaches take the last recorded limit (or 1 if none was recorded), and
    the tenth limit is always ``max_count``.
    """

    limits: list[int] = []
    step = num_escaped / DECILES
    cumulative = 0
    for count in range(1, max_count + 1):
        cumulative += int(frequency[count])
        while len(limits) < DECILES - 1 and cumulative > (len(limits) + 1) * step:
            limits.append(count)
        if len(limits) == DECILES - 1:
            break

    fill = limits[-1] if limits else 1
    limits.extend([fill] * (DECILES - 1 - len(limits)))
    limits.append(max_count)
    return tuple(limits)


def histogram(stats: Statistics, buckets: int = HISTOGRAM_BUCKETS) -> list[HistogramBucket]:
    """Group the nonzero counts into ``buckets`` equal-width ranges of ``[0, max]``.

    A count equal to the maximum lands in the last bucket.
    """

    width = stats.max_count / buckets
    edges = width * np.arange(1, buckets + 1, dtype=np.float64)
    values = np.arange(len(stats.frequency), dtype=np.float64)[1:]
    weights = np.asarray(stats.frequency[1:], dtype=np.int64)

    slots = np.minimum(np.searchsorted(edges, values, side="right"), buckets - 1)
    per_bucket = np.bincount(slots, weights=weights, minlength=buckets).astype(np.int64)

    result: list[HistogramBucket] = []
    cumulative = 0.0
    for i, count in enumerate(per_bucket):
        percent = float(count) / stats.num_escaped * 100.0
        cumulative += percent
        result.append(
            HistogramBucket(
                index=i + 1,
                low=int(width * i),
                high=int(width * (i + 1)),
                count=int(count),
                percent=percent,
                cumulative_percent=cumulative,
            )
        )
    return result
