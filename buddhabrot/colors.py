"""Policies that turn visitation counts into RGB colours."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from matplotlib import colormaps

from .errors import ConfigurationError
from .stats import DECILES, Statistics

POLICIES = ("percentile", "fixed", "power", "colormap")


def _to_bytes(r: np.ndarray, g: np.ndarray, b: np.ndarray) -> np.ndarray:
    rgb = np.stack((r, g, b), axis=-1)
    return np.floor(np.clip(rgb, 0.0, 1.0) * 255).astype(np.uint8)


def _ratio(numerator: np.ndarray, denominator: np.ndarray) -> np.ndarray:
    """Elementwise ``numerator / denominator`` with 0 where the denominator is 0."""

    numerator = np.asarray(numerator, dtype=np.float64)
    denominator = np.broadcast_to(np.asarray(denominator, dtype=np.float64), numerator.shape)
    out = np.zeros(numerator.shape, dtype=np.float64)
    np.divide(numerator, denominator, out=out, where=denominator != 0)
    return np.clip(out, 0.0, 1.0)


class ColorMapper:
    """Base class: ``colorize`` maps an array of counts, ``__call__`` one count."""

    def colorize(self, counts: np.ndarray) -> np.ndarray:
        raise NotImplementedError

    def __call__(self, count: int) -> tuple[int, int, int]:
        r, g, b = self.colorize(np.array([count], dtype=np.int64))[0]
        return int(r), int(g), int(b)


@dataclass(frozen=True)
class FixedFractionMapper(ColorMapper):
    """Bands at fixed fractions of the maximum count.

    Most counts fall far below the maximum, so the low twentieths of the
    range get most of the colour variation: blue from half intensity
    (0-5%), blue to purple (5-10%), purple to red (10-15%), red to yellow
    (15-50%) and yellow to white (50-100%).
    """

    max_count: int

    def colorize(self, counts: np.ndarray) -> np.ndarray:
        c = np.asarray(counts, dtype=np.float64)
        t = max(self.max_count, 1) / 20.0
        zeros = np.zeros_like(c)
        ones = np.ones_like(c)

        conditions = [c == 0, c < t, c < 2 * t, c < 3 * t, c < 10 * t]
        a = [
            zeros,
            c / t / 2,
            (c - t) / t,
            (c - 2 * t) / t,
            (c - 3 * t) / (7 * t),
        ]
        top = np.clip((c - 10 * t) / (10 * t), 0.0, 1.0)

        r = np.select(conditions, [zeros, zeros, a[2], ones, ones], default=ones)
        g = np.select(conditions, [zeros, zeros, zeros, zeros, a[4]], default=ones)
        b = np.select(conditions, [zeros, 0.5 + a[1], ones, 1 - a[3], zeros], default=top)
        return _to_bytes(r, g, b)


@dataclass(frozen=True)
class PercentileMapper(ColorMapper):
    """Seven colour bands whose edges follow the decile limits of the data.

    Blue ramp (0-20%), blue to purple (20-30%), purple to red (30-50%), red
    to yellow (50-60%), yellow to green (60-70%), green to cyan (70-80%) and
    cyan to white (80-100%). A band whose limits coincide has no interior:
    counts below its edge take rank 0 and counts at or above it rank 1, so
    the maximum is white even when the top deciles collapse.
    """

    limits: tuple[int, ...]

    def __post_init__(self) -> None:
        if len(self.limits) != DECILES:
            raise ConfigurationError(f"expected {DECILES} percentile limits, got {len(self.limits)}")

    @classmethod
    def from_stats(cls, stats: Statistics) -> "PercentileMapper":
        return cls(tuple(stats.percentile_limits))

    def colorize(self, counts: np.ndarray) -> np.ndarray:
        c = np.asarray(counts, dtype=np.float64)
        lim = np.asarray(self.limits, dtype=np.float64)
        lows = np.array([0.0, lim[1], lim[2], lim[4], lim[5], lim[6], lim[7]])
        highs = np.array([lim[1], lim[2], lim[4], lim[5], lim[6], lim[7], lim[9]])

        band = np.searchsorted(highs[:-1], c, side="right")
        span = highs[band] - lows[band]
        rank = np.where(span == 0, (c >= highs[band]).astype(np.float64), _ratio(c - lows[band], span))
        zeros = np.zeros_like(c)
        ones = np.ones_like(c)

        choices = [band == i for i in range(7)]
        r = np.select(choices, [zeros, rank, ones, ones, 1 - rank, zeros, rank])
        g = np.select(choices, [zeros, zeros, zeros, rank, ones, ones, ones])
        b = np.select(choices, [0.5 + rank / 2, ones, 1 - rank, zeros, zeros, rank, ones])

        rgb = _to_bytes(r, g, b)
        rgb[c == 0] = 0
        return rgb


@dataclass(frozen=True)
class PowerMapper(ColorMapper):
    """Quick preview colouring: cubic red and green, linear blue."""

    max_count: int

    def colorize(self, counts: np.ndarray) -> np.ndarray:
        a = _ratio(np.asarray(counts, dtype=np.float64), self.max_count)
        return _to_bytes(a ** 3, a ** 3, a)


@dataclass(frozen=True)
class ColormapMapper(ColorMapper):
    """Log-scaled counts looked up in a matplotlib colormap."""

    max_count: int
    name: str = "inferno"
    gamma: float = 1.0

    def __post_init__(self) -> None:
        if self.name not in colormaps:
            raise ConfigurationError(f"unknown matplotlib colormap {self.name!r}")
        if self.gamma <= 0:
            raise ConfigurationError(f"gamma must be positive, got {self.gamma}")

    def colorize(self, counts: np.ndarray) -> np.ndarray:
        c = np.asarray(counts, dtype=np.float64)
        v = _ratio(np.log1p(c), np.log1p(float(self.max_count))) ** self.gamma
        rgba = np.asarray(colormaps[self.name](v))
        rgb = _to_bytes(rgba[..., 0], rgba[..., 1], rgba[..., 2])
        rgb[c == 0] = 0
        return rgb


def mapper_for(policy: str, stats: Statistics, *, colormap: str = "inferno", gamma: float = 1.0) -> ColorMapper:
    """Build the colour mapper named by ``policy`` for a finished run."""

    if policy == "percentile":
        return PercentileMapper.from_stats(stats)
    if policy == "fixed":
        return FixedFractionMapper(stats.max_count)
    if policy == "power":
        return PowerMapper(stats.max_count)
    if policy == "colormap":
        return ColormapMapper(stats.max_count, name=colormap, gamma=gamma)
    raise ConfigurationError(f"unknown colour policy {policy!r}; expected one of {', '.join(POLICIES)}")
