"""Viewport configuration and the pixel <-> complex plane mapping."""

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np

from .errors import ConfigurationError

# Inverse-mapped coordinates this close to an integer are treated as exact.
_SNAP_TOLERANCE = 1e-9


@dataclass(frozen=True)
class Viewport:
    """Rectangle of the complex plane shown by the image."""

    real_min: float = -2.0
    real_max: float = 1.0
    imag_min: float = -1.0
    imag_max: float = 1.0

    def __post_init__(self) -> None:
        if not self.real_max > self.real_min:
            raise ConfigurationError(
                f"real range [{self.real_min}, {self.real_max}] must have a positive span"
            )
        if not self.imag_max > self.imag_min:
            raise ConfigurationError(
                f"imaginary range [{self.imag_min}, {self.imag_max}] must have a positive span"
            )

    @property
    def real_span(self) -> float:
        return self.real_max - self.real_min

    @property
    def imag_span(self) -> float:
        return self.imag_max - self.imag_min


@dataclass(frozen=True)
class RunConfig:
    """Parameters that fully determine the result of a render."""

    width: int
    height: int
    max_iterations: int
    viewport: Viewport = field(default_factory=Viewport)

    def __post_init__(self) -> None:
        if int(self.width) < 1 or int(self.height) < 1:
            raise ConfigurationError(f"image size must be at least 1x1, got {self.width}x{self.height}")
        if int(self.max_iterations) < 1:
            raise ConfigurationError(f"max_iterations must be at least 1, got {self.max_iterations}")

    @property
    def x_step(self) -> float:
        return self.viewport.real_span / self.width

    @property
    def y_step(self) -> float:
        return self.viewport.imag_span / self.height

    @property
    def shape(self) -> tuple[int, int]:
        return self.height, self.width


def pixel_to_complex(config: RunConfig, x: int, y: int) -> complex:
    """Return the complex value sampled by pixel ``(x, y)``."""

    re = config.viewport.real_min + config.x_step * x
    im = config.viewport.imag_min + config.y_step * y
    return complex(re, im)


def complex_to_pixel(config: RunConfig, z: complex) -> tuple[int, int]:
    """Map ``z`` back to pixel coordinates, truncating toward zero.

    The result is not bounds checked; orbits routinely leave the viewport.
    """

    x = _snap((z.real - config.viewport.real_min) / config.x_step)
    y = _snap((z.imag - config.viewport.imag_min) / config.y_step)
    return int(x), int(y)


def complex_to_pixel_arrays(config: RunConfig, re: np.ndarray, im: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """Vectorised :func:`complex_to_pixel` over arrays of real and imaginary parts."""

    x = _snap_array((re - np.float64(config.viewport.real_min)) / np.float64(config.x_step))
    y = _snap_array((im - np.float64(config.viewport.imag_min)) / np.float64(config.y_step))
    return np.trunc(x).astype(np.int64), np.trunc(y).astype(np.int64)


def sample_axes(config: RunConfig) -> tuple[np.ndarray, np.ndarray]:
    """Real and imaginary sample coordinates for every column and row."""

    xs = np.float64(config.viewport.real_min) + np.float64(config.x_step) * np.arange(config.width, dtype=np.float64)
    ys = np.float64(config.viewport.imag_min) + np.float64(config.y_step) * np.arange(config.height, dtype=np.float64)
    return xs, ys


def _snap(value: float) -> float:
    nearest = round(value)
    if abs(value - nearest) <= _SNAP_TOLERANCE:
        return float(nearest)
    return value


def _snap_array(values: np.ndarray) -> np.ndarray:
    nearest = np.rint(values)
    return np.where(np.abs(values - nearest) <= _SNAP_TOLERANCE, nearest, values)
