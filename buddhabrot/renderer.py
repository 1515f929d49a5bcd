"""Rasterisation and the three-pass buddhabrot render."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Optional

import numpy as np

from .colors import POLICIES, ColorMapper, mapper_for
from .density import accumulate_escapes
from .errors import ConfigurationError
from .grid import CancelToken, Grid, check_cancelled
from .orbits import mark_escapes
from .plane import RunConfig
from .stats import Statistics, compute_stats

BYTES_PER_PIXEL = 3

Progress = Callable[[str, float], None]


@dataclass(frozen=True)
class RenderResult:
    """Container for the numerical results and the raster of a render."""

    grid: Grid
    stats: Statistics
    mapper: ColorMapper
    raster: bytes

    @property
    def width(self) -> int:
        return self.grid.width

    @property
    def height(self) -> int:
        return self.grid.height


def draw_pixel(buffer: bytearray, width: int, x: int, y: int, color: tuple[int, int, int]) -> None:
    """Write ``color`` as three bytes at the row-major offset of ``(x, y)``."""

    offset = (y * width + x) * BYTES_PER_PIXEL
    buffer[offset:offset + BYTES_PER_PIXEL] = bytes(color)


def rasterize(grid: Grid, mapper: ColorMapper) -> bytearray:
    """Colour every count of ``grid`` and return the interleaved RGB buffer.

    The buffer is row-major, top to bottom and left to right, three bytes
    per pixel with no padding. ``grid.colors`` is filled as a side effect.
    """

    grid.colors[...] = mapper.colorize(grid.counts)
    return bytearray(np.ascontiguousarray(grid.colors, dtype=np.uint8).tobytes())


def rasterize_pixels(grid: Grid, mapper: ColorMapper, cancel: Optional[CancelToken] = None) -> bytearray:
    """Pixel-by-pixel equivalent of :func:`rasterize` built on :func:`draw_pixel`."""

    buffer = bytearray(grid.width * grid.height * BYTES_PER_PIXEL)
    palette: dict[int, tuple[int, int, int]] = {}
    for y in range(grid.height):
        for x in range(grid.width):
            check_cancelled(cancel)
            count = int(grid.counts[y, x])
            if count not in palette:
                palette[count] = mapper(count)
            color = palette[count]
            grid.colors[y, x] = color
            draw_pixel(buffer, grid.width, x, y, color)
    return buffer


def render_buddhabrot(
    config: RunConfig,
    *,
    policy: str = "percentile",
    backend: str = "vectorized",
    workers: int = 1,
    device: Optional[str] = None,
    colormap: str = "inferno",
    gamma: float = 1.0,
    cancel: Optional[CancelToken] = None,
    progress: Optional[Progress] = None,
) -> RenderResult:
    """Classify, accumulate, reduce and colour a fresh grid for ``config``.

    ``progress`` is called after each pass with the pass name
    (``"classifying"``, ``"accumulating"``, ``"statistics"``,
    ``"colouring"``) and the seconds it took.

    Raises :class:`~buddhabrot.errors.DegenerateRunError` when no orbit
    visits the viewport and :class:`~buddhabrot.errors.RenderCancelled` if
    ``cancel`` fires mid-render.
    """

    if policy not in POLICIES:
        raise ConfigurationError(f"unknown colour policy {policy!r}; expected one of {', '.join(POLICIES)}")

    def finished(stage: str, started: float) -> float:
        now = time.perf_counter()
        if progress is not None:
            progress(stage, now - started)
        return now

    grid = Grid.empty(config)
    started = time.perf_counter()
    mark_escapes(grid, backend=backend, workers=workers, device=device, cancel=cancel)
    started = finished("classifying", started)
    accumulate_escapes(grid, backend=backend, workers=workers, cancel=cancel)
    started = finished("accumulating", started)
    stats = compute_stats(grid)
    started = finished("statistics", started)
    mapper = mapper_for(policy, stats, colormap=colormap, gamma=gamma)
    if backend == "python":
        raster = rasterize_pixels(grid, mapper, cancel)
    else:
        raster = rasterize(grid, mapper)
    finished("colouring", started)
    return RenderResult(grid=grid, stats=stats, mapper=mapper, raster=bytes(raster))
