"""Public API for buddhabrot density rendering."""

from .colors import (
    ColorMapper,
    ColormapMapper,
    FixedFractionMapper,
    PercentileMapper,
    PowerMapper,
    mapper_for,
)
from .density import DensityAccumulator, accumulate, accumulate_vectorized
from .errors import BuddhabrotError, ConfigurationError, DegenerateRunError, RenderCancelled
from .grid import CancelToken, Grid
from .orbits import classify, classify_grid, classify_with_trace, escape_time, mark_escapes
from .plane import RunConfig, Viewport, complex_to_pixel, pixel_to_complex
from .renderer import RenderResult, draw_pixel, rasterize, render_buddhabrot
from .report import format_report
from .stats import HistogramBucket, Statistics, compute_stats, histogram

__all__ = [
    "BuddhabrotError",
    "CancelToken",
    "ColorMapper",
    "ColormapMapper",
    "ConfigurationError",
    "DegenerateRunError",
    "DensityAccumulator",
    "FixedFractionMapper",
    "Grid",
    "HistogramBucket",
    "PercentileMapper",
    "PowerMapper",
    "RenderCancelled",
    "RenderResult",
    "RunConfig",
    "Statistics",
    "Viewport",
    "accumulate",
    "accumulate_vectorized",
    "classify",
    "classify_grid",
    "classify_with_trace",
    "complex_to_pixel",
    "compute_stats",
    "draw_pixel",
    "escape_time",
    "format_report",
    "histogram",
    "mapper_for",
    "mark_escapes",
    "pixel_to_complex",
    "rasterize",
    "render_buddhabrot",
]
