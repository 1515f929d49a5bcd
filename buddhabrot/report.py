"""Plain-text report of the statistics of a finished render."""

from __future__ import annotations

from .plane import RunConfig
from .stats import Statistics, histogram


def format_report(config: RunConfig, stats: Statistics, *, show_percentiles: bool = True) -> str:
    lines = [
        f"Iterations: {config.max_iterations}",
        f"Dimensions: {config.width}x{config.height}px",
        f"Mean count: {stats.mean:.2f}",
        f"Max count: {stats.max_count}",
        f"Escaping points: {stats.num_escaped} ({stats.escaped_fraction * 100:.2f}%)",
        "",
    ]
    for bucket in histogram(stats):
        lines.append(
            "%2d %4d   - %4d %15d  %6.2f  %6.2f"
            % (bucket.index, bucket.low, bucket.high, bucket.count, bucket.percent, bucket.cumulative_percent)
        )
    lines.append("")

    if show_percentiles:
        lines.append("Percentile limits:")
        for i, limit in enumerate(stats.percentile_limits, start=1):
            lines.append("%4d%% %d" % (i * 10, limit))
        lines.append("")
    return "\n".join(lines)
