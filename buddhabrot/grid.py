"""Per-render pixel planes and cooperative cancellation."""

from __future__ import annotations

import concurrent.futures
import threading
from dataclasses import dataclass
from typing import Callable

import numpy as np

from .errors import RenderCancelled
from .plane import RunConfig


@dataclass
class Grid:
    """Mutable pixel planes owned by a single render.

    ``escapes`` is filled by the classification pass, ``counts`` and
    ``max_count`` by the accumulation pass and ``colors`` by the
    rasteriser. Arrays are indexed ``[y, x]``.
    """

    config: RunConfig
    escapes: np.ndarray
    counts: np.ndarray
    colors: np.ndarray
    max_count: int = 0

    @classmethod
    def empty(cls, config: RunConfig) -> "Grid":
        height, width = config.shape
        return cls(
            config=config,
            escapes=np.zeros((height, width), dtype=bool),
            counts=np.zeros((height, width), dtype=np.int64),
            colors=np.zeros((height, width, 3), dtype=np.uint8),
        )

    @property
    def width(self) -> int:
        return self.config.width

    @property
    def height(self) -> int:
        return self.config.height

    def in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self.config.width and 0 <= y < self.config.height


class CancelToken:
    """Flag shared between a render and whoever may want to abort it."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def check(self) -> None:
        if self._event.is_set():
            raise RenderCancelled("render cancelled")


def check_cancelled(cancel: CancelToken | None) -> None:
    if cancel is not None:
        cancel.check()


def run_rows(row_fn: Callable[[int], None], height: int, workers: int = 1) -> None:
    """Call ``row_fn`` for every row, on a thread pool when ``workers > 1``."""

    if workers <= 1:
        for y in range(height):
            row_fn(y)
        return
    with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as executor:
        futures = [executor.submit(row_fn, y) for y in range(height)]
        try:
            for future in concurrent.futures.as_completed(futures):
                future.result()
        finally:
            for future in futures:
                future.cancel()
