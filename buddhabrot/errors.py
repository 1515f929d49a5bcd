"""Exceptions raised by the buddhabrot pipeline."""

from __future__ import annotations


class BuddhabrotError(Exception):
    """Base class for every error raised by the rendering core."""


class ConfigurationError(BuddhabrotError, ValueError):
    """Raised when a run configuration or rendering option is invalid."""


class DegenerateRunError(BuddhabrotError):
    """Raised when no pixel of the grid was ever visited by an escaping orbit.

    Mean and percentile statistics are undefined for such a run, so the
    colouring stage cannot proceed.
    """

    def __init__(self, message: str, config: object | None = None) -> None:
        super().__init__(message)
        self.config = config


class RenderCancelled(BuddhabrotError):
    """Raised at the next pixel boundary after a render was cancelled."""
