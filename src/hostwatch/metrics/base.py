"""Metric source contract."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from hostwatch.models import Reading


class MetricReadError(Exception):
    """Raised when a source cannot produce a reading at all."""

    pass


@runtime_checkable
class MetricSource(Protocol):
    """Produces a point-in-time reading of host metrics.

    Individual metrics that are unavailable are returned as None inside the
    reading. Implementations raise only when no reading can be built.
    """

    def read(self, advance: bool = True) -> Reading:
        """Take a fresh reading.

        advance=False must leave any interval state untouched.
        """
        ...
