"""State persistence module for alert flags and the power baseline."""

from hostwatch.state.manager import StateStore

__all__ = ["StateStore"]
