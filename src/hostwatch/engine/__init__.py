"""Alert evaluation engine."""

from hostwatch.engine.hysteresis import Evaluation, HysteresisEngine, fmt_number
from hostwatch.engine.thresholds import DEFAULT_THRESHOLDS, Thresholds

__all__ = [
    "DEFAULT_THRESHOLDS",
    "Evaluation",
    "HysteresisEngine",
    "Thresholds",
    "fmt_number",
]
