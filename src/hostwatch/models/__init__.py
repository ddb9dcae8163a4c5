"""Data models for hostwatch."""

from .enums import Condition, PowerSource, Severity, Transition
from .notification import COLOR_NORMAL, Notification
from .reading import MemoryUsage, Reading
from .state import STATE_SCHEMA_VERSION, MonitorState

__all__ = [
    "COLOR_NORMAL",
    "Condition",
    "MemoryUsage",
    "MonitorState",
    "Notification",
    "PowerSource",
    "Reading",
    "STATE_SCHEMA_VERSION",
    "Severity",
    "Transition",
]
