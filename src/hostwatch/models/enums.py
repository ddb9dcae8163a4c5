"""Shared enumerations for the hostwatch models."""

from enum import Enum


class Severity(str, Enum):
    """Severity level for notifications."""

    INFO = "info"
    WARNING = "warning"
    SEVERE = "severe"


class Condition(str, Enum):
    """Monitored condition, in evaluation order."""

    TEMPERATURE = "temperature"
    CPU = "cpu"
    POWER = "power"


class Transition(str, Enum):
    """Direction of a condition change."""

    ENTERED = "entered"
    CLEARED = "cleared"


class PowerSource(str, Enum):
    """How power draw is obtained."""

    AUTO = "auto"
    RAPL = "rapl"
    ESTIMATE = "estimate"
