"""Alert notifications emitted on condition transitions."""

from dataclasses import dataclass
from typing import Optional

from .enums import Condition, Severity, Transition

COLOR_TEMPERATURE = 0xFF6B6B
COLOR_CPU = 0xFFA94D
COLOR_POWER = 0xFF922B
COLOR_NORMAL = 0x51CF66

_ALERT_COLORS = {
    Condition.TEMPERATURE: COLOR_TEMPERATURE,
    Condition.CPU: COLOR_CPU,
    Condition.POWER: COLOR_POWER,
}


@dataclass(frozen=True)
class Notification:
    """A single entered/cleared alert for one condition.

    Attributes:
        condition: Which monitored condition changed
        transition: Whether the condition was entered or cleared
        title: Short alert title (e.g. "HIGH CPU")
        body: Descriptive text citing the measured value
        severity: Alert severity; clears are always INFO
        value: Measured value that caused the transition
        threshold: Threshold the value was compared against
    """

    condition: Condition
    transition: Transition
    title: str
    body: str
    severity: Severity
    value: float
    threshold: Optional[float] = None

    @property
    def color(self) -> int:
        """Embed color: condition color when entered, green when cleared."""
        if self.transition == Transition.CLEARED:
            return COLOR_NORMAL
        return _ALERT_COLORS[self.condition]

    @property
    def is_alert(self) -> bool:
        return self.transition == Transition.ENTERED
