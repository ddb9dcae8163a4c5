"""Alert threshold configuration.

Defines the single fixed threshold used for each monitored condition.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from hostwatch.config import HostwatchSettings


@dataclass(frozen=True)
class Thresholds:
    """Thresholds for host alerts.

    All thresholds use > comparison to enter the alert and <= to clear it,
    so a value exactly at the threshold is always normal.

    Attributes:
        temperature_c: CPU temperature threshold in Celsius
        cpu_percent: CPU usage threshold (percent)
        power_increase_percent: Power draw increase over baseline (percent)
    """

    temperature_c: float = 85.0
    cpu_percent: int = 80
    power_increase_percent: float = 30.0

    @classmethod
    def from_settings(cls, settings: "HostwatchSettings") -> "Thresholds":
        """Build thresholds from loaded settings."""
        return cls(
            temperature_c=settings.temp_threshold,
            cpu_percent=settings.cpu_threshold,
            power_increase_percent=settings.power_threshold,
        )


DEFAULT_THRESHOLDS = Thresholds()
