"""Point-in-time host metric reading."""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class MemoryUsage(BaseModel):
    """Memory utilization snapshot."""

    model_config = ConfigDict(frozen=True)

    percent: int = Field(..., ge=0, le=100, description="Used memory percentage")
    used_mb: int = Field(..., ge=0, description="Used memory in MB")
    total_mb: int = Field(..., ge=0, description="Total memory in MB")

    def display(self) -> str:
        """Format as '42% (3400/8000 MB)'."""
        return f"{self.percent}% ({self.used_mb}/{self.total_mb} MB)"


class Reading(BaseModel):
    """One tick's snapshot of all monitored metrics.

    Temperature and power may be unavailable on a given host or tick; they
    are represented as None rather than as errors.
    """

    model_config = ConfigDict(frozen=True)

    temperature_c: Optional[float] = Field(
        default=None, description="CPU temperature in Celsius"
    )
    cpu_percent: int = Field(..., ge=0, le=100, description="CPU usage percentage")
    memory: MemoryUsage
    power_watts: Optional[float] = Field(
        default=None, description="Power draw in watts"
    )
    taken_at: datetime = Field(default_factory=_utc_now)

    def summary(self) -> str:
        """One-line form used by the per-tick check log."""
        temp = f"{self.temperature_c}°C" if self.temperature_c is not None else "N/A"
        power = f"{self.power_watts}W" if self.power_watts is not None else "N/A"
        return (
            f"Temp: {temp} | CPU: {self.cpu_percent}% | "
            f"Mem: {self.memory.percent}% | Power: {power}"
        )
