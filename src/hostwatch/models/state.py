"""Durable monitor state."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

STATE_SCHEMA_VERSION = "1.0"


class MonitorState(BaseModel):
    """Last-known condition flags and the learned power baseline.

    Instances are immutable; the engine returns a new state rather than
    changing the one it was given. Field names match the on-disk record.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    temp_high: bool = False
    cpu_high: bool = False
    power_high: bool = False
    baseline_power: Optional[float] = Field(
        default=None,
        description="Power draw seen the first time power was available",
    )
    schema_version: str = STATE_SCHEMA_VERSION

    @classmethod
    def initial(cls) -> "MonitorState":
        """Zero-value state used on first run or after a bad record."""
        return cls()
