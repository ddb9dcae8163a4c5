"""Scheduler subsystem driving the sampling loop."""

from hostwatch.scheduler.monitor import Monitor
from hostwatch.scheduler.runner import (
    COMMAND_JOB_ID,
    TICK_JOB_ID,
    ScheduledRunner,
    SchedulerError,
)

__all__ = [
    "COMMAND_JOB_ID",
    "Monitor",
    "ScheduledRunner",
    "SchedulerError",
    "TICK_JOB_ID",
]
