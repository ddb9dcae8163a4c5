"""Host metric readers backed by psutil and sysfs."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Optional, Tuple

import psutil
import structlog

from hostwatch.metrics.base import MetricReadError
from hostwatch.models import MemoryUsage, Reading

log = structlog.get_logger()

# Aggregate CPU time categories summed into a total. guest and guest_nice
# are already counted in user and nice on Linux.
CPU_TIME_CATEGORIES: Tuple[str, ...] = (
    "user",
    "nice",
    "system",
    "idle",
    "iowait",
    "irq",
    "softirq",
    "steal",
)
IDLE_CATEGORIES: Tuple[str, ...] = ("idle", "iowait")

BYTES_PER_MB = 1024 * 1024

# How long a read waits for one already in progress
READ_LOCK_TIMEOUT = 5.0


@dataclass(frozen=True)
class CpuTimes:
    """Busy and idle CPU seconds accumulated since boot."""

    busy: float
    idle: float

    @property
    def total(self) -> float:
        return self.busy + self.idle

    @classmethod
    def from_psutil(cls, times: Any) -> "CpuTimes":
        """Accumulate a psutil scputimes tuple into busy and idle counters.

        Categories the platform does not report count as zero.
        """
        busy = 0.0
        idle = 0.0
        for category in CPU_TIME_CATEGORIES:
            value = float(getattr(times, category, 0.0))
            if category in IDLE_CATEGORIES:
                idle += value
            else:
                busy += value
        return cls(busy=busy, idle=idle)


class CpuSampler:
    """CPU utilization over the interval between consecutive samples.

    The first sample has no predecessor and falls back to the counters
    accumulated since boot. A sample taken with advance=False measures
    against the stored counters without replacing them, so the next
    advancing sample still covers the full interval.
    """

    def __init__(self, times_func: Callable[[], Any] = psutil.cpu_times) -> None:
        self._times_func = times_func
        self._previous: Optional[CpuTimes] = None

    def sample(self, advance: bool = True) -> int:
        """Return CPU usage in whole percent (0-100)."""
        current = CpuTimes.from_psutil(self._times_func())
        previous = self._previous
        if advance:
            self._previous = current

        idle, total = current.idle, current.total
        if previous is not None and current.total > previous.total:
            idle = current.idle - previous.idle
            total = current.total - previous.total

        if total <= 0:
            return 0
        usage = 100 - int(100 * idle / total)
        return max(0, min(100, usage))


def read_temperature(path: Path) -> Optional[float]:
    """Read a sysfs thermal zone (millidegrees) as Celsius, to 0.1 degree.

    Returns None when the zone is missing or unreadable.
    """
    try:
        millidegrees = int(path.read_text().strip())
    except FileNotFoundError:
        return None
    except (OSError, ValueError) as e:
        log.debug("temperature_unavailable", path=str(path), error=str(e))
        return None
    return round(millidegrees / 1000, 1)


def read_memory() -> MemoryUsage:
    """Memory utilization, counting reclaimable cache as free."""
    vm = psutil.virtual_memory()
    used = vm.total - vm.available
    percent = round(used / vm.total * 100) if vm.total else 0
    return MemoryUsage(
        percent=percent,
        used_mb=round(used / BYTES_PER_MB),
        total_mb=round(vm.total / BYTES_PER_MB),
    )


class HostMetricSource:
    """Reads temperature, CPU and memory; subclasses supply power draw.

    Reads are serialized so the scheduled tick and an on-demand status
    query never interleave their CPU and energy samples.
    """

    power_method = "none"

    def __init__(
        self,
        thermal_zone_path: str = "/sys/class/thermal/thermal_zone0/temp",
        cpu_sampler: Optional[CpuSampler] = None,
    ) -> None:
        self.thermal_zone_path = Path(thermal_zone_path)
        self._cpu = cpu_sampler or CpuSampler()
        self._lock = threading.Lock()

    def read(self, advance: bool = True) -> Reading:
        """Take a fresh reading.

        Args:
            advance: Start a new CPU and energy interval. Pass False for
                out-of-band reads that must not shorten the next tick's window.

        Raises:
            MetricReadError: If CPU or memory statistics cannot be read, or a
                previous read is still holding the sensors
        """
        if not self._lock.acquire(timeout=READ_LOCK_TIMEOUT):
            raise MetricReadError("A previous metric read is still in progress")
        try:
            temperature = read_temperature(self.thermal_zone_path)
            try:
                cpu = self._cpu.sample(advance)
                memory = read_memory()
            except (OSError, psutil.Error) as e:
                raise MetricReadError(f"Cannot read CPU/memory statistics: {e}") from e
            power = self.read_power(cpu, memory, advance)
        finally:
            self._lock.release()

        return Reading(
            temperature_c=temperature,
            cpu_percent=cpu,
            memory=memory,
            power_watts=power,
        )

    def read_power(
        self, cpu_percent: int, memory: MemoryUsage, advance: bool = True
    ) -> Optional[float]:
        """Power draw in watts, or None when unavailable."""
        return None
