"""Power draw sources: RAPL energy counters or a load-based estimate."""

from __future__ import annotations

import time
from pathlib import Path
from typing import Callable, Optional, Tuple

import structlog

from hostwatch.metrics.host import CpuSampler, HostMetricSource
from hostwatch.models import MemoryUsage

log = structlog.get_logger()

MICROJOULES_PER_JOULE = 1_000_000


class RaplMetricSource(HostMetricSource):
    """Derives watts from the RAPL cumulative energy counter.

    Power is the energy consumed between two reads divided by the elapsed
    time, so the first read after start reports no power.
    """

    power_method = "rapl"

    def __init__(
        self,
        energy_path: str = "/sys/class/powercap/intel-rapl/intel-rapl:0/energy_uj",
        thermal_zone_path: str = "/sys/class/thermal/thermal_zone0/temp",
        cpu_sampler: Optional[CpuSampler] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        super().__init__(thermal_zone_path=thermal_zone_path, cpu_sampler=cpu_sampler)
        self.energy_path = Path(energy_path)
        self._clock = clock
        self._last: Optional[Tuple[int, float]] = None
        self._max_range = self._read_max_range()

    @staticmethod
    def is_available(energy_path: str) -> bool:
        """Whether the energy counter exists and is readable."""
        try:
            int(Path(energy_path).read_text().strip())
        except (OSError, ValueError):
            return False
        return True

    def _read_max_range(self) -> Optional[int]:
        range_file = self.energy_path.with_name("max_energy_range_uj")
        try:
            return int(range_file.read_text().strip())
        except (OSError, ValueError):
            return None

    def read_power(
        self, cpu_percent: int, memory: MemoryUsage, advance: bool = True
    ) -> Optional[float]:
        try:
            energy = int(self.energy_path.read_text().strip())
        except (OSError, ValueError) as e:
            log.debug("power_unavailable", path=str(self.energy_path), error=str(e))
            if advance:
                self._last = None
            return None

        now = self._clock()
        previous = self._last
        if advance:
            self._last = (energy, now)
        if previous is None:
            return None

        prev_energy, prev_time = previous
        elapsed = now - prev_time
        if elapsed <= 0:
            return None

        delta = energy - prev_energy
        if delta < 0:
            # Counter wrapped
            if self._max_range is None:
                return None
            delta += self._max_range

        return round(delta / MICROJOULES_PER_JOULE / elapsed, 1)


class EstimatedPowerMetricSource(HostMetricSource):
    """Rough power estimate from CPU and memory load.

    Used on hosts without an energy counter (e.g. virtual machines).
    """

    power_method = "estimate"

    def read_power(
        self, cpu_percent: int, memory: MemoryUsage, advance: bool = True
    ) -> Optional[float]:
        estimated = (cpu_percent * 0.6 + memory.percent * 0.4) * 1.5
        return float(round(estimated))
