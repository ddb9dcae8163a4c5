"""Select a metric source by probing host capabilities."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from hostwatch.metrics.host import HostMetricSource
from hostwatch.metrics.power import EstimatedPowerMetricSource, RaplMetricSource
from hostwatch.models import PowerSource

if TYPE_CHECKING:
    from hostwatch.config import HostwatchSettings

log = structlog.get_logger()


def probe_metric_source(settings: "HostwatchSettings") -> HostMetricSource:
    """Build the metric source for this host.

    With power_source=auto, RAPL is used when its energy counter is readable
    and the load-based estimate otherwise.

    Args:
        settings: Loaded configuration

    Returns:
        Configured metric source
    """
    rapl_available = RaplMetricSource.is_available(settings.rapl_energy_path)
    method = settings.power_source

    if method == PowerSource.AUTO:
        method = PowerSource.RAPL if rapl_available else PowerSource.ESTIMATE
    elif method == PowerSource.RAPL and not rapl_available:
        log.warning(
            "rapl_unavailable",
            path=settings.rapl_energy_path,
            message="Power draw will be reported as unavailable",
        )

    source: HostMetricSource
    if method == PowerSource.RAPL:
        source = RaplMetricSource(
            energy_path=settings.rapl_energy_path,
            thermal_zone_path=settings.thermal_zone_path,
        )
    else:
        source = EstimatedPowerMetricSource(
            thermal_zone_path=settings.thermal_zone_path,
        )

    log.info(
        "metric_source_selected",
        power_method=source.power_method,
        thermal_zone=settings.thermal_zone_path,
        rapl_available=rapl_available,
    )
    return source
