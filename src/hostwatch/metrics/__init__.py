"""Host metric sources."""

from hostwatch.metrics.base import MetricReadError, MetricSource
from hostwatch.metrics.host import (
    CPU_TIME_CATEGORIES,
    CpuSampler,
    CpuTimes,
    HostMetricSource,
    read_memory,
    read_temperature,
)
from hostwatch.metrics.power import EstimatedPowerMetricSource, RaplMetricSource
from hostwatch.metrics.probe import probe_metric_source

__all__ = [
    "CPU_TIME_CATEGORIES",
    "CpuSampler",
    "CpuTimes",
    "EstimatedPowerMetricSource",
    "HostMetricSource",
    "MetricReadError",
    "MetricSource",
    "RaplMetricSource",
    "probe_metric_source",
    "read_memory",
    "read_temperature",
]
