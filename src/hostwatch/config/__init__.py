"""Configuration management for hostwatch."""

from hostwatch.config.loader import ConfigurationError, get_config, load_config
from hostwatch.config.settings import HostwatchSettings

__all__ = [
    "ConfigurationError",
    "HostwatchSettings",
    "get_config",
    "load_config",
]
