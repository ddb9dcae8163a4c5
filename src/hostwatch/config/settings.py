"""Pydantic settings models for hostwatch configuration."""

from __future__ import annotations

import os
from typing import Any, Dict, Literal, Tuple, Type

import yaml
from pydantic import Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from hostwatch.models import PowerSource


class YamlConfigSettingsSource(PydanticBaseSettingsSource):
    """Custom settings source that loads values from a YAML file.

    The YAML file path is determined by the CONFIG_PATH environment variable.
    """

    def get_field_value(
        self, field: Any, field_name: str
    ) -> Tuple[Any, str, bool]:
        """Get field value from YAML config."""
        yaml_config = self._load_yaml_config()
        field_value = yaml_config.get(field_name)
        return field_value, field_name, False

    def _load_yaml_config(self) -> Dict[str, Any]:
        """Load YAML configuration file."""
        config_path = os.environ.get("CONFIG_PATH")
        if not config_path:
            return {}

        try:
            with open(config_path) as f:
                data = yaml.safe_load(f)
                return data if isinstance(data, dict) else {}
        except (FileNotFoundError, yaml.YAMLError, PermissionError):
            # Errors will be handled by loader.py
            return {}

    def __call__(self) -> Dict[str, Any]:
        """Return the YAML config values."""
        return self._load_yaml_config()


class HostwatchSettings(BaseSettings):
    """Hostwatch configuration settings.

    Configuration is loaded in the following precedence (highest to lowest):
    1. Environment variables (HOSTWATCH_ prefix)
    2. Docker secrets (_FILE pattern, applied via env)
    3. YAML configuration file (via CONFIG_PATH)
    4. Default values
    """

    model_config = SettingsConfigDict(
        env_prefix="HOSTWATCH_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Transport
    discord_token: str = Field(
        ...,
        description="Discord bot token used to deliver direct messages",
    )
    recipient_id: str = Field(
        ...,
        description="Discord user ID of the operator who receives alerts",
    )
    request_timeout: float = Field(
        default=10.0,
        gt=0,
        description="HTTP request timeout in seconds",
    )
    max_retries: int = Field(
        default=3,
        ge=1,
        description="Attempts per request on connection failure",
    )
    send_startup_message: bool = Field(
        default=True,
        description="Send an ONLINE message to the recipient at startup",
    )

    # Thresholds
    temp_threshold: float = Field(
        default=85.0,
        description="CPU temperature alert threshold in Celsius",
    )
    cpu_threshold: int = Field(
        default=80,
        ge=1,
        le=100,
        description="CPU usage alert threshold (percent)",
    )
    power_threshold: float = Field(
        default=30.0,
        gt=0,
        description="Power draw increase over baseline that triggers an alert (percent)",
    )

    # Scheduling
    check_interval_ms: int = Field(
        default=30000,
        ge=1000,
        description="Sampling interval in milliseconds",
    )
    command_poll_interval: float = Field(
        default=5.0,
        gt=0,
        description="Seconds between checks for inbound commands",
    )
    command_prefix: str = Field(
        default="!",
        description="Prefix for inbound commands (e.g. '!status')",
    )
    metric_timeout: float = Field(
        default=10.0,
        gt=0,
        description="Seconds to wait for a metric reading before failing the tick",
    )

    # Persistence and sensors
    state_file: str = Field(
        default=".bot_state.json",
        description="Path of the persisted alert state record",
    )
    thermal_zone_path: str = Field(
        default="/sys/class/thermal/thermal_zone0/temp",
        description="sysfs file reporting CPU temperature in millidegrees",
    )
    rapl_energy_path: str = Field(
        default="/sys/class/powercap/intel-rapl/intel-rapl:0/energy_uj",
        description="RAPL cumulative energy counter in microjoules",
    )
    power_source: PowerSource = Field(
        default=PowerSource.AUTO,
        description="Power reading method: auto, rapl, or estimate",
    )

    # Logging settings
    log_level: str = Field(
        default="INFO",
        description="Logging level: DEBUG, INFO, WARNING, ERROR",
    )
    log_format: Literal["json", "text"] = Field(
        default="json",
        description="Log output format: json (production) or text (development)",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: Type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        """Customize settings sources to set precedence.

        Order (first = highest priority):
        1. init_settings (constructor arguments - used by tests)
        2. env_settings (environment variables with HOSTWATCH_ prefix)
        3. dotenv_settings (.env file)
        4. yaml_settings (CONFIG_PATH YAML file)
        """
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlConfigSettingsSource(settings_cls),
        )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate and normalize log level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "WARN", "ERROR", "CRITICAL"}
        normalized = v.upper()
        if normalized == "WARN":
            normalized = "WARNING"
        if normalized not in valid_levels:
            raise ValueError(
                f"Invalid log level '{v}'. Must be one of: DEBUG, INFO, WARNING, ERROR"
            )
        return normalized

    @field_validator("discord_token")
    @classmethod
    def validate_token(cls, v: str) -> str:
        """Validate token is not empty."""
        if not v or not v.strip():
            raise ValueError("Discord token cannot be empty")
        return v.strip()

    @field_validator("recipient_id", mode="before")
    @classmethod
    def validate_recipient_id(cls, v: Any) -> str:
        """Accept int or str snowflakes, reject anything non-numeric."""
        value = str(v).strip()
        if not value.isdigit():
            raise ValueError("Recipient ID must be a numeric Discord user ID")
        return value

    @property
    def check_interval_seconds(self) -> float:
        """Sampling interval in seconds."""
        return self.check_interval_ms / 1000
