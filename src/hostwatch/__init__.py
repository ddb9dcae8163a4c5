"""
Hostwatch - Edge-triggered host resource alerts delivered by direct message.

This package samples CPU temperature, CPU utilization, memory utilization and
power draw on a fixed interval, and notifies a single operator when a metric
crosses its threshold and again when it returns to normal.

Features:
- Configuration via YAML with environment variable overrides
- Docker secrets support for the bot token
- Structured logging (JSON for production, text for development)
- Crash-safe persistence of alert state across restarts
- On-demand status report via a direct message command
"""

__version__ = "0.3.0"
__all__ = ["__version__"]
