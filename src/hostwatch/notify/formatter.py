"""Discord embed formatting for alerts and status reports."""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from hostwatch.engine import fmt_number
from hostwatch.models import COLOR_NORMAL, Notification, Reading

FOOTER_TEXT = "hostwatch monitor"
ALERT_TITLE_PREFIX = "🚨 ALERT - "
STATUS_TITLE = "📊 Host status"
STATUS_DESCRIPTION = "Live system report"
STARTUP_MESSAGE = "✅ **hostwatch ONLINE**\n\nMonitoring started..."
UNAVAILABLE = "N/A"

Embed = Dict[str, Any]


def _timestamp(when: Optional[datetime]) -> str:
    return (when or datetime.now(timezone.utc)).isoformat()


def build_alert_embed(
    title: str,
    body: str,
    color: int,
    timestamp: Optional[datetime] = None,
) -> Embed:
    """Build a severity-colored alert embed.

    Args:
        title: Alert title without prefix (e.g. "HIGH CPU")
        body: Markdown description citing the measured value
        color: 24-bit RGB embed color
        timestamp: Event time, defaults to now
    """
    return {
        "title": f"{ALERT_TITLE_PREFIX}{title}",
        "description": body,
        "color": color,
        "timestamp": _timestamp(timestamp),
        "footer": {"text": FOOTER_TEXT},
    }


def build_notification_embed(notification: Notification) -> Embed:
    return build_alert_embed(notification.title, notification.body, notification.color)


def format_temperature(reading: Reading) -> str:
    if reading.temperature_c is None:
        return UNAVAILABLE
    return f"{fmt_number(reading.temperature_c)}°C"


def format_power(reading: Reading) -> str:
    if reading.power_watts is None:
        return UNAVAILABLE
    return f"{fmt_number(reading.power_watts)}W"


def build_status_embed(reading: Reading) -> Embed:
    """Build the non-alerting status report with four labeled fields."""
    return {
        "title": STATUS_TITLE,
        "description": STATUS_DESCRIPTION,
        "color": COLOR_NORMAL,
        "fields": [
            {"name": "🌡️ CPU Temperature", "value": format_temperature(reading), "inline": True},
            {"name": "⚙️ CPU Usage", "value": f"{reading.cpu_percent}%", "inline": True},
            {"name": "💾 Memory", "value": reading.memory.display(), "inline": True},
            {"name": "⚡ Power Draw", "value": format_power(reading), "inline": True},
        ],
        "timestamp": _timestamp(reading.taken_at),
        "footer": {"text": FOOTER_TEXT},
    }
