"""Liveness file read by container health checks.

After every tick the monitor records whether the tick succeeded. A probe
only has to parse one small JSON object:

    {"status": "healthy", "timestamp": "...", "details": {"cpu_percent": 12}}

For example, in a Dockerfile:

    HEALTHCHECK --interval=60s --timeout=3s \\
        CMD python -c "import json,sys; s=json.load(open('/tmp/hostwatch-health'))['status']; sys.exit(s != 'healthy')"
"""

import json
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

import structlog

HEALTH_FILE = Path("/tmp/hostwatch-health")

log = structlog.get_logger()


class HealthStatus(Enum):
    """Outcome of the most recent tick."""

    STARTING = "starting"  # no tick has finished yet
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"


def update_health_status(
    status: HealthStatus,
    details: Optional[Dict[str, Any]] = None,
) -> None:
    """Replace the health record.

    Write errors are logged and otherwise ignored.
    """
    record = {
        "status": status.value,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "details": details or {},
    }
    try:
        HEALTH_FILE.write_text(json.dumps(record))
    except OSError as e:
        log.warning("health_write_failed", path=str(HEALTH_FILE), error=str(e))


def get_health_status() -> Optional[Dict[str, Any]]:
    """Current health record, or None if absent or unreadable."""
    try:
        return json.loads(HEALTH_FILE.read_text())
    except (OSError, ValueError):
        return None


def clear_health_status() -> None:
    """Delete the record so a stopped monitor is not reported healthy."""
    try:
        HEALTH_FILE.unlink(missing_ok=True)
    except OSError as e:
        log.warning("health_clear_failed", path=str(HEALTH_FILE), error=str(e))
