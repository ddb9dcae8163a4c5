"""Notifier contract required by the monitor."""

from __future__ import annotations

from typing import List, Protocol, runtime_checkable

from hostwatch.models import Notification, Reading


@runtime_checkable
class Notifier(Protocol):
    """Delivers alerts and status reports to the configured recipient.

    Send methods never raise; they log failures and return False.
    """

    def send_alert(self, title: str, body: str, color: int) -> bool: ...

    def send_notification(self, notification: Notification) -> bool: ...

    def send_status_report(self, reading: Reading) -> bool: ...

    def send_text(self, text: str) -> bool: ...

    def poll_commands(self) -> List[str]:
        """Commands from the authorized recipient since the last poll."""
        ...
