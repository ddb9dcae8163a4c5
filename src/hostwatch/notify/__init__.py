"""Notification delivery and inbound commands."""

from hostwatch.notify.base import Notifier
from hostwatch.notify.commands import STATUS_COMMAND, CommandFilter, InboundMessage
from hostwatch.notify.discord import DiscordNotifier
from hostwatch.notify.exceptions import (
    AuthenticationError,
    ConnectionError,
    DeliveryError,
    NotifierError,
    RateLimitError,
)

__all__ = [
    "AuthenticationError",
    "CommandFilter",
    "ConnectionError",
    "DeliveryError",
    "DiscordNotifier",
    "InboundMessage",
    "Notifier",
    "NotifierError",
    "RateLimitError",
    "STATUS_COMMAND",
]
