"""Custom exceptions for notification delivery.

All exceptions inherit from NotifierError for consistent error handling.
Each exception includes helpful messages for non-expert users.
"""

from typing import Optional


class NotifierError(Exception):
    """Base exception for all notifier errors.

    Attributes:
        message: Human-readable error message.
        hint: Optional troubleshooting hint for non-experts.
        exit_code: Suggested exit code for CLI applications.
    """

    exit_code: int = 1

    def __init__(
        self,
        message: str,
        hint: Optional[str] = None,
        exit_code: Optional[int] = None,
    ) -> None:
        self.message = message
        self.hint = hint
        if exit_code is not None:
            self.exit_code = exit_code
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the exception message with optional hint."""
        if self.hint:
            return f"{self.message}\n\nHint: {self.hint}"
        return self.message


class AuthenticationError(NotifierError):
    """The bot token was rejected by Discord."""

    exit_code: int = 3

    def __init__(
        self,
        message: str = "Discord rejected the bot token",
        hint: Optional[str] = None,
    ) -> None:
        if hint is None:
            hint = (
                "Check HOSTWATCH_DISCORD_TOKEN. Copy the token from the Bot page "
                "of your application in the Discord Developer Portal."
            )
        super().__init__(message=message, hint=hint, exit_code=3)


class ConnectionError(NotifierError):
    """Cannot reach the Discord API."""

    exit_code: int = 2

    def __init__(
        self,
        message: str = "Cannot connect to the Discord API",
        hint: Optional[str] = None,
    ) -> None:
        if hint is None:
            hint = "Check network connectivity and DNS resolution for discord.com."
        super().__init__(message=message, hint=hint, exit_code=2)


class DeliveryError(NotifierError):
    """Discord refused or failed a request."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        hint: Optional[str] = None,
    ) -> None:
        self.status_code = status_code
        if hint is None and status_code == 403:
            hint = (
                "The recipient may not share a server with the bot, or has "
                "direct messages from server members disabled."
            )
        super().__init__(message=message, hint=hint)


class RateLimitError(DeliveryError):
    """Discord asked us to slow down (HTTP 429)."""

    def __init__(self, retry_after: float = 1.0) -> None:
        self.retry_after = retry_after
        super().__init__(
            message=f"Rate limited by Discord, retry after {retry_after}s",
            status_code=429,
        )
