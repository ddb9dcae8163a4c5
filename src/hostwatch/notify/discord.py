"""Discord direct-message notifier over the REST API.

Delivers alerts and status reports to a single recipient and polls the
same DM channel for inbound commands. Sends are fire-and-forget from the
caller's point of view: failures are logged and reported as False.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import httpx
import pybreaker
import structlog

from hostwatch.models import Notification, Reading
from hostwatch.notify.commands import CommandFilter, InboundMessage
from hostwatch.notify.exceptions import (
    AuthenticationError,
    ConnectionError,
    DeliveryError,
    NotifierError,
    RateLimitError,
)
from hostwatch.notify.formatter import (
    Embed,
    build_alert_embed,
    build_notification_embed,
    build_status_embed,
)
from hostwatch.notify.retry import create_circuit_breaker, create_retry_decorator

log = structlog.get_logger()

DISCORD_API_BASE = "https://discord.com/api/v10"
USER_AGENT = "DiscordBot (https://github.com/hostwatch/hostwatch, 0.3)"
POLL_LIMIT = 50


class DiscordNotifier:
    """Sends embeds to one Discord user and reads their commands.

    Example::

        with DiscordNotifier(token, recipient_id) as notifier:
            notifier.verify()
            notifier.send_alert("HIGH CPU", "CPU usage: **92%**", 0xFFA94D)
            for command in notifier.poll_commands():
                ...
    """

    def __init__(
        self,
        token: str,
        recipient_id: str,
        command_prefix: str = "!",
        timeout: float = 10.0,
        max_retries: int = 3,
        base_url: str = DISCORD_API_BASE,
        transport: Optional[httpx.BaseTransport] = None,
        breaker: Optional[pybreaker.CircuitBreaker] = None,
    ) -> None:
        """Initialize the notifier.

        Args:
            token: Discord bot token
            recipient_id: Discord user ID of the only authorized recipient
            command_prefix: Prefix for inbound commands
            timeout: Request timeout in seconds
            max_retries: Attempts per request on connection failure
            base_url: API base URL
            transport: Optional httpx transport (used by tests)
            breaker: Optional circuit breaker guarding sends
        """
        self.recipient_id = str(recipient_id)
        self.commands = CommandFilter(self.recipient_id, prefix=command_prefix)
        self._http = httpx.Client(
            base_url=base_url,
            timeout=timeout,
            transport=transport,
            headers={
                "Authorization": f"Bot {token}",
                "User-Agent": USER_AGENT,
            },
        )
        self._request = create_retry_decorator(max_retries=max_retries)(self._raw_request)
        self._breaker = breaker or create_circuit_breaker("discord")
        self._channel_id: Optional[str] = None
        self._last_message_id: Optional[int] = None

    def close(self) -> None:
        """Close HTTP client and release resources."""
        self._http.close()

    def __enter__(self) -> "DiscordNotifier":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def _raw_request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        """Perform one request and map failure statuses to exceptions."""
        response = self._http.request(method, path, **kwargs)

        if response.status_code == 401:
            raise AuthenticationError()
        if response.status_code == 429:
            retry_after = 1.0
            try:
                retry_after = float(response.json().get("retry_after", retry_after))
            except ValueError:
                pass
            raise RateLimitError(retry_after=retry_after)
        if response.is_error:
            raise DeliveryError(
                f"Discord API {method} {path} failed with HTTP {response.status_code}",
                status_code=response.status_code,
            )
        return response

    def _call(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            return self._request(method, path, **kwargs)
        except (httpx.ConnectError, httpx.TimeoutException) as e:
            raise ConnectionError(f"Cannot reach Discord API: {e}") from e

    def verify(self) -> Dict[str, Any]:
        """Check the token and return the bot's own user object.

        Raises:
            AuthenticationError: If the token is rejected
            ConnectionError: If Discord cannot be reached
        """
        user = self._call("GET", "/users/@me").json()
        log.info("discord_authenticated", bot_user=user.get("username"), bot_id=user.get("id"))
        return user

    def dm_channel_id(self) -> str:
        """Open (once) and return the DM channel with the recipient."""
        if self._channel_id is None:
            response = self._call(
                "POST",
                "/users/@me/channels",
                json={"recipient_id": self.recipient_id},
            )
            self._channel_id = str(response.json()["id"])
            log.debug("dm_channel_opened", channel_id=self._channel_id)
        return self._channel_id

    def _post_message(self, payload: Dict[str, Any]) -> None:
        channel_id = self.dm_channel_id()
        self._call("POST", f"/channels/{channel_id}/messages", json=payload)

    def _deliver(self, kind: str, payload: Dict[str, Any], **context: Any) -> bool:
        """Send through the circuit breaker; never raises."""
        try:
            self._breaker.call(self._post_message, payload)
        except pybreaker.CircuitBreakerError:
            log.error("notification_failed", kind=kind, reason="circuit_open", **context)
            return False
        except NotifierError as e:
            log.error("notification_failed", kind=kind, error=e.message, **context)
            return False
        except (httpx.HTTPError, KeyError, ValueError) as e:
            log.error("notification_failed", kind=kind, error=str(e), **context)
            return False
        return True

    def send_embed(self, embed: Embed, kind: str = "embed") -> bool:
        return self._deliver(kind, {"embeds": [embed]}, title=embed.get("title"))

    def send_alert(self, title: str, body: str, color: int) -> bool:
        """Send an alert embed.

        Args:
            title: Alert title (e.g. "HIGH TEMPERATURE")
            body: Description citing measured value and threshold
            color: Severity color

        Returns:
            True if delivered
        """
        sent = self.send_embed(build_alert_embed(title, body, color), kind="alert")
        if sent:
            log.info("alert_sent", title=title, body=body)
        return sent

    def send_notification(self, notification: Notification) -> bool:
        sent = self.send_embed(build_notification_embed(notification), kind="alert")
        if sent:
            log.info(
                "alert_sent",
                title=notification.title,
                condition=notification.condition.value,
                transition=notification.transition.value,
                value=notification.value,
            )
        return sent

    def send_status_report(self, reading: Reading) -> bool:
        """Send the on-demand status report for a reading."""
        return self.send_embed(build_status_embed(reading), kind="status")

    def send_text(self, text: str) -> bool:
        """Send a plain text direct message."""
        return self._deliver("text", {"content": text})

    def _fetch_messages(self, after: Optional[int], limit: int) -> List[InboundMessage]:
        channel_id = self.dm_channel_id()
        params: Dict[str, Any] = {"limit": limit}
        if after is not None:
            params["after"] = str(after)
        response = self._call("GET", f"/channels/{channel_id}/messages", params=params)
        messages = [InboundMessage.from_api(item) for item in response.json()]
        return sorted(messages, key=lambda m: m.message_id)

    def poll_commands(self) -> List[str]:
        """Return commands received since the previous poll.

        The first poll only records the newest existing message so history
        from before startup is never replayed.

        Raises:
            NotifierError: If the DM channel cannot be read
        """
        if self._last_message_id is None:
            existing = self._fetch_messages(after=None, limit=1)
            self._last_message_id = existing[-1].message_id if existing else 0
            return []

        messages = self._fetch_messages(after=self._last_message_id, limit=POLL_LIMIT)
        if not messages:
            return []
        self._last_message_id = messages[-1].message_id

        commands: List[str] = []
        for message in messages:
            command = self.commands.parse(message)
            if command is None:
                if not message.author_is_bot:
                    log.debug("message_ignored", author_id=message.author_id)
                continue
            log.info("command_received", command=command, author_id=message.author_id)
            commands.append(command)
        return commands
