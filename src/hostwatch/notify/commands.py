"""Inbound command recognition.

Only one sender is authorized: the configured recipient. Messages from
anyone else, and from bots (including this one), are ignored.
"""

from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, Optional

STATUS_COMMAND = "status"


@dataclass(frozen=True)
class InboundMessage:
    """A direct message received from Discord."""

    message_id: int
    author_id: str
    author_is_bot: bool
    content: str

    @classmethod
    def from_api(cls, payload: Dict[str, Any]) -> "InboundMessage":
        """Build from a Discord message object."""
        author = payload.get("author") or {}
        return cls(
            message_id=int(payload["id"]),
            author_id=str(author.get("id", "")),
            author_is_bot=bool(author.get("bot", False)),
            content=payload.get("content") or "",
        )


class CommandFilter:
    """Maps authorized inbound messages to command names."""

    def __init__(
        self,
        recipient_id: str,
        prefix: str = "!",
        commands: FrozenSet[str] = frozenset({STATUS_COMMAND}),
    ) -> None:
        self.recipient_id = str(recipient_id)
        self.prefix = prefix
        self.commands = commands

    def is_authorized(self, message: InboundMessage) -> bool:
        return not message.author_is_bot and message.author_id == self.recipient_id

    def parse(self, message: InboundMessage) -> Optional[str]:
        """Return the command name, or None if the message is not one."""
        if not self.is_authorized(message):
            return None
        text = message.content.strip()
        if not text.startswith(self.prefix):
            return None
        command = text[len(self.prefix) :]
        return command if command in self.commands else None
