from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional


@dataclass
class IrcChatMessage:
    """
    Normalized IRC PRIVMSG.

    `target` is the channel (or our own nick for private messages). The
    `to_event` helper emits the shape the trigger registry consumes.
    """

    raw: str
    nick: str
    target: str
    text: str

    user: Optional[str] = None
    host: Optional[str] = None
    timestamp: Optional[datetime] = None

    @property
    def is_channel(self) -> bool:
        return self.target.startswith(("#", "&"))

    def to_event(self) -> Dict[str, Any]:
        return {
            "platform": "irc",
            "type": "chat_message",
            "channel": self.target,
            "user": {
                "name": self.nick,
                "user": self.user,
                "host": self.host,
            },
            "text": self.text,
            "timestamp": (
                self.timestamp.astimezone(timezone.utc).isoformat()
                if self.timestamp
                else None
            ),
            "raw": self.raw,
        }
