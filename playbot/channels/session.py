"""Session context built once from the rtm.start handshake.

The session is created before the ingestion task starts and is never
mutated afterwards, so the dispatcher and the fetchers can read it
without locking.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterable, Mapping

from playbot.channels.models import Channel, HelloResponse, User


class IdentifierCache:
    """Read-only id -> display name lookup for users and channels.

    Stale by construction: the roster is captured at handshake time and
    never refreshed. Unknown ids resolve to "".
    """

    def __init__(self, users: Iterable[User] = (), channels: Iterable[Channel] = ()):
        self._users: Mapping[str, str] = MappingProxyType({u.id: u.name for u in users})
        self._channels: Mapping[str, str] = MappingProxyType({c.id: c.name for c in channels})

    def user_name(self, user_id: str) -> str:
        return self._users.get(user_id, "")

    def channel_name(self, channel_id: str) -> str:
        return self._channels.get(channel_id, "")

    @property
    def user_count(self) -> int:
        return len(self._users)

    @property
    def channel_count(self) -> int:
        return len(self._channels)


@dataclass(frozen=True)
class Session:
    """Who the bot is and where it is connected."""

    token: str
    bot_id: str
    bot_name: str
    url: str
    names: IdentifierCache = field(default_factory=IdentifierCache)

    @classmethod
    def from_hello(cls, token: str, hello: HelloResponse) -> "Session":
        bot = hello.bot
        return cls(
            token=token,
            bot_id=bot.id if bot else "",
            bot_name=bot.name if bot else "",
            url=hello.url,
            names=IdentifierCache(hello.users, hello.channels),
        )

    def is_bot(self, user_id: str) -> bool:
        """True for our own id and for the empty id used by system messages."""
        return user_id == self.bot_id or user_id == ""

    def user_id_to_name(self, user_id: str) -> str:
        return self.names.user_name(user_id)

    def channel_id_to_name(self, channel_id: str) -> str:
        return self.names.channel_name(channel_id)
