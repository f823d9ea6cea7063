"""Platform client interface and the plain records it returns.

Services only ever see these records; the discord.py objects stay inside
``guildgate.core.platform.discord``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Callable


@dataclass(frozen=True)
class GuildRef:
    """A guild as returned by guild enumeration."""

    id: str
    name: str


@dataclass(frozen=True)
class GuildDetail:
    id: str
    name: str
    member_count: int
    # Permission names granted to the bot (e.g. "view_channel"); None when unknown
    permissions: list[str] | None = field(default_factory=list)


@dataclass(frozen=True)
class ActivityRecord:
    type: str
    name: str


@dataclass(frozen=True)
class MemberRecord:
    """A guild member with its presence, as far as the platform exposes it."""

    id: str
    username: str
    display_name: str
    nickname: str | None = None
    global_name: str | None = None
    avatar_url: str | None = None
    status: str = "unknown"
    activity: ActivityRecord | None = None


@dataclass(frozen=True)
class UserRecord:
    """A user fetched by id, outside any guild (no presence)."""

    id: str
    username: str
    global_name: str | None = None
    avatar_url: str | None = None


@dataclass
class ConnectionHooks:
    """Callbacks a client fires on gateway lifecycle events."""

    on_ready: Callable[[], None]
    on_disconnect: Callable[[BaseException | None], None]


class PlatformClient(ABC):
    """Capabilities the gateway needs from the chat platform."""

    @abstractmethod
    async def login(self, token: str) -> None:
        """Authenticate and start the gateway session in the background.

        Returns once the token is accepted. Readiness is signalled later
        through ``ConnectionHooks.on_ready``.
        """

    @abstractmethod
    def is_ready(self) -> bool: ...

    @abstractmethod
    def is_closed(self) -> bool: ...

    @abstractmethod
    async def close(self) -> None: ...

    @abstractmethod
    async def fetch_guilds(self) -> list[GuildRef]: ...

    @abstractmethod
    async def fetch_guild_detail(self, guild_id: str) -> GuildDetail: ...

    @abstractmethod
    async def fetch_members(self, guild_id: str) -> list[MemberRecord]: ...

    @abstractmethod
    async def search_members(self, guild_id: str, query: str, limit: int = 1) -> list[MemberRecord]: ...

    @abstractmethod
    async def fetch_user_by_id(self, user_id: str) -> UserRecord | None:
        """Return the user, or None if the platform does not know the id."""


PlatformFactory = Callable[[ConnectionHooks], PlatformClient]
