"""discord.py implementation of ``PlatformClient``."""

from __future__ import annotations

import asyncio
from contextlib import contextmanager
from typing import Any, Iterator

import discord
from loguru import logger

from guildgate.core.errors import LoginFailure, RateLimitedError, UpstreamError
from guildgate.core.platform.base import (
    ActivityRecord,
    ConnectionHooks,
    GuildDetail,
    GuildRef,
    MemberRecord,
    PlatformClient,
    UserRecord,
)

DEFAULT_MAX_RATELIMIT_TIMEOUT = 30.0  # lowest value discord.py accepts


def default_intents() -> discord.Intents:
    """Guilds + members + presences: enough to search members and read status."""
    intents = discord.Intents.default()
    intents.members = True
    intents.presences = True
    return intents


class _GatewayClient(discord.Client):
    """discord.Client forwarding lifecycle events to ``ConnectionHooks``."""

    def __init__(self, hooks: ConnectionHooks, **options: Any):
        super().__init__(**options)
        self._hooks = hooks

    async def on_ready(self) -> None:
        logger.info(f"Discord: logged in as {self.user}")
        self._hooks.on_ready()

    async def on_resumed(self) -> None:
        logger.info("Discord: session resumed")
        self._hooks.on_ready()

    async def on_disconnect(self) -> None:
        logger.warning("Discord: gateway disconnected")
        self._hooks.on_disconnect(None)


@contextmanager
def _translate_errors(action: str) -> Iterator[None]:
    """Map discord.py errors onto the gateway's error taxonomy."""
    try:
        yield
    except discord.RateLimited as e:
        raise RateLimitedError(retry_after=e.retry_after) from e
    except discord.HTTPException as e:
        if e.status == 429:
            raise RateLimitedError() from e
        raise UpstreamError(f"Discord API error while {action}: {e}") from e


class DiscordPlatformClient(PlatformClient):
    """Bot connection backed by a ``discord.Client`` gateway session."""

    def __init__(
        self,
        hooks: ConnectionHooks,
        intents: discord.Intents | None = None,
        max_ratelimit_timeout: float = DEFAULT_MAX_RATELIMIT_TIMEOUT,
    ):
        self._hooks = hooks
        # Throttles longer than this raise discord.RateLimited instead of sleeping.
        # discord.py refuses values under 30s, so shorter waits are still retried.
        self._client = _GatewayClient(
            hooks,
            intents=intents or default_intents(),
            max_ratelimit_timeout=max_ratelimit_timeout,
        )
        self._task: asyncio.Task | None = None

    # ── Lifecycle ───────────────────────────────────────────

    async def login(self, token: str) -> None:
        try:
            await self._client.login(token)
        except discord.LoginFailure as e:
            raise LoginFailure(f"Discord rejected the bot token: {e}") from e
        self._task = asyncio.create_task(self._run())

    async def _run(self) -> None:
        try:
            await self._client.connect(reconnect=True)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Discord: gateway connection failed: {e}")
            self._hooks.on_disconnect(e)

    def is_ready(self) -> bool:
        return self._client.is_ready()

    def is_closed(self) -> bool:
        return self._client.is_closed()

    async def close(self) -> None:
        await self._client.close()
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    # ── Queries ─────────────────────────────────────────────

    async def fetch_guilds(self) -> list[GuildRef]:
        with _translate_errors("fetching guilds"):
            return [GuildRef(id=str(g.id), name=g.name) async for g in self._client.fetch_guilds(limit=None)]

    async def fetch_guild_detail(self, guild_id: str) -> GuildDetail:
        with _translate_errors(f"fetching guild {guild_id}"):
            guild = self._client.get_guild(int(guild_id))
            if guild is None:
                guild = await self._client.fetch_guild(int(guild_id), with_counts=True)
        # REST guilds carry no member object for the bot: permissions unknown
        me = guild.me
        permissions = [name for name, granted in me.guild_permissions if granted] if me else None
        return GuildDetail(
            id=str(guild.id),
            name=guild.name,
            member_count=guild.member_count or guild.approximate_member_count or 0,
            permissions=permissions,
        )

    async def fetch_members(self, guild_id: str) -> list[MemberRecord]:
        guild = self._cached_guild(guild_id)
        with _translate_errors(f"fetching members of guild {guild_id}"):
            if not guild.chunked:
                await guild.chunk()
        return [to_member_record(m) for m in guild.members]

    async def search_members(self, guild_id: str, query: str, limit: int = 1) -> list[MemberRecord]:
        guild = self._cached_guild(guild_id)
        with _translate_errors(f"searching members of guild {guild_id}"):
            try:
                members = await guild.query_members(
                    query=query, limit=limit, presences=self._client.intents.presences
                )
            except asyncio.TimeoutError as e:
                raise UpstreamError(f"Member search timed out in guild {guild_id}") from e
        return [to_member_record(m) for m in members]

    async def fetch_user_by_id(self, user_id: str) -> UserRecord | None:
        with _translate_errors(f"fetching user {user_id}"):
            try:
                user = await self._client.fetch_user(int(user_id))
            except discord.NotFound:
                return None
        return UserRecord(
            id=str(user.id),
            username=user.name,
            global_name=user.global_name,
            avatar_url=str(user.display_avatar.url),
        )

    def _cached_guild(self, guild_id: str) -> discord.Guild:
        guild = self._client.get_guild(int(guild_id))
        if guild is None:
            raise UpstreamError(f"Guild {guild_id} is not available on the gateway")
        return guild


def to_member_record(member: Any) -> MemberRecord:
    """Convert a ``discord.Member`` into a ``MemberRecord``."""
    activity = member.activity
    return MemberRecord(
        id=str(member.id),
        username=member.name,
        display_name=member.display_name,
        nickname=member.nick,
        global_name=member.global_name,
        avatar_url=str(member.display_avatar.url),
        status=str(member.status),
        activity=ActivityRecord(type=activity.type.name, name=activity.name or "") if activity else None,
    )


def create_discord_client(
    hooks: ConnectionHooks,
    max_ratelimit_timeout: float = DEFAULT_MAX_RATELIMIT_TIMEOUT,
) -> PlatformClient:
    """Default ``PlatformFactory`` used by the application."""
    return DiscordPlatformClient(hooks, max_ratelimit_timeout=max_ratelimit_timeout)
