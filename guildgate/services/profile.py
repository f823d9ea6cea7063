"""ProfileService — find one user's profile across the bot's guilds."""

from __future__ import annotations

import re

from loguru import logger

from guildgate.core.connection import ConnectionManager
from guildgate.core.errors import ValidationError, raise_if_rate_limited
from guildgate.core.platform.base import GuildRef, MemberRecord, PlatformClient, UserRecord
from guildgate.models import Activity, UserData, normalize_status
from guildgate.services.common import fetch_guilds

# The bot must be able to see channels and their history to search a guild
REQUIRED_PERMISSIONS = ("view_channel", "read_message_history")

SNOWFLAKE_RE = re.compile(r"^\d{17,19}$")
PROFILE_URL_RE = re.compile(r"^https?://(?:www\.)?discord(?:app)?\.com/users/(\d{17,20})/?$", re.IGNORECASE)


def looks_like_user_id(value: str) -> bool:
    return bool(SNOWFLAKE_RE.match(value))


def extract_user_id(profile_url: str) -> str | None:
    """Return the user id from a ``https://discord.com/users/<id>`` URL."""
    match = PROFILE_URL_RE.match(profile_url.strip())
    return match.group(1) if match else None


def find_member(members: list[MemberRecord], username: str) -> MemberRecord | None:
    """Username match first, then display name / global name / nickname.

    Both passes are case-insensitive; list order breaks ties.
    """
    needle = username.casefold()
    for member in members:
        if member.username.casefold() == needle:
            return member
    for member in members:
        names = (member.display_name, member.global_name, member.nickname)
        if any(name and name.casefold() == needle for name in names):
            return member
    return None


def member_to_user_data(member: MemberRecord) -> UserData:
    activity = member.activity
    return UserData(
        username=member.username,
        display_name=member.display_name,
        avatar_url=member.avatar_url,
        status=normalize_status(member.status),
        activity=Activity(type=activity.type, name=activity.name) if activity else None,
    )


def user_to_user_data(user: UserRecord) -> UserData:
    """Direct lookups carry no guild context: presence is unknown."""
    return UserData(
        username=user.username,
        display_name=user.global_name or user.username,
        avatar_url=user.avatar_url,
        status="unknown",
        activity=None,
    )


class ProfileService:
    """Username / id / profile-URL lookups over the shared connection."""

    def __init__(self, connection: ConnectionManager):
        self.connection = connection

    async def lookup_by_username(self, username: str) -> UserData | None:
        """Search guild members in enumeration order; first matching guild wins.

        Falls back to a direct id lookup when ``username`` is id-shaped.
        Returns None when nothing matches. Raises ``RateLimitedError`` as soon
        as the platform throttles any call.
        """
        client = await self.connection.acquire()
        guilds = await fetch_guilds(client)
        if not guilds:
            logger.info("Profile lookup: bot is not in any guild")

        for guild in guilds:
            member = await self._search_guild(client, guild, username)
            if member is not None:
                logger.info(f"Profile lookup: found '{username}' in {guild.name}")
                return member_to_user_data(member)

        if looks_like_user_id(username):
            user = await self._fetch_user(client, username)
            if user is not None:
                return user_to_user_data(user)

        logger.info(f"Profile lookup: '{username}' not found in {len(guilds)} guilds")
        return None

    async def lookup_by_profile_url(self, profile_url: str) -> UserData | None:
        user_id = extract_user_id(profile_url)
        if user_id is None:
            raise ValidationError("Invalid Discord profile URL format")
        return await self.lookup_by_id(user_id)

    async def lookup_by_id(self, user_id: str) -> UserData | None:
        """Prefer a guild membership (it has presence), else fetch the user directly."""
        client = await self.connection.acquire()
        for guild in await fetch_guilds(client):
            if not await self._can_search(client, guild):
                continue
            try:
                members = await client.fetch_members(guild.id)
            except Exception as e:
                raise_if_rate_limited(e)
                logger.warning(f"Profile lookup: cannot fetch members of {guild.name}: {e}")
                continue
            for member in members:
                if member.id == user_id:
                    return member_to_user_data(member)

        user = await self._fetch_user(client, user_id)
        return user_to_user_data(user) if user is not None else None

    # ── Per-guild steps ─────────────────────────────────────

    async def _can_search(self, client: PlatformClient, guild: GuildRef) -> bool:
        try:
            detail = await client.fetch_guild_detail(guild.id)
        except Exception as e:
            raise_if_rate_limited(e)
            logger.warning(f"Profile lookup: skipping {guild.name}, detail fetch failed: {e}")
            return False
        if detail.permissions is None:
            logger.debug(f"Profile lookup: skipping {guild.name}, bot permissions unknown")
            return False
        missing = [p for p in REQUIRED_PERMISSIONS if p not in detail.permissions]
        if missing:
            logger.debug(f"Profile lookup: skipping {guild.name}, missing {', '.join(missing)}")
            return False
        return True

    async def _search_guild(self, client: PlatformClient, guild: GuildRef, username: str) -> MemberRecord | None:
        if not await self._can_search(client, guild):
            return None

        try:
            members = await client.fetch_members(guild.id)
        except Exception as e:
            raise_if_rate_limited(e)
            logger.warning(f"Profile lookup: member fetch failed in {guild.name}, trying search: {e}")
        else:
            return find_member(members, username)

        try:
            results = await client.search_members(guild.id, username, limit=1)
        except Exception as e:
            raise_if_rate_limited(e)
            logger.warning(f"Profile lookup: member search failed in {guild.name}: {e}")
            return None
        return find_member(results, username)

    async def _fetch_user(self, client: PlatformClient, user_id: str) -> UserRecord | None:
        try:
            return await client.fetch_user_by_id(user_id)
        except Exception as e:
            raise_if_rate_limited(e)
            logger.warning(f"Profile lookup: direct lookup of {user_id} failed: {e}")
            return None

