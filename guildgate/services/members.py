"""MemberService — flatten the members of every visible guild."""

from __future__ import annotations

from loguru import logger

from guildgate.core.connection import ConnectionManager
from guildgate.core.platform.base import GuildRef, MemberRecord
from guildgate.models import MemberData, MemberList, normalize_status
from guildgate.services.common import fetch_guilds


class MemberService:
    def __init__(self, connection: ConnectionManager):
        self.connection = connection

    async def list_members(self) -> MemberList:
        """One entry per membership, guild by guild. Failing guilds contribute nothing."""
        client = await self.connection.acquire()
        users: list[MemberData] = []
        for guild in await fetch_guilds(client):
            logger.debug(f"Member list: fetching members from {guild.name}...")
            try:
                members = await client.fetch_members(guild.id)
            except Exception as e:
                logger.error(f"Member list: error fetching members from {guild.name}: {e}")
                continue
            logger.debug(f"Member list: found {len(members)} members in {guild.name}")
            users.extend(_member_data(m, guild) for m in members)
        return MemberList(count=len(users), users=users)


def _member_data(member: MemberRecord, guild: GuildRef) -> MemberData:
    return MemberData(
        id=member.id,
        username=member.username,
        display_name=member.display_name,
        nickname=member.nickname,
        guild_id=guild.id,
        guild_name=guild.name,
        avatar_url=member.avatar_url,
        status=normalize_status(member.status),
    )
