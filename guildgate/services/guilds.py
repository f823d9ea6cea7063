"""GuildService — list the guilds the bot can see."""

from __future__ import annotations

import asyncio

from loguru import logger

from guildgate.core.connection import ConnectionManager
from guildgate.core.platform.base import GuildRef, PlatformClient
from guildgate.models import GuildData, GuildList
from guildgate.services.common import fetch_guilds

DETAIL_ERROR = "Failed to fetch guild details"


class GuildService:
    def __init__(self, connection: ConnectionManager):
        self.connection = connection

    async def list_guilds(self) -> GuildList:
        """Fetch details for every guild. A failing guild degrades to a stub entry."""
        client = await self.connection.acquire()
        guilds = await fetch_guilds(client)
        logger.info(f"Guild list: fetching details for {len(guilds)} guilds")
        entries = await asyncio.gather(*(_guild_entry(client, g) for g in guilds))
        return GuildList(guilds_count=len(guilds), guilds=list(entries))


async def _guild_entry(client: PlatformClient, guild: GuildRef) -> GuildData:
    try:
        detail = await client.fetch_guild_detail(guild.id)
    except Exception as e:
        logger.warning(f"Guild list: detail fetch failed for {guild.id}: {e}")
        return GuildData(id=guild.id, name="Unknown", member_count=0, error=DETAIL_ERROR)
    return GuildData(
        id=detail.id,
        name=detail.name,
        member_count=detail.member_count,
        permissions=list(detail.permissions) if detail.permissions is not None else None,
    )
