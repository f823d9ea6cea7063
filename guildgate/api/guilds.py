"""Guild routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from loguru import logger

from guildgate.api.deps import get_guild_service
from guildgate.api.responses import success
from guildgate.services import GuildService

router = APIRouter(prefix="/api/guild", tags=["guild"])


@router.get("/list")
async def guild_list(guilds: GuildService = Depends(get_guild_service)):
    """List guilds the bot can access."""
    result = await guilds.list_guilds()
    logger.info(f"Fetched {result.guilds_count} guilds")
    return success(result)


@router.get("/test")
async def guild_test():
    return {
        "status": "success",
        "message": "Guild route is working correctly",
        "endpoints": {"list": "/api/guild/list"},
    }
