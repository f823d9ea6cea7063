"""User routes — members across all guilds."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from loguru import logger

from guildgate.api.deps import get_member_service
from guildgate.api.responses import success
from guildgate.services import MemberService

router = APIRouter(prefix="/api/user", tags=["user"])


@router.get("/list")
async def user_list(members: MemberService = Depends(get_member_service)):
    """List members of every guild the bot can access."""
    result = await members.list_members()
    logger.info(f"Fetched {result.count} users")
    return success(result)


@router.get("/test")
async def user_test():
    return {
        "status": "success",
        "message": "User route is working correctly",
        "endpoints": {"list": "/api/user/list"},
    }
