"""Core API routes — health and the /api index."""

from __future__ import annotations

import time

from fastapi import APIRouter, Depends

from guildgate import __version__
from guildgate.api.deps import get_connection
from guildgate.core.connection import ConnectionManager
from guildgate.models import HealthResponse

router = APIRouter()

API_INDEX = {
    "status": "success",
    "message": "guildgate API",
    "version": __version__,
    "endpoints": {
        "profile": {
            "GET /api/profile/discord?username=<username>": "Look up a Discord user by username",
            "POST /api/profile": "Look up a Discord user by profile URL ({\"profileUrl\": ...})",
        },
        "guild": {
            "GET /api/guild/list": "List guilds the bot can access",
            "GET /api/guild/test": "Guild routes self-test",
        },
        "user": {
            "GET /api/user/list": "List members of every accessible guild",
            "GET /api/user/test": "User routes self-test",
        },
        "health": {"GET /health": "Liveness probe"},
    },
}


@router.get("/health", response_model=HealthResponse)
async def health(connection: ConnectionManager = Depends(get_connection)):
    """Liveness probe. Never touches the Discord connection."""
    return HealthResponse(
        status="ok",
        timestamp=int(time.time() * 1000),
        discord_ready=connection.is_ready,
        version=__version__,
    )


@router.get("/api")
async def api_index():
    """Static endpoint documentation."""
    return API_INDEX
