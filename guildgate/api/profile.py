"""Profile routes — single user lookup by username or profile URL."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from loguru import logger

from guildgate.api.deps import get_profile_service
from guildgate.api.responses import success
from guildgate.core.errors import NotFoundError, ValidationError
from guildgate.models import ProfileUrlRequest
from guildgate.services import ProfileService

router = APIRouter(prefix="/api/profile", tags=["profile"])


@router.get("/discord")
async def discord_profile(
    request: Request,
    profiles: ProfileService = Depends(get_profile_service),
):
    """Look up a user by username, display name or nickname."""
    # Exactly one non-blank value; ?username=a&username=b is rejected
    values = request.query_params.getlist("username")
    if len(values) != 1 or not values[0].strip():
        raise ValidationError("Discord username is required")
    username = values[0].strip()

    logger.info(f"Profile request for '{username}'")
    user = await profiles.lookup_by_username(username)
    if user is None:
        raise NotFoundError(f"Discord user '{username}' not found")
    return success(user)


@router.post("")
async def profile_by_url(
    body: ProfileUrlRequest,
    profiles: ProfileService = Depends(get_profile_service),
):
    """Look up a user from a ``https://discord.com/users/<id>`` URL."""
    if not body.profile_url or not body.profile_url.strip():
        raise ValidationError("Discord profile URL is required")

    user = await profiles.lookup_by_profile_url(body.profile_url)
    if user is None:
        raise NotFoundError("Discord user not found")
    return success(user)
