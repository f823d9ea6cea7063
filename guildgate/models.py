"""Pydantic data models — normalized records returned by the API."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

UserStatus = Literal["online", "idle", "dnd", "offline", "unknown"]

_KNOWN_STATUSES = {"online", "idle", "dnd", "offline"}


def normalize_status(raw: str | None) -> UserStatus:
    """Map a platform status onto the public enum. Invisible users look offline."""
    value = (raw or "").lower()
    if value == "invisible":
        return "offline"
    if value in _KNOWN_STATUSES:
        return value  # type: ignore[return-value]
    return "unknown"


class ApiModel(BaseModel):
    """camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


# ════════════════════════════════════════════════════════════
# DOMAIN MODELS
# ════════════════════════════════════════════════════════════


class Activity(ApiModel):
    type: str
    name: str


class UserData(ApiModel):
    """A user's public profile as seen from a shared guild."""

    username: str
    display_name: str
    avatar_url: str | None = None
    status: UserStatus = "unknown"
    activity: Activity | None = None


class GuildData(ApiModel):
    id: str
    name: str
    member_count: int = 0
    permissions: list[str] | None = None
    error: str | None = None


class MemberData(ApiModel):
    """One guild membership; a user in two guilds appears twice."""

    id: str
    username: str
    display_name: str
    nickname: str | None = None
    guild_id: str
    guild_name: str
    avatar_url: str | None = None
    status: UserStatus = "unknown"


class GuildList(ApiModel):
    guilds_count: int
    guilds: list[GuildData] = Field(default_factory=list)


class MemberList(ApiModel):
    count: int
    users: list[MemberData] = Field(default_factory=list)


# ════════════════════════════════════════════════════════════
# API REQUEST / RESPONSE
# ════════════════════════════════════════════════════════════


class ProfileUrlRequest(ApiModel):
    profile_url: str | None = None


class HealthResponse(ApiModel):
    status: str
    timestamp: int  # epoch milliseconds
    discord_ready: bool
    version: str = ""
