"""FastAPI dependency injection — pull singletons from app.state."""

from __future__ import annotations

from fastapi import Request

from guildgate.core.config.schema import Config
from guildgate.core.connection import ConnectionManager
from guildgate.services import GuildService, MemberService, ProfileService


def get_config(request: Request) -> Config:
    """Get Config singleton from app state."""
    return request.app.state.config


def get_connection(request: Request) -> ConnectionManager:
    """Get the shared Discord ConnectionManager from app state."""
    return request.app.state.connection


def get_profile_service(request: Request) -> ProfileService:
    return request.app.state.profiles


def get_guild_service(request: Request) -> GuildService:
    return request.app.state.guilds


def get_member_service(request: Request) -> MemberService:
    return request.app.state.members
