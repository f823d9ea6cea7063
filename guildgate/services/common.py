"""Helpers shared by the services."""

from __future__ import annotations

from guildgate.core.errors import GuildGateError, UpstreamError, raise_if_rate_limited
from guildgate.core.platform.base import GuildRef, PlatformClient


async def fetch_guilds(client: PlatformClient) -> list[GuildRef]:
    """Enumerate the bot's guilds, translating failures into the error taxonomy."""
    try:
        return await client.fetch_guilds()
    except Exception as e:
        raise_if_rate_limited(e)
        if isinstance(e, GuildGateError):
            raise
        raise UpstreamError(f"Error fetching Discord guilds: {e}") from e
