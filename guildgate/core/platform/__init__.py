"""Chat platform access — client interface, records and the discord.py adapter."""

from guildgate.core.platform.base import (
    ActivityRecord,
    ConnectionHooks,
    GuildDetail,
    GuildRef,
    MemberRecord,
    PlatformClient,
    PlatformFactory,
    UserRecord,
)

__all__ = [
    "ActivityRecord",
    "ConnectionHooks",
    "GuildDetail",
    "GuildRef",
    "MemberRecord",
    "PlatformClient",
    "PlatformFactory",
    "UserRecord",
]
