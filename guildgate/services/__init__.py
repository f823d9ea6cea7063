"""Services — profile lookup, guild and member listing."""

from guildgate.services.guilds import GuildService
from guildgate.services.members import MemberService
from guildgate.services.profile import ProfileService

__all__ = ["GuildService", "MemberService", "ProfileService"]
