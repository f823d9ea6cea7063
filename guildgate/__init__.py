"""guildgate — HTTP gateway over a Discord bot connection."""

__version__ = "0.1.0"
