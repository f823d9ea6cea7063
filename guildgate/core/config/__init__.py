"""Configuration module."""

from guildgate.core.config.loader import load_config
from guildgate.core.config.schema import Config

__all__ = ["Config", "load_config"]
