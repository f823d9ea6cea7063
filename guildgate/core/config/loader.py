"""Configuration loader — YAML file + env override."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from loguru import logger

from guildgate.core.config.schema import Config
from guildgate.core.errors import ConfigError

# Plain variables used by existing deployments of the gateway.
# Only consulted when the namespaced setting is absent.
_LEGACY_ENV = {
    "DISCORD_BOT_TOKEN": ("discord", "bot_token"),
    "DISCORD_CLIENT_ID": ("discord", "client_id"),
    "DISCORD_CLIENT_SECRET": ("discord", "client_secret"),
    "PORT": ("server", "port"),
    "ENVIRONMENT": ("server", "environment"),
    "CORS_ORIGINS": ("server", "cors_origins"),
}


def load_config(config_path: str | Path | None = None) -> Config:
    """
    Load configuration.

    Resolution order for config file:
        1. Explicit ``config_path`` argument
        2. ``GUILDGATE_CONFIG`` env variable
        3. ``./config.yaml`` in cwd

    Values priority (handled by pydantic-settings):
        env vars  >  .env file  >  YAML  >  legacy env vars  >  defaults
    """
    yaml_data = _load_yaml(_resolve_path(config_path))
    _apply_legacy_env(yaml_data)
    return Config(**yaml_data)


def _resolve_path(config_path: str | Path | None = None) -> Path | None:
    """Argument, then ``GUILDGATE_CONFIG``, then ``./config.yaml`` if it exists.

    An explicitly named file is returned even when missing so the miss gets
    logged instead of silently picking up the working directory's file.
    """
    explicit = config_path or os.environ.get("GUILDGATE_CONFIG")
    if explicit:
        return Path(explicit)
    local = Path("config.yaml")
    return local if local.is_file() else None


def _load_yaml(path: Path | None) -> dict[str, Any]:
    """Read the ``discord`` / ``server`` / ``rate_limit`` sections into a dict."""
    if path is None:
        return {}
    if not path.is_file():
        logger.warning(f"Config file {path} not found, using env vars and defaults")
        return {}
    data = yaml.safe_load(path.read_text()) or {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must hold a mapping, got {type(data).__name__}")
    return data


def _apply_legacy_env(data: dict[str, Any]) -> None:
    """Fill unset sections from un-prefixed env vars (DISCORD_BOT_TOKEN, PORT, ...)."""
    for env_name, (section, key) in _LEGACY_ENV.items():
        value = os.environ.get(env_name)
        if not value:
            continue
        section_data = data.setdefault(section, {})
        section_data.setdefault(key, value)
