"""guildgate configuration schema — YAML + Pydantic + env override."""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# ════════════════════════════════════════════════════════════
# SUB-CONFIGS (nested BaseModel)
# ════════════════════════════════════════════════════════════


class DiscordConfig(BaseModel):
    """Bot credentials and gateway connection settings."""

    bot_token: str = ""
    client_id: str = ""
    client_secret: str = ""
    ready_timeout_s: float = 30.0
    # Discord throttles longer than this fail fast with 429; shorter ones are
    # waited out by discord.py, which rejects values below 30s
    max_ratelimit_timeout_s: float = Field(default=30.0, ge=30.0)
    connect_on_startup: bool = False  # log in during app startup instead of on first request


class ServerConfig(BaseModel):
    host: str = "0.0.0.0"
    port: int = 3000
    environment: str = "production"
    cors_origins: list[str] = Field(default_factory=lambda: ["http://localhost:5173"])

    @field_validator("cors_origins", mode="before")
    @classmethod
    def _split_origins(cls, value):
        # CORS_ORIGINS=http://a,http://b
        if isinstance(value, str):
            return [origin.strip() for origin in value.split(",") if origin.strip()]
        return value


class RateLimitConfig(BaseModel):
    """Fixed-window limiter applied to /api routes."""

    enabled: bool = True
    max_requests: int = Field(default=30, ge=1)
    window_ms: int = Field(default=60_000, ge=1)


# ════════════════════════════════════════════════════════════
# ROOT CONFIG (BaseSettings — env + .env support)
# ════════════════════════════════════════════════════════════


class Config(BaseSettings):
    """
    Root configuration.

    Priority: env vars > .env > YAML (init kwargs) > defaults

    Env override examples:
        GUILDGATE_DISCORD__BOT_TOKEN=...
        GUILDGATE_SERVER__PORT=8080
        GUILDGATE_RATE_LIMIT__MAX_REQUESTS=20
    """

    model_config = SettingsConfigDict(
        env_prefix="GUILDGATE_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    discord: DiscordConfig = Field(default_factory=DiscordConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    rate_limit: RateLimitConfig = Field(default_factory=RateLimitConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        # YAML arrives as init kwargs; env must win over it
        return env_settings, dotenv_settings, init_settings, file_secret_settings

    # ── Computed properties ─────────────────────────────────

    @property
    def is_development(self) -> bool:
        return self.server.environment.lower() == "development"

    @property
    def has_token(self) -> bool:
        return bool(self.discord.bot_token)
