"""FastAPI application factory."""

from __future__ import annotations

import math
import time
from contextlib import asynccontextmanager
from functools import partial

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from guildgate import __version__
from guildgate.api.guilds import router as guild_router
from guildgate.api.profile import router as profile_router
from guildgate.api.responses import error_response, register_exception_handlers, unhandled_exception_handler
from guildgate.api.routes import router as core_router
from guildgate.api.users import router as user_router
from guildgate.core.config.loader import load_config
from guildgate.core.config.schema import Config
from guildgate.core.connection import ConnectionManager
from guildgate.core.errors import GuildGateError
from guildgate.core.platform.base import PlatformFactory
from guildgate.core.platform.discord import create_discord_client
from guildgate.core.ratelimit import FixedWindowRateLimiter
from guildgate.services import GuildService, MemberService, ProfileService


# ── Middleware ──────────────────────────────────────────────


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Fixed-window rate limiter (IP-based) for /api routes."""

    async def dispatch(self, request: Request, call_next):
        limiter: FixedWindowRateLimiter | None = getattr(request.app.state, "rate_limiter", None)
        path = request.url.path
        if limiter is None or not (path == "/api" or path.startswith("/api/")):
            return await call_next(request)

        ip = request.client.host if request.client else "unknown"
        decision = limiter.hit(ip)
        headers = {
            "X-RateLimit-Limit": str(decision.limit),
            "X-RateLimit-Remaining": str(decision.remaining),
            "X-RateLimit-Reset": str(math.ceil(decision.reset_at)),
        }

        if not decision.allowed:
            logger.warning(f"Rate limit exceeded for {ip} on {path}")
            headers["Retry-After"] = str(decision.retry_after)
            return error_response(
                429,
                f"Rate limit exceeded. Try again after {decision.retry_after} seconds.",
                headers=headers,
            )

        response = await call_next(request)
        response.headers.update(headers)
        return response


class UnhandledErrorMiddleware(BaseHTTPMiddleware):
    """Render unexpected exceptions as the error envelope inside the middleware stack."""

    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)
        except Exception as e:
            return await unhandled_exception_handler(request, e)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Conservative security headers on every response."""

    _HEADERS = {
        "X-Content-Type-Options": "nosniff",
        "X-Frame-Options": "SAMEORIGIN",
        "Referrer-Policy": "no-referrer",
        "Cross-Origin-Resource-Policy": "same-origin",
    }

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        for name, value in self._HEADERS.items():
            response.headers.setdefault(name, value)
        return response


class AccessLogMiddleware(BaseHTTPMiddleware):
    """One log line per request: method, path, status, duration."""

    async def dispatch(self, request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.info(f"{request.method} {request.url.path} {response.status_code} {elapsed_ms:.1f}ms")
        return response


# ── App Factory ──────────────────────────────────────────────


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup: warn on missing token, optionally log in early. Shutdown: close the connection."""
    config: Config = app.state.config
    connection: ConnectionManager = app.state.connection

    if not config.has_token:
        logger.warning("Discord bot token is not configured — Discord routes will answer 500")
    elif config.discord.connect_on_startup:
        try:
            await connection.acquire()
        except GuildGateError as e:
            logger.error(f"Discord connection at startup failed: {e.message}")

    logger.info(f"guildgate API started — environment: {config.server.environment}")
    yield

    await connection.close()
    logger.info("guildgate API shutting down")


def create_app(
    config: Config | None = None,
    platform_factory: PlatformFactory | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    ``platform_factory`` builds the platform client; it defaults to the
    discord.py adapter and is replaced by a fake in tests.
    """
    config = config or load_config()

    app = FastAPI(
        title="guildgate API",
        description="HTTP gateway for Discord profile, guild and member lookups",
        version=__version__,
        lifespan=lifespan,
    )

    connection = ConnectionManager(
        config.discord.bot_token,
        platform_factory
        or partial(create_discord_client, max_ratelimit_timeout=config.discord.max_ratelimit_timeout_s),
        ready_timeout=config.discord.ready_timeout_s,
    )
    app.state.config = config
    app.state.connection = connection
    app.state.profiles = ProfileService(connection)
    app.state.guilds = GuildService(connection)
    app.state.members = MemberService(connection)
    app.state.rate_limiter = (
        FixedWindowRateLimiter(config.rate_limit.max_requests, config.rate_limit.window_ms)
        if config.rate_limit.enabled
        else None
    )

    # Middleware (last added runs first)
    app.add_middleware(UnhandledErrorMiddleware)
    app.add_middleware(RateLimitMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(AccessLogMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.server.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    # Routers
    app.include_router(core_router)
    app.include_router(profile_router)
    app.include_router(guild_router)
    app.include_router(user_router)

    return app


app = create_app()
