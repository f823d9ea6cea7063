"""Error taxonomy shared by services and the HTTP layer."""

from __future__ import annotations


class GuildGateError(Exception):
    """Base error. ``status_code`` is the HTTP status the API answers with."""

    status_code: int = 500

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ConfigError(GuildGateError):
    """Required configuration (the bot token) is missing."""

    status_code = 500


class ValidationError(GuildGateError):
    """Request input is missing or malformed."""

    status_code = 400


class NotFoundError(GuildGateError):
    status_code = 404


class RateLimitedError(GuildGateError):
    """The platform throttled us. Surfaced as-is, never retried."""

    status_code = 429

    def __init__(self, message: str = "Discord API rate limit reached", retry_after: float | None = None):
        super().__init__(message)
        self.retry_after = retry_after


class ConnectionTimeoutError(GuildGateError):
    """The gateway connection did not become ready in time."""

    status_code = 502


class UpstreamError(GuildGateError):
    """Unclassified failure talking to the platform."""

    status_code = 500


class LoginFailure(UpstreamError):
    """The platform rejected the bot token."""


def is_rate_limited(error: BaseException) -> bool:
    """True if ``error`` means the platform is throttling requests.

    Covers our own ``RateLimitedError`` and any HTTP-ish error exposing a
    429 ``status`` / ``status_code`` (discord.py ``HTTPException``, httpx).
    """
    if isinstance(error, RateLimitedError):
        return True
    for attr in ("status", "status_code"):
        if getattr(error, attr, None) == 429:
            return True
    response = getattr(error, "response", None)
    return getattr(response, "status_code", None) == 429


def as_rate_limited(error: BaseException) -> RateLimitedError:
    """Wrap a throttling error from any source as ``RateLimitedError``."""
    if isinstance(error, RateLimitedError):
        return error
    return RateLimitedError(retry_after=getattr(error, "retry_after", None))


def raise_if_rate_limited(error: BaseException) -> None:
    """Re-raise ``error`` as ``RateLimitedError`` when it means throttling."""
    if is_rate_limited(error):
        raise as_rate_limited(error) from error
