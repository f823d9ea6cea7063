"""Response envelope and the centralized exception handlers."""

from __future__ import annotations

import math
import traceback
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException

from guildgate.core.errors import GuildGateError, RateLimitedError


def success(data: BaseModel | dict[str, Any]) -> dict[str, Any]:
    """Wrap a payload in the ``{"status": "success", "data": ...}`` envelope."""
    if isinstance(data, BaseModel):
        data = data.model_dump(mode="json", by_alias=True)
    return {"status": "success", "data": data}


def error_response(
    status_code: int,
    message: str,
    headers: dict[str, str] | None = None,
    **extra: Any,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"status": "error", "message": message, **extra},
        headers=headers,
    )


def _is_development(request: Request) -> bool:
    config = getattr(request.app.state, "config", None)
    return bool(config and config.is_development)


# ── Handlers ────────────────────────────────────────────────


async def guildgate_error_handler(request: Request, exc: GuildGateError) -> JSONResponse:
    """Map the error taxonomy onto HTTP statuses."""
    headers = None
    if isinstance(exc, RateLimitedError) and exc.retry_after is not None:
        headers = {"Retry-After": str(max(math.ceil(exc.retry_after), 1))}

    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path}: {type(exc).__name__}: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path}: {exc.status_code} {exc.message}")
    return error_response(exc.status_code, exc.message, headers=headers)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed query/body → 400 with the first problem spelled out."""
    errors = exc.errors()
    if errors:
        first = errors[0]
        where = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"Invalid request: {where}: {first.get('msg')}" if where else f"Invalid request: {first.get('msg')}"
    else:
        message = "Invalid request"
    return error_response(status.HTTP_400_BAD_REQUEST, message)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Unmatched routes and other framework-level HTTP errors."""
    if exc.status_code == status.HTTP_404_NOT_FOUND and exc.detail == "Not Found":
        return error_response(exc.status_code, f"Route {request.url.path} not found")
    return error_response(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all. Internals only leak in development mode."""
    logger.opt(exception=exc).error(f"Unhandled error on {request.method} {request.url.path}")
    if _is_development(request):
        stack = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc) or type(exc).__name__, stack=stack)
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Something went wrong")


def register_exception_handlers(app: FastAPI) -> None:
    # Specific exceptions before general ones
    app.add_exception_handler(GuildGateError, guildgate_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
