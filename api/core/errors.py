"""
Error types shared by the feature packages and the FastAPI handlers that turn
them into `{"error": "..."}` responses.

Request problems are raised as `HTTPException` directly from services and are
answered with the same `{"error": ...}` body.Provider failures are raised as `UpstreamError` so the handler can log the
full detail and answer with a message that does not leak internals.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "An unexpected error occurred. Please try again."

# Known error patterns -> (safe user-facing message, status code).
_SAFE_MESSAGES: dict[str, tuple[str, int]] = {
    "rate limit": ("Too many requests. Please try again in a moment.", 429),
    "unauthorized": ("Authentication required. Please sign in.", 401),
    "forbidden": ("You don't have permission to perform this action.", 403),
    "not found": ("The requested resource was not found.", 404),
    "validation": ("Invalid request data. Please check your input.", 400),
    "timeout": ("Request timed out. Please try again.", 500),
    "network": ("Network error. Please check your connection.", 500),
}


class ConfigurationError(RuntimeError):
    """A required setting (usually a provider credential) is missing."""


class UpstreamError(RuntimeError):
    """A third-party provider call failed."""

    def __init__(self, provider: str, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.provider = provider
        self.message = message
        self.status_code = status_code


def safe_error_message(error: BaseException | str) -> tuple[str, int]:
    text = str(error).lower()
    for pattern, (message, status_code) in _SAFE_MESSAGES.items():
        if pattern in text:
            return message, status_code
    return GENERIC_ERROR_MESSAGE, 500


def upstream_status(exc: UpstreamError) -> int:
    # Rate-limit and out-of-credit answers are meaningful to the client.
    if exc.status_code in {402, 429}:
        return int(exc.status_code)
    return 502


async def _configuration_error_handler(request: Request, exc: ConfigurationError) -> JSONResponse:
    logger.error("configuration_error path=%s error=%s", request.url.path, exc)
    return JSONResponse(status_code=500, content={"error": str(exc)})


async def _upstream_error_handler(request: Request, exc: UpstreamError) -> JSONResponse:
    logger.error(
        "upstream_error path=%s provider=%s status=%s error=%s",
        request.url.path,
        exc.provider,
        exc.status_code,
        exc.message,
    )
    status_code = upstream_status(exc)
    if status_code == 502:
        message, _ = safe_error_message(exc)
        if message == GENERIC_ERROR_MESSAGE:
            message = f"{exc.provider.capitalize()} request failed."
    else:
        message = exc.message
    return JSONResponse(status_code=status_code, content={"error": message})


async def _http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=exc.headers)


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled_error path=%s", request.url.path)
    return JSONResponse(status_code=500, content={"error": GENERIC_ERROR_MESSAGE})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, _http_error_handler)
    app.add_exception_handler(ConfigurationError, _configuration_error_handler)
    app.add_exception_handler(UpstreamError, _upstream_error_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)
