"""
Exception handlers - map cross-cutting domain errors to HTTP responses.

Protocol outcomes (not eligible, conflict, bad code) are translated in the
routes. These handlers cover errors any route can hit: malformed input that
passed schema validation, upstream failures and missing configuration.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from src.domain.exceptions import (
    EmailDeliveryFailed,
    InvalidCredentials,
    InvalidInput,
    ServerNotConfigured,
    StoreUnavailable,
    UpstreamUnavailable,
)

logger = logging.getLogger(__name__)


async def invalid_input_handler(request: Request, exc: InvalidInput) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": str(exc)})


async def invalid_credentials_handler(request: Request, exc: InvalidCredentials) -> JSONResponse:
    # Fixed message: never echo which check failed
    return JSONResponse(
        status_code=status.HTTP_401_UNAUTHORIZED,
        content={"detail": "Invalid credentials"},
    )


async def upstream_unavailable_handler(request: Request, exc: UpstreamUnavailable) -> JSONResponse:
    if isinstance(exc, StoreUnavailable):
        detail = "Storage temporarily unavailable, please retry"
    elif isinstance(exc, EmailDeliveryFailed):
        detail = "Email provider error, please retry"
    else:
        detail = "Upstream service unavailable, please retry"
    logger.error("Upstream failure on %s: %r", request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": detail},
        headers={"Retry-After": "5"},
    )


async def server_not_configured_handler(request: Request, exc: ServerNotConfigured) -> JSONResponse:
    logger.error("Server not configured: %s", exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Server not configured"},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(InvalidInput, invalid_input_handler)
    app.add_exception_handler(InvalidCredentials, invalid_credentials_handler)
    app.add_exception_handler(UpstreamUnavailable, upstream_unavailable_handler)
    app.add_exception_handler(ServerNotConfigured, server_not_configured_handler)
