"""Application error taxonomy and the FastAPI handlers that render it."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from utils.http_middleware import apply_security_headers

LOGGER = logging.getLogger(__name__)
REDACTED_MESSAGE = "Something went wrong!"


class AppError(Exception):
    """Base class for errors that map onto an HTTP status code."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ClientInputError(AppError):
    """Missing, empty, oversized or wrongly typed upload."""

    status_code = 400


class NotFoundError(AppError):
    status_code = 404


class RateLimitError(AppError):
    status_code = 429


class UpstreamServiceError(AppError):
    """Failure of the codec, asset store, database or another collaborator."""

    status_code = 500


def _public_message(message: str, status_code: int, production: bool) -> str:
    if production and status_code >= 500:
        return REDACTED_MESSAGE
    return message


def register_exception_handlers(app: FastAPI, *, production: bool) -> None:
    """Attach JSON handlers for AppError and for anything left unhandled."""

    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        if exc.status_code >= 500:
            LOGGER.error("%s %s failed: %s", request.method, request.url.path, exc.message, exc_info=exc.__cause__)
        return JSONResponse(
            status_code=exc.status_code,
            content={"message": _public_message(exc.message, exc.status_code, production)},
        )

    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        LOGGER.exception("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
        # Rendered outside the middleware stack, so headers are set here too.
        response = JSONResponse(
            status_code=500,
            content={"message": _public_message(str(exc), 500, production)},
        )
        return apply_security_headers(response, production)

    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
