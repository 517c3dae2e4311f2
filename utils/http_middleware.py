"""Cross-cutting HTTP middleware: security headers, rate limiting, CORS and body limits."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from services.rate_limiter import SlidingWindowRateLimiter
from utils.app_config import AppConfig

LOGGER = logging.getLogger(__name__)

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
}
HSTS_HEADER = ("Strict-Transport-Security", "max-age=31536000; includeSubDomains")
LIMITED_BODY_TYPES = ("application/json", "application/x-www-form-urlencoded")


def apply_security_headers(response: Response, production: bool) -> Response:
    for name, value in SECURITY_HEADERS.items():
        response.headers[name] = value
    if production:
        response.headers[HSTS_HEADER[0]] = HSTS_HEADER[1]
    return response


def client_address(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def install_middleware(app: FastAPI, config: AppConfig, rate_limiter: Optional[SlidingWindowRateLimiter]) -> None:
    """Register middleware so security headers wrap everything, then rate limiting, then CORS."""

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def limit_body_size(request: Request, call_next):
        content_type = (request.headers.get("content-type") or "").lower()
        content_length = request.headers.get("content-length")
        if content_type.startswith(LIMITED_BODY_TYPES) and content_length and content_length.isdigit():
            if int(content_length) > config.max_body_bytes:
                return JSONResponse(status_code=413, content={"message": "Request body too large"})
        return await call_next(request)

    @app.middleware("http")
    async def rate_limit(request: Request, call_next):
        if rate_limiter is not None and not rate_limiter.hit(client_address(request)):
            LOGGER.warning("Rate limit exceeded for %s", client_address(request))
            return JSONResponse(status_code=429, content={"message": "Too many requests. Please try again later."})
        return await call_next(request)

    @app.middleware("http")
    async def security_headers(request: Request, call_next):
        return apply_security_headers(await call_next(request), config.is_production)
