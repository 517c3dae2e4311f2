import inspect
import logging
import os
from contextlib import asynccontextmanager
from typing import Any, Optional

import aiohttp
import uvicorn
from fastapi import FastAPI, Request
from openai import AsyncOpenAI

from routes.image_route import router as image_router
from services.asset_store import AssetStoreCredentials, AssetStoreGateway
from services.rate_limiter import SlidingWindowRateLimiter
from utils.app_config import AppConfig, load_environment
from utils.database_init import AsyncDatabaseInitializer
from utils.errors import register_exception_handlers
from utils.http_middleware import install_middleware

LOGGER = logging.getLogger(__name__)

load_environment()  # .env.production when APP_ENV=production, otherwise .env


async def _close_quietly(resource: Any, name: str) -> None:
    """Call close/aclose on a client, awaiting it when needed."""
    if resource is None:
        return
    aclose = getattr(resource, "aclose", None) or getattr(resource, "close", None)
    if aclose is None:
        return
    try:
        result = aclose()
        if inspect.isawaitable(result):
            await result
    except Exception as exc:  # pylint: disable=broad-exception-caught
        # Keep shutting down the remaining resources.
        LOGGER.warning("Error closing %s during shutdown: %s", name, exc)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan manager to initialize:
      - the SQLite connection (with bounded retries; start-up fails on exhaustion)
      - the OpenAI async client, unless one was injected
      - the asset store gateway and its aiohttp session, unless one was injected
    and attach them to `app.state`. Teardown closes whatever was opened here.
    """
    config: AppConfig = app.state.config

    db_initializer = AsyncDatabaseInitializer(
        config.database_dir,
        attempts=config.db_connect_attempts,
        delay_seconds=config.db_connect_delay_seconds,
    )
    await db_initializer.connect()
    app.state.db_initializer = db_initializer

    owned_openai: Optional[AsyncOpenAI] = None
    owned_session: Optional[aiohttp.ClientSession] = None
    try:
        if app.state.openai_client is None:
            if not os.getenv("OPENAI_API_KEY"):
                raise RuntimeError("OPENAI_API_KEY environment variable is not set")
            try:
                owned_openai = AsyncOpenAI()
            except Exception as exc:
                raise RuntimeError("Failed to initialize OpenAI Async client") from exc
            app.state.openai_client = owned_openai

        if app.state.asset_store is None:
            credentials = AssetStoreCredentials.from_values(
                config.cloudinary_cloud_name, config.cloudinary_api_key, config.cloudinary_api_secret
            )
            owned_session = aiohttp.ClientSession()
            app.state.asset_store = AssetStoreGateway(owned_session, credentials, folder=config.asset_folder)

        LOGGER.info("Server is ready in %s mode", config.app_env)
        yield
    finally:
        LOGGER.info("Performing graceful shutdown...")
        await _close_quietly(owned_session, "asset store session")
        await _close_quietly(owned_openai, "OpenAI client")
        await db_initializer.close()


def create_app(
    config: Optional[AppConfig] = None,
    *,
    openai_client: Optional[AsyncOpenAI] = None,
    asset_store: Optional[AssetStoreGateway] = None,
    rate_limiter: Optional[SlidingWindowRateLimiter] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application instance.

    Clients passed in are used as-is; the rest are created by the lifespan.
    Rate limiting is only active in production.
    """
    config = config or AppConfig.from_env()
    logging.basicConfig(level=config.log_level)

    app = FastAPI(title="AI Image Compression API", lifespan=lifespan)
    app.state.config = config
    app.state.openai_client = openai_client
    app.state.asset_store = asset_store

    limiter = None
    if config.is_production:
        limiter = rate_limiter if rate_limiter is not None else SlidingWindowRateLimiter(
            max_requests=config.rate_limit_max_requests,
            window_seconds=config.rate_limit_window_seconds,
        )
    app.state.rate_limiter = limiter

    install_middleware(app, config, limiter)
    register_exception_handlers(app, production=config.is_production)

    @app.get("/health")
    async def health(request: Request):
        """
        Simple health check that reports database and detector client presence.
        """
        db_initializer = getattr(request.app.state, "db_initializer", None)
        return {
            "ok": True,
            "db_connected": bool(db_initializer and db_initializer.is_connected),
            "detector_available": request.app.state.openai_client is not None,
            "environment": config.app_env,
        }

    # Register application routers
    app.include_router(image_router)

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=app.state.config.port)
