"""Environment-driven configuration.

`load_environment()` picks the dotenv file for the current `APP_ENV`
(`.env.production` in production, `.env` otherwise) and `AppConfig.from_env()`
reads the resulting process environment. Variables already present in the
environment take precedence over the file.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

PRODUCTION = "production"


def _env_name() -> str:
    return (os.getenv("APP_ENV") or "development").strip().lower()


def load_environment(base_dir: Optional[str] = None) -> str:
    """Load the dotenv file matching APP_ENV and return the path that was used."""
    filename = ".env.production" if _env_name() == PRODUCTION else ".env"
    path = os.path.join(base_dir, filename) if base_dir else filename
    load_dotenv(path, override=False)
    return path


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}") from exc


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise RuntimeError(f"{name} must be a number, got {raw!r}") from exc


@dataclass(frozen=True)
class AppConfig:
    """Runtime settings for the compression service."""

    app_env: str = "development"
    port: int = 3000
    log_level: str = "INFO"
    database_dir: str = "database"
    openai_model: str = "gpt-5"
    cloudinary_cloud_name: Optional[str] = None
    cloudinary_api_key: Optional[str] = None
    cloudinary_api_secret: Optional[str] = None
    asset_folder: str = "ai-compression"
    max_upload_bytes: int = 5 * 1024 * 1024
    max_body_bytes: int = 50 * 1024 * 1024
    rate_limit_max_requests: int = 100
    rate_limit_window_seconds: int = 15 * 60
    db_connect_attempts: int = 5
    db_connect_delay_seconds: float = 5.0

    @property
    def is_production(self) -> bool:
        return self.app_env == PRODUCTION

    @classmethod
    def from_env(cls) -> "AppConfig":
        return cls(
            app_env=_env_name(),
            port=_int_env("PORT", 3000),
            log_level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
            database_dir=os.getenv("DATABASE_DIR") or "database",
            openai_model=os.getenv("OPENAI_MODEL") or "gpt-5",
            cloudinary_cloud_name=os.getenv("CLOUDINARY_CLOUD_NAME"),
            cloudinary_api_key=os.getenv("CLOUDINARY_API_KEY"),
            cloudinary_api_secret=os.getenv("CLOUDINARY_API_SECRET"),
            asset_folder=os.getenv("ASSET_FOLDER") or "ai-compression",
            max_upload_bytes=_int_env("MAX_UPLOAD_MB", 5) * 1024 * 1024,
            max_body_bytes=_int_env("MAX_BODY_MB", 50) * 1024 * 1024,
            rate_limit_max_requests=_int_env("RATE_LIMIT_MAX_REQUESTS", 100),
            rate_limit_window_seconds=_int_env("RATE_LIMIT_WINDOW_SECONDS", 15 * 60),
            db_connect_attempts=_int_env("DB_CONNECT_ATTEMPTS", 5),
            db_connect_delay_seconds=_float_env("DB_CONNECT_DELAY_SECONDS", 5.0),
        )
