"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# Determine which environment to load (default: development)
APP_ENV = os.getenv("APP_ENV", "development")

# Project root (so .env resolution doesn't depend on current working directory)
PROJECT_ROOT = Path(__file__).resolve().parents[2]

ENV_FILE_MAP = {
    "development": ".env.development",
    "testing": ".env.testing",
    "staging": ".env.staging",
    "production": ".env.production",
}

_env_filename = ENV_FILE_MAP.get(APP_ENV, ".env.development")
_env_path = PROJECT_ROOT / _env_filename

# Only load from file if it exists (production might inject via env vars only)
_env_file = str(_env_path) if _env_path.is_file() else None


# Nested BaseSettings don't inherit env_file, so populate os.environ up front
if _env_file:
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


def parse_csv(value: str | None) -> list[str]:
    """Split a comma-separated setting into trimmed, non-empty items.

    Order is preserved and duplicates are dropped.

    Examples:
        >>> parse_csv("https://a.example, https://b.example")
        ['https://a.example', 'https://b.example']
        >>> parse_csv(None)
        []
    """
    if not value:
        return []

    items: list[str] = []
    for raw in value.split(","):
        item = raw.strip()
        if item and item not in items:
            items.append(item)
    return items


class GatewaySettings(BaseSettings):
    """Request handling and policy defaults for the gateway endpoint."""

    cors_allow_origins: str = Field(
        "*",
        description="Comma-separated list of allowed CORS origins ('*' allows any)",
    )
    cors_allow_headers: str = Field(
        "authorization, x-client-info, apikey, content-type",
        description="Value sent in Access-Control-Allow-Headers",
    )
    rate_limit_default_limit: int = Field(
        5,
        description="Attempts allowed per window when the caller omits 'limit'",
        ge=0,
    )
    rate_limit_default_window_seconds: int = Field(
        300,
        description="Sliding window length when the caller omits 'window'",
        ge=1,
    )
    rate_limit_include_headers: bool = Field(
        True,
        description="Include X-RateLimit-* and Retry-After headers on 429 responses",
    )
    max_input_chars: int = Field(
        10000,
        description="Maximum sanitized input length before truncation",
        ge=1,
    )

    model_config = SettingsConfigDict(
        env_prefix="GATEWAY_",
        case_sensitive=False,
    )

    @property
    def allowed_origins(self) -> list[str]:
        return parse_csv(self.cors_allow_origins)


class StoreSettings(BaseSettings):
    """Backing datastore for attempt records and security events."""

    backend: str = Field(
        "memory",
        description="Event store backend: 'memory' (per-process) or 'sql'",
    )
    database_url: str | None = Field(
        None,
        description="Async SQLAlchemy URL (e.g. postgresql+asyncpg://..., sqlite+aiosqlite:///gateway.db)",
    )
    echo: bool = Field(
        False,
        description="Log every SQL statement",
    )
    create_tables: bool = Field(
        True,
        description="Create missing tables on startup (disable when migrations own the schema)",
    )

    model_config = SettingsConfigDict(
        env_prefix="STORE_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging output configuration."""

    level: str = Field("INFO", description="Root log level")
    format: str = Field("json", description="'json' or 'plain'")
    output: str = Field("stdout", description="'stdout' or 'file'")
    file_path: str | None = Field(None, description="Log file path when output=file")
    max_bytes: int = Field(0, description="Rotate the log file at this size (0 disables rotation)")
    backup_count: int = Field(5, description="Rotated files to keep")
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header used to read and echo the request correlation id",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if settings are malformed.
    """

    app_env: str = APP_ENV
    gateway: GatewaySettings = Field(default_factory=GatewaySettings)
    store: StoreSettings = Field(default_factory=StoreSettings)
    log: LogSettings = Field(default_factory=LogSettings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Global settings instance, used as the default by the app factory
settings = Settings()
