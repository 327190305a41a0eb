"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# Determine which environment to load (default: development)
APP_ENV = os.getenv("APP_ENV", "development")

# Project root (so .env resolution doesn't depend on current working directory)
PROJECT_ROOT = Path(__file__).resolve().parents[2]

# Map environments to their respective .env files (relative to PROJECT_ROOT)
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


# Nested BaseSettings don't inherit env_file, so populate os.environ up front.
if _env_file:
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=False)


def _build_app_settings() -> "AppSettings":
    """Build app settings from environment.

    Pydantic Settings (v2) populates values from environment variables, but
    static type checkers treat fields as constructor arguments.
    """

    return AppSettings()  # type: ignore[call-arg]


def _build_auth_settings() -> "AuthSettings":
    return AuthSettings()  # type: ignore[call-arg]


def _build_storage_settings() -> "StorageSettings":
    return StorageSettings()  # type: ignore[call-arg]


def _build_log_settings() -> "LogSettings":
    return LogSettings()  # type: ignore[call-arg]


class AppSettings(BaseSettings):
    """Application-wide configuration."""

    debug: bool = Field(
        False,
        description="Enable debug mode with verbose logging",
    )
    rate_limit_enabled: bool = Field(
        True,
        description="Enable per-identity rate limiting on request gates",
    )
    rate_limit_requests: int = Field(
        5,
        description="Maximum number of requests admitted per window (per identity)",
        ge=1,
    )
    rate_limit_window_seconds: float = Field(
        1.0,
        description="Interval between hard resets of the rate counter table",
        gt=0,
    )
    rate_limit_include_headers: bool = Field(
        True,
        description="Include X-RateLimit-* and Retry-After headers when throttling",
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


class AuthSettings(BaseSettings):
    """Session token configuration.

    ``token_secret_source`` selects what tokens are signed with:
    - ``service``: the server-side ``jwt_secret`` (verification needs only the token)
    - ``password``: the user's own submitted password (verification needs the
      password re-supplied by the client)
    """

    jwt_secret: str | None = Field(
        None,
        description="Service-wide signing secret (required when token_secret_source=service)",
    )
    jwt_algorithm: str = Field(
        "HS256",
        description="JWT signing algorithm",
    )
    token_secret_source: Literal["service", "password"] = Field(
        "service",
        description="Signing secret source: 'service' or 'password'",
    )
    token_ttl_seconds: int | None = Field(
        None,
        description="Token lifetime in seconds; tokens never expire when unset",
        ge=1,
    )

    model_config = SettingsConfigDict(
        env_prefix="AUTH_",
        case_sensitive=False,
    )


class StorageSettings(BaseSettings):
    """Account store configuration."""

    backend: Literal["memory", "sql"] = Field(
        "memory",
        description="Account store backend: 'memory' (per-process) or 'sql' (SQLAlchemy)",
    )
    database_url: str = Field(
        "sqlite:///./accounts.db",
        description="SQLAlchemy database URL used by the sql backend",
    )
    timeout_seconds: float = Field(
        5.0,
        description="Upper bound for a single store operation",
        gt=0,
    )
    create_attempts: int = Field(
        3,
        description="Attempts made to insert an account before giving up",
        ge=1,
    )
    create_backoff_seconds: float = Field(
        0.1,
        description="Initial backoff between insert attempts (doubles each retry)",
        ge=0,
    )

    model_config = SettingsConfigDict(
        env_prefix="STORAGE_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging configuration."""

    level: str = Field("INFO", description="Root log level")
    format: Literal["json", "plain"] = Field(
        "json",
        description="Log output format",
    )
    output: Literal["stdout", "file"] = Field(
        "stdout",
        description="Log destination",
    )
    file_path: str | None = Field(
        None,
        description="Log file path when output=file",
    )
    max_bytes: int = Field(
        10 * 1024 * 1024,
        description="Rotate the log file after this many bytes (0 disables rotation)",
        ge=0,
    )
    backup_count: int = Field(
        5,
        description="Number of rotated log files to keep",
        ge=0,
    )
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header carrying the request correlation id",
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
    app: AppSettings = Field(default_factory=_build_app_settings)
    auth: AuthSettings = Field(default_factory=_build_auth_settings)
    storage: StorageSettings = Field(default_factory=_build_storage_settings)
    log: LogSettings = Field(default_factory=_build_log_settings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Global settings instance - composed from domain-specific settings
settings = Settings()
