"""Pytest configuration and fixtures shared across all test modules.

Environment defaults are set before any authgate import so the global
settings object is built from them.
"""

import os

# CRITICAL: Set these before any imports that might load settings
os.environ.setdefault("APP_ENV", "testing")
os.environ.setdefault("AUTH_JWT_SECRET", "test-service-secret-0123456789abcdef")
os.environ.setdefault("AUTH_TOKEN_SECRET_SOURCE", "service")
os.environ.setdefault("STORAGE_BACKEND", "memory")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from authgate.adapters.accounts.in_memory import InMemoryAccountStore
from authgate.adapters.rate_limit.in_memory import InMemoryFixedWindowRateLimiter
from authgate.core.app_factory import create_app
from authgate.core.config import AppSettings, AuthSettings, LogSettings, Settings, StorageSettings

SERVICE_SECRET = "test-service-secret-0123456789abcdef"


def _make_settings(
    *,
    token_secret_source: str = "service",
    jwt_secret: str | None = SERVICE_SECRET,
    rate_limit_enabled: bool = True,
    rate_limit_requests: int = 5,
    token_ttl_seconds: int | None = None,
    create_attempts: int = 3,
    request_id_header: str = "X-Request-ID",
) -> Settings:
    """Build isolated settings for one app instance."""
    return Settings(
        app_env="testing",
        app=AppSettings(
            rate_limit_enabled=rate_limit_enabled,
            rate_limit_requests=rate_limit_requests,
            rate_limit_window_seconds=1.0,
        ),
        auth=AuthSettings(
            jwt_secret=jwt_secret,
            token_secret_source=token_secret_source,
            token_ttl_seconds=token_ttl_seconds,
        ),
        storage=StorageSettings(
            backend="memory",
            timeout_seconds=1.0,
            create_attempts=create_attempts,
            create_backoff_seconds=0.0,
        ),
        log=LogSettings(level="WARNING", request_id_header=request_id_header),
    )


@pytest.fixture
def store() -> InMemoryAccountStore:
    return InMemoryAccountStore()


@pytest.fixture
def limiter() -> InMemoryFixedWindowRateLimiter:
    return InMemoryFixedWindowRateLimiter(limit=5, window_seconds=1.0)


@pytest.fixture
def app(store: InMemoryAccountStore, limiter: InMemoryFixedWindowRateLimiter) -> FastAPI:
    return create_app(_make_settings(), store=store, rate_limiter=limiter)


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    """Test client without lifespan: the window scheduler never fires."""
    return TestClient(app)


@pytest.fixture
def alice_payload() -> dict:
    return {
        "userName": "alice",
        "password": "longpassword",
        "email": "a@b.com",
        "age": 30,
    }


@pytest.fixture
def make_settings():
    """Factory for isolated Settings objects (see _make_settings)."""
    return _make_settings
