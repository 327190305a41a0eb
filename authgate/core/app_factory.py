"""Application factory for the FastAPI app.

Builds every stateful collaborator explicitly (rate limiter and its window
scheduler, account store, token and flow services) and hands them to request
handlers through ``app.state``; there are no module-level singletons. Tests
inject their own collaborators through the keyword arguments.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from authgate.adapters.accounts.base import AbstractAccountStore
from authgate.adapters.accounts.factory import create_account_store
from authgate.adapters.rate_limit.base import AbstractRateLimiter, AbstractResetScheduler
from authgate.adapters.rate_limit.in_memory import InMemoryFixedWindowRateLimiter
from authgate.adapters.rate_limit.scheduler import AsyncioIntervalScheduler
from authgate.api.routes import accounts_router, health_router, session_router
from authgate.core.config import Settings, settings as default_settings
from authgate.core.errors import ConfigurationAppError
from authgate.core.exception_handlers import setup_exception_handlers
from authgate.core.logging import configure_logging
from authgate.core.middleware import request_id_middleware
from authgate.core.openapi import apply_openapi_customizations
from authgate.services.registration_service import RegistrationService
from authgate.services.session_service import SessionVerificationService
from authgate.services.tokens import SigningSecretPolicy, TokenService

logger = logging.getLogger(__name__)


def build_secret_policy(cfg: Settings) -> SigningSecretPolicy:
    """Resolve the token signing secret policy from settings.

    Raises:
        ConfigurationAppError: If service-secret signing is selected but no
            secret is configured.
    """
    source = cfg.auth.token_secret_source
    if source == "service" and not cfg.auth.jwt_secret:
        raise ConfigurationAppError(
            code="auth_missing_secret",
            message="AUTH_TOKEN_SECRET_SOURCE=service requires AUTH_JWT_SECRET",
            details={"hint": "Set AUTH_JWT_SECRET or switch AUTH_TOKEN_SECRET_SOURCE=password"},
        )
    if source == "password":
        logger.warning(
            "auth.password_signed_tokens",
            extra={"hint": "tokens are verifiable only with the user's password"},
        )
    return SigningSecretPolicy(source=source, service_secret=cfg.auth.jwt_secret)


def create_app(
    cfg: Settings | None = None,
    *,
    store: AbstractAccountStore | None = None,
    rate_limiter: AbstractRateLimiter | None = None,
    reset_scheduler: AbstractResetScheduler | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        cfg: Settings to build from; defaults to the environment-loaded settings.
        store: Account store override; defaults to STORAGE_BACKEND.
        rate_limiter: Limiter override; defaults to an in-memory fixed window.
        reset_scheduler: Window scheduler override; defaults to an asyncio
            interval timer. Started and stopped by the app lifespan.

    Returns:
        Configured app with middleware, handlers, routers and docs.
    """
    cfg = cfg or default_settings

    # Logging first so subsequent init logs are formatted as desired
    configure_logging(cfg.log)

    secrets = build_secret_policy(cfg)
    tokens = TokenService(algorithm=cfg.auth.jwt_algorithm)
    account_store = store or create_account_store(cfg.storage)
    limiter = rate_limiter or InMemoryFixedWindowRateLimiter(
        limit=cfg.app.rate_limit_requests,
        window_seconds=cfg.app.rate_limit_window_seconds,
    )
    scheduler = reset_scheduler or AsyncioIntervalScheduler(
        interval_seconds=cfg.app.rate_limit_window_seconds,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        scheduler.start(limiter.reset)
        logger.info(
            "app.started",
            extra={
                "app_env": cfg.app_env,
                "storage_backend": cfg.storage.backend if store is None else type(store).__name__,
                "token_secret_source": cfg.auth.token_secret_source,
                "rate_limit_requests": cfg.app.rate_limit_requests,
                "rate_limit_window_s": cfg.app.rate_limit_window_seconds,
            },
        )
        try:
            yield
        finally:
            await scheduler.stop()
            await account_store.close()
            logger.info("app.stopped")

    app = FastAPI(
        title="authgate",
        description=(
            "Account registration and session token checks. Registration "
            "payloads are validated and then throttled per userName; "
            "responses are plain text."
        ),
        version="0.1.0",
        debug=cfg.app.debug,
        lifespan=lifespan,
    )

    app.state.settings = cfg
    app.state.rate_limiter = limiter
    app.state.reset_scheduler = scheduler
    app.state.account_store = account_store
    app.state.storage_backend = cfg.storage.backend if store is None else "custom"
    app.state.token_service = tokens
    app.state.registration_service = RegistrationService(
        store=account_store,
        tokens=tokens,
        secrets=secrets,
        storage_timeout_seconds=cfg.storage.timeout_seconds,
        create_attempts=cfg.storage.create_attempts,
        create_backoff_seconds=cfg.storage.create_backoff_seconds,
        token_ttl_seconds=cfg.auth.token_ttl_seconds,
    )
    app.state.session_service = SessionVerificationService(tokens=tokens, secrets=secrets)

    # Middleware
    app.middleware("http")(request_id_middleware)

    # Exception handlers
    setup_exception_handlers(app)

    # Routers
    app.include_router(accounts_router)
    app.include_router(session_router)
    app.include_router(health_router)

    # OpenAPI customizations (security scheme, tags)
    apply_openapi_customizations(app)

    return app
