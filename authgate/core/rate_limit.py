"""Rate limiting dependencies for FastAPI routes.

This module wires the rate limiting adapter into the HTTP layer.

Rate limiting strategy:
- Fixed window per identity key, with the whole counter table cleared by the
  window scheduler (see app_factory).
- Registration: the key is the validated ``userName``. The dependency chains
  on payload validation, so malformed requests never consume a slot.
- Session check: the key is the (unverified) ``userName`` claim of the
  presented token, falling back to the client IP.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import Depends, Header, Request

from authgate.adapters.rate_limit.base import AbstractRateLimiter
from authgate.core.config import AppSettings
from authgate.core.errors import RateLimitedAppError
from authgate.core.logging import hash_identity
from authgate.core.validation import validated_registration
from authgate.schemas.accounts import RegistrationPayload
from authgate.services.tokens import TokenService, strip_bearer

logger = logging.getLogger(__name__)


def get_rate_limiter(request: Request) -> AbstractRateLimiter:
    """Return the limiter owned by the running application."""

    return request.app.state.rate_limiter


def _app_settings(request: Request) -> AppSettings:
    return request.app.state.settings.app


def _client_key(request: Request) -> str:
    client_host = request.client.host if request.client else "unknown"
    return f"ip:{client_host}"


def admit(
    limiter: AbstractRateLimiter,
    key: str,
    *,
    key_type: str,
    cfg: AppSettings,
) -> None:
    """Consume one unit for ``key`` or raise RateLimitedAppError.

    Args:
        limiter: Limiter holding the counter table.
        key: Identity key to charge.
        key_type: Label for logs ("user" or "ip").
        cfg: App settings controlling the throttling response headers.

    Raises:
        RateLimitedAppError: 429 Too Many Requests when the key is over budget.
    """

    result = limiter.consume(key)
    key_hash = hash_identity(key)

    if result.allowed:
        logger.debug(
            "rate_limit.allowed",
            extra={
                "key_type": key_type,
                "key_hash": key_hash,
                "limit": result.limit,
                "remaining": result.remaining,
            },
        )
        return

    retry_after = result.retry_after_seconds or 1
    logger.warning(
        "rate_limit.exceeded",
        extra={
            "key_type": key_type,
            "key_hash": key_hash,
            "limit": result.limit,
            "window_s": cfg.rate_limit_window_seconds,
            "retry_after_s": retry_after,
        },
    )

    headers: dict[str, str] = {}
    if cfg.rate_limit_include_headers:
        headers["Retry-After"] = str(retry_after)
        headers["X-RateLimit-Limit"] = str(result.limit)
        headers["X-RateLimit-Remaining"] = str(result.remaining)

    raise RateLimitedAppError(
        code="rate_limited",
        message="Too many requests. Please try again later!",
        details={"limit": result.limit, "retry_after": retry_after},
        headers=headers,
    )


async def enforce_registration_rate_limit(
    request: Request,
    payload: Annotated[RegistrationPayload, Depends(validated_registration)],
) -> RegistrationPayload:
    """Validate the body, then charge its ``userName`` one request.

    Returns:
        The validated payload, so routes depend on this gate alone.

    Raises:
        ValidationAppError: 422 when the payload is malformed (no slot consumed).
        RateLimitedAppError: 429 when the identity is over budget.
    """

    cfg = _app_settings(request)
    if cfg.rate_limit_enabled:
        admit(get_rate_limiter(request), payload.userName, key_type="user", cfg=cfg)
    return payload


async def enforce_session_rate_limit(
    request: Request,
    authorization: Annotated[str | None, Header()] = None,
) -> None:
    """Charge the session check to the token's claimed identity (or client IP).

    This is the only gate on the session check. It carries no body, so the
    registration validator does not run, and the charge happens before the
    signature is verified: a forged token still spends its subject's budget.
    """

    cfg = _app_settings(request)
    if not cfg.rate_limit_enabled:
        return

    tokens: TokenService = request.app.state.token_service
    subject = tokens.peek_subject(strip_bearer(authorization))
    if subject:
        admit(get_rate_limiter(request), subject, key_type="user", cfg=cfg)
    else:
        admit(get_rate_limiter(request), _client_key(request), key_type="ip", cfg=cfg)
