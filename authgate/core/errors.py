"""Application-level exception types.

This module defines domain errors used across services/adapters, enabling
consistent error handling, logging, and API responses.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability.

    Fields are optional; only what is relevant to the failure is set.
    """

    code: str
    message: str
    hint: str
    fields: list[str]
    operation: str
    attempts: int
    timeout_seconds: float
    retry_after: int
    limit: int
    remaining: int
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when a request payload fails structural validation."""


class MalformedRequestAppError(AppError):
    """Raised when a request body cannot be decoded at all."""


class RateLimitedAppError(AppError):
    """Raised when an identity exceeds its per-window request budget.

    ``headers`` carries optional throttling headers for the response.
    """

    def __init__(
        self,
        code: str,
        message: str,
        details: ErrorDetails | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        super().__init__(code=code, message=message, details=details)
        self.headers = headers or {}


class UnauthorizedAppError(AppError):
    """Raised when a presented session token cannot be verified."""


class StorageUnavailableAppError(AppError):
    """Raised when the account store cannot be reached or times out."""


class AccountExistsAppError(AppError):
    """Raised by a store that enforces username uniqueness on insert."""


class ConfigurationAppError(AppError):
    """Raised when settings are inconsistent at startup."""
