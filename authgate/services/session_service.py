"""Session check flow: accept or reject a presented bearer token."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from authgate.core.logging import hash_identity
from authgate.services.tokens import SigningSecretPolicy, TokenFailure, TokenService, strip_bearer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionOutcome:
    """Result of a session check.

    ``failure`` is kept for logs only; callers must treat every
    unauthenticated outcome the same way.
    """

    authenticated: bool
    username: str | None = None
    failure: TokenFailure | None = None


class SessionVerificationService:
    """Verifies presented tokens against the configured secret policy."""

    def __init__(self, *, tokens: TokenService, secrets: SigningSecretPolicy) -> None:
        self._tokens = tokens
        self._secrets = secrets

    def verify(self, presented_token: str | None, presented_secret: str | None) -> SessionOutcome:
        token = strip_bearer(presented_token)
        result = self._tokens.verify(token, self._secrets.resolve(presented_secret))

        if result.valid and result.subject is None:
            result_failure: TokenFailure | None = "malformed"
        else:
            result_failure = result.failure

        if result_failure is not None:
            logger.info("session.rejected", extra={"reason": result_failure})
            return SessionOutcome(authenticated=False, failure=result_failure)

        logger.info("session.accepted", extra={"user_hash": hash_identity(result.subject or "")})
        return SessionOutcome(authenticated=True, username=result.subject)
