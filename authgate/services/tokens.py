"""Session token issuance and verification (JWT, HS256 by default).

Tokens are never stored: verification is recomputed from the presented token
and a secret. Verification returns a result object instead of raising, since an
invalid token is an expected outcome of untrusted input, not a fault.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Literal

import jwt

logger = logging.getLogger(__name__)

SUBJECT_CLAIM = "userName"

TokenFailure = Literal[
    "missing_token",
    "missing_secret",
    "expired",
    "invalid_signature",
    "malformed",
]


@dataclass(frozen=True)
class TokenVerification:
    """Outcome of ``TokenService.verify``.

    Attributes:
        valid: True when the signature (and expiry, if any) checked out.
        claims: Decoded claims when valid, empty otherwise.
        failure: Why verification failed; None when valid.
    """

    valid: bool
    claims: dict[str, Any] = field(default_factory=dict)
    failure: TokenFailure | None = None

    @property
    def subject(self) -> str | None:
        value = self.claims.get(SUBJECT_CLAIM)
        return value if isinstance(value, str) else None


class TokenService:
    """Signs and verifies bearer tokens with a caller-supplied secret."""

    def __init__(self, algorithm: str = "HS256") -> None:
        self._algorithm = algorithm

    @property
    def algorithm(self) -> str:
        return self._algorithm

    def issue(self, claims: dict[str, Any], secret: str) -> str:
        """Sign exactly ``claims`` with ``secret``.

        Deterministic: the same claims and secret always produce the same token.
        """
        if not secret:
            raise ValueError("secret must be a non-empty string")
        return jwt.encode(claims, secret, algorithm=self._algorithm)

    def verify(self, token: str | None, secret: str | None) -> TokenVerification:
        """Check ``token`` against ``secret`` without raising for bad input."""
        if not token:
            return TokenVerification(valid=False, failure="missing_token")
        if not secret:
            return TokenVerification(valid=False, failure="missing_secret")

        try:
            claims = jwt.decode(token, secret, algorithms=[self._algorithm])
        except jwt.ExpiredSignatureError:
            return TokenVerification(valid=False, failure="expired")
        except jwt.InvalidSignatureError:
            return TokenVerification(valid=False, failure="invalid_signature")
        except jwt.InvalidTokenError:
            return TokenVerification(valid=False, failure="malformed")

        return TokenVerification(valid=True, claims=claims)

    def peek_subject(self, token: str | None) -> str | None:
        """Read the subject claim WITHOUT checking the signature.

        Only for keying the rate limiter before verification; never trust the
        result for authentication.
        """
        if not token:
            return None
        try:
            claims = jwt.decode(token, options={"verify_signature": False})
        except jwt.InvalidTokenError:
            return None
        value = claims.get(SUBJECT_CLAIM)
        return value if isinstance(value, str) and value else None


SecretSource = Literal["service", "password"]


@dataclass(frozen=True)
class SigningSecretPolicy:
    """Decides which secret signs and verifies a token.

    ``service``: every token is signed with one server-side secret, and
    whatever secret material a client presents is ignored.
    ``password``: a token is signed with the password submitted at
    registration, so the client must present that password again to verify.
    """

    source: SecretSource
    service_secret: str | None = None

    def __post_init__(self) -> None:
        if self.source == "service" and not self.service_secret:
            raise ValueError("service secret source requires a non-empty service_secret")

    def resolve(self, presented: str | None) -> str | None:
        if self.source == "service":
            return self.service_secret
        return presented or None


def strip_bearer(value: str | None) -> str | None:
    """Accept either a raw token or an ``Authorization: Bearer <token>`` value."""
    if value is None:
        return None
    value = value.strip()
    scheme, _, rest = value.partition(" ")
    if scheme.lower() == "bearer" and rest:
        return rest.strip()
    return value or None
