"""Account registration flow: register a new username or reject a duplicate.

Sequence for one request, after both request gates have passed:
1. Ask the store whether the username exists.
2. If it does, answer "already exists": no token, no insert.
3. Otherwise insert the record (awaited, retried with backoff on storage
   failure), then issue a session token.

Steps 1 and 3 are separate suspension points, so two concurrent requests for
the same new username can both see "does not exist". With the in-memory store
both then insert and both get a token. A store that enforces uniqueness
(SqlAccountStore) turns the losing insert into AccountExistsAppError, which is
reported as "already exists".
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar

from authgate.adapters.accounts.base import AbstractAccountStore, AccountRecord
from authgate.core.errors import (
    AccountExistsAppError,
    ConfigurationAppError,
    StorageUnavailableAppError,
)
from authgate.core.logging import hash_identity
from authgate.schemas.accounts import RegistrationPayload
from authgate.services.tokens import SUBJECT_CLAIM, SigningSecretPolicy, TokenService

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RegistrationOutcome:
    """Result of a registration attempt.

    Attributes:
        created: True when a new account was inserted.
        username: The identity key that was registered (or already existed).
        token: Issued session token; None when the account already existed.
    """

    created: bool
    username: str
    token: str | None = None


class RegistrationService:
    """Composes an account store and a token service into the sign-up flow."""

    def __init__(
        self,
        *,
        store: AbstractAccountStore,
        tokens: TokenService,
        secrets: SigningSecretPolicy,
        storage_timeout_seconds: float = 5.0,
        create_attempts: int = 3,
        create_backoff_seconds: float = 0.1,
        token_ttl_seconds: int | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if create_attempts < 1:
            raise ValueError("create_attempts must be >= 1")
        self._store = store
        self._tokens = tokens
        self._secrets = secrets
        self._timeout = storage_timeout_seconds
        self._create_attempts = create_attempts
        self._backoff = create_backoff_seconds
        self._token_ttl = token_ttl_seconds
        self._clock = clock

    async def register(self, payload: RegistrationPayload) -> RegistrationOutcome:
        """Run the exists → create → issue sequence for one validated payload.

        Raises:
            StorageUnavailableAppError: If the store cannot answer the existence
                check, or every insert attempt failed. No token is issued.
        """
        username = payload.userName
        user_hash = hash_identity(username)

        if await self._bounded(self._store.exists(username), operation="exists"):
            logger.info("registration.duplicate", extra={"user_hash": user_hash})
            return RegistrationOutcome(created=False, username=username)

        record = AccountRecord(
            username=username,
            password=payload.password,
            email=str(payload.email),
            age=payload.age,
        )
        try:
            await self._create_with_retry(record, user_hash=user_hash)
        except AccountExistsAppError:
            logger.info(
                "registration.duplicate",
                extra={"user_hash": user_hash, "detected_by": "store"},
            )
            return RegistrationOutcome(created=False, username=username)

        token = self._tokens.issue(self._claims_for(username), self._signing_secret(payload))
        logger.info("registration.created", extra={"user_hash": user_hash})
        return RegistrationOutcome(created=True, username=username, token=token)

    def _claims_for(self, username: str) -> dict[str, object]:
        issued_at = int(self._clock())
        claims: dict[str, object] = {SUBJECT_CLAIM: username, "iat": issued_at}
        if self._token_ttl:
            claims["exp"] = issued_at + self._token_ttl
        return claims

    def _signing_secret(self, payload: RegistrationPayload) -> str:
        secret = self._secrets.resolve(payload.password)
        if not secret:
            raise ConfigurationAppError(
                code="auth_missing_secret",
                message="No signing secret available for token issuance",
            )
        return secret

    async def _create_with_retry(self, record: AccountRecord, *, user_hash: str) -> None:
        """Insert ``record``, retrying on storage failure.

        A timed-out insert is not cancelled in the store: a thread-backed
        store may still commit it after the deadline. Once an attempt has
        timed out, the username is looked up again before each retry, and a
        store-level duplicate on a later attempt is taken as that earlier
        insert landing. A concurrent registration of the same username inside
        that window is indistinguishable from it.
        """
        timed_out = False
        for attempt in range(1, self._create_attempts + 1):
            if timed_out and await self._landed(record.username, user_hash=user_hash):
                return
            try:
                await self._bounded(self._store.create(record), operation="create")
                return
            except AccountExistsAppError:
                if timed_out:
                    logger.info("storage.create_landed_late", extra={"user_hash": user_hash})
                    return
                raise
            except StorageUnavailableAppError as exc:
                timed_out = timed_out or exc.code == "storage_timeout"
                if attempt == self._create_attempts:
                    if timed_out and await self._landed(record.username, user_hash=user_hash):
                        return
                    logger.error(
                        "storage.create_failed",
                        extra={"user_hash": user_hash, "attempts": attempt, "error_code": exc.code},
                    )
                    raise StorageUnavailableAppError(
                        code=exc.code,
                        message=exc.message,
                        details={"operation": "create", "attempts": attempt},
                    ) from exc
                delay = self._backoff * (2 ** (attempt - 1))
                logger.warning(
                    "storage.create_retry",
                    extra={
                        "user_hash": user_hash,
                        "attempt": attempt,
                        "retry_in_s": delay,
                        "error_code": exc.code,
                    },
                )
                await asyncio.sleep(delay)

    async def _landed(self, username: str, *, user_hash: str) -> bool:
        """Whether an earlier, timed-out insert for ``username`` has committed."""
        try:
            found = await self._bounded(self._store.exists(username), operation="exists")
        except StorageUnavailableAppError as exc:
            logger.warning(
                "storage.create_recheck_failed",
                extra={"user_hash": user_hash, "error_code": exc.code},
            )
            return False
        if found:
            logger.info("storage.create_landed_late", extra={"user_hash": user_hash})
        return found

    async def _bounded(self, awaitable: Awaitable[T], *, operation: str) -> T:
        """Await a store call, mapping a timeout to StorageUnavailableAppError."""
        try:
            return await asyncio.wait_for(awaitable, timeout=self._timeout)
        except asyncio.TimeoutError as exc:
            logger.error(
                "storage.timeout",
                extra={"operation": operation, "timeout_seconds": self._timeout},
            )
            raise StorageUnavailableAppError(
                code="storage_timeout",
                message="Account store did not respond in time",
                details={"operation": operation, "timeout_seconds": self._timeout},
            ) from exc
