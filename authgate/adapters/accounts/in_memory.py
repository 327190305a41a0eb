"""In-memory account store.

Notes:
- Per-process only and lost on restart; meant for development and tests.
- ``create`` inserts unconditionally, so concurrent registrations of one new
  username can produce duplicate records (see RegistrationService).
"""

from __future__ import annotations

import asyncio

from authgate.adapters.accounts.base import AbstractAccountStore, AccountRecord
from authgate.core.errors import StorageUnavailableAppError


class InMemoryAccountStore(AbstractAccountStore):
    """List-backed account store.

    Args:
        latency_seconds: Artificial delay applied to every operation. Each call
            yields to the event loop, like a network round-trip would.
        fail_with: When set, every operation raises this error instead of
            touching the records. Used to simulate an unreachable backend.
    """

    def __init__(
        self,
        *,
        latency_seconds: float = 0.0,
        fail_with: StorageUnavailableAppError | None = None,
    ) -> None:
        self._records: list[AccountRecord] = []
        self._latency = latency_seconds
        self.fail_with = fail_with

    @property
    def records(self) -> list[AccountRecord]:
        return list(self._records)

    def count(self, username: str) -> int:
        return sum(1 for record in self._records if record.username == username)

    async def exists(self, username: str) -> bool:
        await self._round_trip()
        return any(record.username == username for record in self._records)

    async def create(self, record: AccountRecord) -> None:
        await self._round_trip()
        self._records.append(record)

    async def _round_trip(self) -> None:
        await asyncio.sleep(self._latency)
        if self.fail_with is not None:
            raise self.fail_with
