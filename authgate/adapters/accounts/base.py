"""Account store interface.

The registration flow only ever needs two operations from persistence: "is
there a record for this username" and "insert this record". Keeping the
contract that narrow lets the backing store be swapped freely.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class AccountRecord:
    """A registered account, stored as submitted.

    Attributes:
        username: Identity key; unique once registration completes.
        password: Opaque credential exactly as submitted (not hashed).
        email: Contact address.
        age: Numeric age as submitted.
    """

    username: str
    password: str
    email: str
    age: int | float


class AbstractAccountStore(ABC):
    """Interface for account persistence backends."""

    @abstractmethod
    async def exists(self, username: str) -> bool:
        """Return True iff a record with ``username`` is present.

        "Not found" is a normal False result, never an error.

        Raises:
            StorageUnavailableAppError: If the backing store cannot be reached.
        """
        raise NotImplementedError

    @abstractmethod
    async def create(self, record: AccountRecord) -> None:
        """Insert ``record``.

        Uniqueness is the caller's responsibility; a backend that enforces it
        anyway raises AccountExistsAppError on conflict.

        Raises:
            StorageUnavailableAppError: If the backing store cannot be reached.
            AccountExistsAppError: If the backend rejects a duplicate username.
        """
        raise NotImplementedError

    async def close(self) -> None:
        """Release backend resources. No-op by default."""
        return None
