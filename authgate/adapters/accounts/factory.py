"""Factory for account store backends."""

from authgate.adapters.accounts.base import AbstractAccountStore
from authgate.adapters.accounts.in_memory import InMemoryAccountStore
from authgate.adapters.accounts.sql import SqlAccountStore
from authgate.core.config import StorageSettings
from authgate.core.errors import ConfigurationAppError


def create_account_store(storage: StorageSettings) -> AbstractAccountStore:
    """Instantiate the account store selected by ``STORAGE_BACKEND``.

    The sql backend gets its schema created on construction.

    Raises:
        ConfigurationAppError: If the backend name is unknown.
    """
    backend = storage.backend.lower()

    if backend == "memory":
        return InMemoryAccountStore()

    if backend == "sql":
        store = SqlAccountStore(storage.database_url)
        store.create_schema()
        return store

    raise ConfigurationAppError(
        code="storage_unknown_backend",
        message=f"Unknown storage backend: '{backend}'. Supported backends: memory, sql",
    )
