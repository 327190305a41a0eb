"""Account store adapter layer - abstracts over persistence backends."""

from authgate.adapters.accounts.base import AbstractAccountStore, AccountRecord
from authgate.adapters.accounts.factory import create_account_store
from authgate.adapters.accounts.in_memory import InMemoryAccountStore
from authgate.adapters.accounts.sql import SqlAccountStore

__all__ = [
    "AbstractAccountStore",
    "AccountRecord",
    "InMemoryAccountStore",
    "SqlAccountStore",
    "create_account_store",
]
