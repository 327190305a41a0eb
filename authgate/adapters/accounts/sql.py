"""SQLAlchemy-backed account store.

One ``accounts`` table with a unique constraint on ``username``. The unique
constraint closes the exists/create race that the registration flow itself
leaves open: the losing insert surfaces as AccountExistsAppError.

SQLAlchemy calls are blocking, so they run in the default executor; the
caller bounds them with a timeout.
"""

from __future__ import annotations

import asyncio
import functools
import logging
from typing import Any, Callable, TypeVar

from sqlalchemy import Float, Integer, String, create_engine, select
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker
from sqlalchemy.pool import StaticPool

from authgate.adapters.accounts.base import AbstractAccountStore, AccountRecord
from authgate.core.errors import AccountExistsAppError, StorageUnavailableAppError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Base(DeclarativeBase):
    """Declarative base for account tables."""


class Account(Base):
    """Persisted account row."""

    __tablename__ = "accounts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    password: Mapped[str] = mapped_column(String(1024), nullable=False)
    email: Mapped[str] = mapped_column(String(320), nullable=False)
    age: Mapped[float] = mapped_column(Float, nullable=False)


def _engine_kwargs(database_url: str) -> dict[str, Any]:
    if not database_url.startswith("sqlite"):
        return {"pool_pre_ping": True}
    kwargs: dict[str, Any] = {"connect_args": {"check_same_thread": False}}
    if database_url in ("sqlite://", "sqlite:///:memory:"):
        # One shared connection, otherwise each pooled connection sees its own empty DB.
        kwargs["poolclass"] = StaticPool
    return kwargs


class SqlAccountStore(AbstractAccountStore):
    """Account store on any SQLAlchemy-supported database."""

    def __init__(self, database_url: str, *, echo: bool = False) -> None:
        self._engine = create_engine(database_url, echo=echo, **_engine_kwargs(database_url))
        self._sessions = sessionmaker(bind=self._engine, autocommit=False, autoflush=False)

    def create_schema(self) -> None:
        Base.metadata.create_all(bind=self._engine)

    async def exists(self, username: str) -> bool:
        return await self._run(self._exists_sync, username)

    async def create(self, record: AccountRecord) -> None:
        await self._run(self._create_sync, record)

    async def close(self) -> None:
        self._engine.dispose()

    def _exists_sync(self, username: str) -> bool:
        with self._sessions() as session:
            stmt = select(Account.id).where(Account.username == username).limit(1)
            return session.execute(stmt).first() is not None

    def _create_sync(self, record: AccountRecord) -> None:
        with self._sessions() as session:
            session.add(
                Account(
                    username=record.username,
                    password=record.password,
                    email=record.email,
                    age=record.age,
                )
            )
            self._commit(session, record.username)

    def _commit(self, session: Session, username: str) -> None:
        try:
            session.commit()
        except IntegrityError as exc:
            session.rollback()
            # Only a row already holding the username is a duplicate; any other
            # constraint failure is a data error and propagates unchanged.
            if not self._exists_sync(username):
                raise
            raise AccountExistsAppError(
                code="account_exists",
                message="An account with this username already exists",
            ) from exc

    async def _run(self, fn: Callable[..., T], *args: Any) -> T:
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, functools.partial(fn, *args))
        except IntegrityError:
            raise
        except DBAPIError as exc:
            logger.error(
                "storage.unreachable",
                extra={"operation": fn.__name__.strip("_"), "error_type": type(exc).__name__},
            )
            raise StorageUnavailableAppError(
                code="storage_unavailable",
                message="Account store is unavailable",
                details={"operation": fn.__name__.strip("_")},
            ) from exc
