"""Blacklist persistence backed by one of several relational databases.

Every backend shares the same table and the same two operations. They only
differ in how the driver reports a violated ``(tenant_id, email)`` unique
constraint, so duplicate detection is the one hook each variant implements.
"""
from __future__ import annotations

from abc import ABC, abstractmethod

from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from src.db import models
from src.utils.logger import logger

MYSQL_DUPLICATE_ENTRY = 1062
POSTGRES_UNIQUE_VIOLATION = "23505"


class BlacklistStoreError(Exception):
    """Base class for blacklist persistence failures."""


class ConflictError(BlacklistStoreError):
    """The address is already blacklisted for the tenant."""

    def __init__(self, tenant_id: int, email: str) -> None:
        super().__init__(f"{email} is already blacklisted for tenant {tenant_id}")
        self.tenant_id = tenant_id
        self.email = email


class StorageError(BlacklistStoreError):
    """The backend could not be reached or rejected the statement."""


class BlacklistStore(ABC):
    """Insert and lookup operations over the ``blacklist`` table."""

    backend = ""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        self._session_factory = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)

    @abstractmethod
    def is_duplicate_key(self, exc: IntegrityError) -> bool:
        """Return True when ``exc`` is the backend's unique-constraint violation."""

    def insert(self, tenant_id: int, email: str, reason: str) -> None:
        """Blacklist ``email`` for ``tenant_id``.

        Raises :class:`ConflictError` when the pair already exists and
        :class:`StorageError` for any other database failure.
        """
        entry = models.BlacklistEntry(tenant_id=tenant_id, email=email, reason=reason)
        with self._session_factory() as session:
            session.add(entry)
            try:
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                if self.is_duplicate_key(exc):
                    raise ConflictError(tenant_id, email) from exc
                raise StorageError(f"Failed to blacklist {email}: {exc.orig}") from exc
            except SQLAlchemyError as exc:
                session.rollback()
                raise StorageError(f"Failed to blacklist {email}: {exc}") from exc

    def lookup(self, tenant_id: int, email: str) -> bool:
        """Return whether ``email`` is blacklisted for ``tenant_id``."""
        try:
            with self._session_factory() as session:
                row = (
                    session.query(models.BlacklistEntry.id)
                    .filter(models.BlacklistEntry.tenant_id == tenant_id, models.BlacklistEntry.email == email)
                    .first()
                )
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to look up {email}: {exc}") from exc
        return row is not None


class MySQLBlacklistStore(BlacklistStore):
    backend = "mysql"

    def is_duplicate_key(self, exc: IntegrityError) -> bool:
        args = getattr(exc.orig, "args", ())
        if args and args[0] == MYSQL_DUPLICATE_ENTRY:
            return True
        return "Duplicate entry" in str(exc.orig)


class PostgresBlacklistStore(BlacklistStore):
    backend = "postgresql"

    def is_duplicate_key(self, exc: IntegrityError) -> bool:
        # psycopg exposes ``sqlstate``, psycopg2 ``pgcode``.
        code = getattr(exc.orig, "sqlstate", None) or getattr(exc.orig, "pgcode", None)
        return code == POSTGRES_UNIQUE_VIOLATION


class SQLiteBlacklistStore(BlacklistStore):
    backend = "sqlite"

    def is_duplicate_key(self, exc: IntegrityError) -> bool:
        return "UNIQUE constraint failed" in str(exc.orig)


STORE_BACKENDS: dict[str, type[BlacklistStore]] = {
    "mysql": MySQLBlacklistStore,
    "mariadb": MySQLBlacklistStore,
    "postgresql": PostgresBlacklistStore,
    "sqlite": SQLiteBlacklistStore,
}


def build_blacklist_store(engine: Engine, backend: str | None = None) -> BlacklistStore:
    """Pick the store variant from configuration, falling back to the engine dialect."""

    name = backend or engine.dialect.name
    store_cls = STORE_BACKENDS.get(name)
    if store_cls is None:
        raise ValueError(f"No blacklist store for backend {name!r}")
    logger.info("Using %s blacklist store", store_cls.backend)
    return store_cls(engine)
