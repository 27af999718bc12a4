"""
pkgvault Database Session Management.

Database owns one engine and its session factory. It is built from a
DatabaseConfig and handed to every store and service that needs it; there
is no module-level engine.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Callable, Generator, Optional, TypeVar

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from pkgvault.db.base import Base
from pkgvault.engine.config import DatabaseConfig
from pkgvault.engine.errors import StorageFailureError

logger = logging.getLogger("pkgvault.db.session")

T = TypeVar("T")


def _enable_sqlite_foreign_keys(dbapi_conn, connection_record) -> None:
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    """
    Engine + session factory for one relational database.

    Usage:
        db = Database(config.database)
        db.create_all()
        with db.session_scope() as session:
            session.add(obj)
    """

    def __init__(self, config: Optional[DatabaseConfig] = None, engine: Optional[Engine] = None):
        self._config = config or DatabaseConfig()
        self._engine = engine or self._build_engine(self._config)
        self._session_factory = sessionmaker(bind=self._engine, expire_on_commit=False)

    @staticmethod
    def _build_engine(config: DatabaseConfig) -> Engine:
        kwargs: dict[str, Any] = {"echo": config.echo}
        if config.url.startswith("sqlite"):
            kwargs["connect_args"] = {"check_same_thread": False}
            if config.url in ("sqlite://", "sqlite:///:memory:"):
                # One shared connection so every session sees the same in-memory DB
                kwargs["poolclass"] = StaticPool
        else:
            kwargs["pool_pre_ping"] = config.pool_pre_ping

        engine = create_engine(config.url, **kwargs)
        if engine.dialect.name == "sqlite":
            event.listen(engine, "connect", _enable_sqlite_foreign_keys)
        return engine

    @property
    def engine(self) -> Engine:
        return self._engine

    def create_all(self) -> None:
        """Create all tables. Idempotent."""
        # Import registers the models on Base.metadata
        from pkgvault.db import models  # noqa: F401

        Base.metadata.create_all(self._engine)
        logger.info("Database tables ready on %s", self._engine.url.render_as_string(hide_password=True))

    @contextmanager
    def session_scope(self) -> Generator[Session, None, None]:
        """
        Context manager for sessions with auto-commit/rollback.

        Usage:
            with db.session_scope() as session:
                package = session.get(Package, 1)
        """
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def run(self, operation: str, fn: Callable[[Session], T]) -> T:
        """
        Run fn inside session_scope(), translating database errors.

        Domain errors raised by fn roll back and propagate unchanged; any
        SQLAlchemyError becomes a StorageFailureError chained to the cause.
        """
        try:
            with self.session_scope() as session:
                return fn(session)
        except SQLAlchemyError as e:
            logger.error(f"Storage failure during {operation}: {e}")
            raise StorageFailureError(
                f"Storage failure during {operation}",
                object_ref=operation,
                operation=operation,
            ) from e

    def health_check(self) -> bool:
        """Check if the engine can connect."""
        try:
            with self._engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError as e:
            logger.warning("Database health check failed: %s", e)
            return False

    def dispose(self) -> None:
        """Close the connection pool. Used during shutdown."""
        self._engine.dispose()

    def __repr__(self) -> str:
        return f"<Database url='{self._engine.url.render_as_string(hide_password=True)}'>"
