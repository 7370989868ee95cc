"""SQLAlchemy engine/session ownership for the expense store.

Usage
-----
from db.client import Database

database = Database("sqlite+pysqlite:///expenses.db")
database.create_schema()
with database.session_scope() as s:
    s.execute(...)
database.close()

A ``Database`` is constructed once by the application entrypoint and passed
to the components that need it; there is no module-level engine.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from .models.expenses import Base


def _enable_sqlite_foreign_keys(engine: Engine) -> None:
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_conn, _):  # pragma: no cover - tiny bridge
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys = ON")
        cursor.close()


class Database:
    """Engine plus session factory bound to a single database URL."""

    def __init__(self, database_url: str) -> None:
        if not database_url:
            raise ValueError("database_url must be a non-empty SQLAlchemy URL")
        self.url = database_url
        self.engine: Engine = create_engine(database_url, pool_pre_ping=True)
        if self.engine.dialect.name == "sqlite":
            _enable_sqlite_foreign_keys(self.engine)
        self._session_maker: sessionmaker[Session] = sessionmaker(
            bind=self.engine, expire_on_commit=False, class_=Session
        )

    def create_schema(self) -> None:
        """Create any missing tables (no-op for tables that already exist)."""

        Base.metadata.create_all(bind=self.engine)

    def get_session(self) -> Session:
        return self._session_maker()

    @contextmanager
    def session_scope(self) -> Iterator[Session]:
        """Provide a transactional scope around a series of operations."""

        session = self.get_session()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def close(self) -> None:
        self.engine.dispose()


__all__ = [
    "Database",
]
