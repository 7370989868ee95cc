"""DB helpers for tests: bootstrap a file-backed SQLite store with a taxonomy."""

from __future__ import annotations

from pathlib import Path

from db.client import Database
from expense_tracker.persistence import ExpenseStore
from expense_tracker.taxonomy import CategoryTaxonomy


def bootstrap_sqlite_db(db_file: Path) -> Database:
    """Create a SQLite database file with the schema and return its owner.

    A file-backed DB lets multiple SQLAlchemy connections share state
    (in-memory DBs are per-connection by default).
    """

    db_file.parent.mkdir(parents=True, exist_ok=True)
    database = Database(f"sqlite+pysqlite:///{db_file}")
    database.create_schema()
    return database


def seeded_store(db_file: Path, taxonomy: CategoryTaxonomy) -> ExpenseStore:
    store = ExpenseStore(bootstrap_sqlite_db(db_file))
    store.sync_taxonomy(taxonomy)
    return store
