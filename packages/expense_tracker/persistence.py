"""Expense store backed by the shared ``db`` library.

The store is the authoritative owner of expense records. It enforces the
category schema at write time against the ``et_categories`` table (the same
two-level shape the taxonomy produces via :meth:`CategoryTaxonomy.to_rows`),
assigns ``created_at``, and exposes delete-by-id for cleanup.
"""

from __future__ import annotations

from datetime import UTC, datetime
from decimal import ROUND_HALF_UP, Decimal

from db.client import Database
from db.models.expenses import Expense, ExpenseCategory
from sqlalchemy import select
from sqlalchemy.orm import Session

from .errors import InvalidCategoryError, InvalidSubcategoryError
from .logging_setup import get_logger
from .models import ExpenseCandidate, ExpenseRecord
from .taxonomy import CategoryTaxonomy, subcategory_code

_CENTS = Decimal("0.01")

_logger = get_logger("expense_tracker.persistence")


def _to_record(row: Expense) -> ExpenseRecord:
    created = row.created_at
    # SQLite drops tzinfo on round-trip; values are always written in UTC.
    if created.tzinfo is None:
        created = created.replace(tzinfo=UTC)
    return ExpenseRecord(
        id=row.id,
        amount=Decimal(row.amount),
        category=row.category,
        subcategories=tuple(row.subcategories or ()),
        confirmation_text=row.confirmation_text,
        created_at=created,
    )


class ExpenseStore:
    """Schema-enforcing CRUD over ``et_expenses``."""

    def __init__(self, database: Database) -> None:
        self._db = database

    # ---- Taxonomy ------------------------------------------------------------

    def sync_taxonomy(self, taxonomy: CategoryTaxonomy) -> int:
        """Insert category/subcategory rows missing from the table.

        Existing rows are left alone (stored expenses reference them).
        Returns the number of rows inserted.
        """

        rows = taxonomy.to_rows()
        inserted = 0
        with self._db.session_scope() as session:
            existing = set(session.execute(select(ExpenseCategory.code)).scalars().all())
            for row in rows:
                if row["code"] in existing:
                    continue
                session.add(ExpenseCategory(**row))
                inserted += 1
                # Parents must exist before their children under immediate FKs.
                if row["parent_code"] is None:
                    session.flush()
        _logger.info("store:taxonomy_synced inserted=%d total=%d", inserted, len(rows))
        return inserted

    def _check_schema(self, session: Session, candidate: ExpenseCandidate) -> None:
        parent = session.get(ExpenseCategory, candidate.category)
        if parent is None or parent.parent_code is not None:
            raise InvalidCategoryError(candidate.category)
        allowed = set(
            session.execute(
                select(ExpenseCategory.code).where(
                    ExpenseCategory.parent_code == candidate.category
                )
            )
            .scalars()
            .all()
        )
        for sub in candidate.subcategories:
            if subcategory_code(candidate.category, sub) not in allowed:
                raise InvalidSubcategoryError(candidate.category, sub)

    # ---- Expenses ------------------------------------------------------------

    def save(self, candidate: ExpenseCandidate, *, created_at: datetime | None = None) -> ExpenseRecord:
        """Persist ``candidate`` and return the stored record.

        Raises :class:`InvalidCategoryError` / :class:`InvalidSubcategoryError`
        when the candidate does not match the stored taxonomy; nothing is
        written in that case.
        """

        with self._db.session_scope() as session:
            self._check_schema(session, candidate)
            row = Expense(
                amount=candidate.amount.quantize(_CENTS, rounding=ROUND_HALF_UP),
                category=candidate.category,
                subcategories=list(candidate.subcategories),
                confirmation_text=candidate.confirmation_text,
            )
            if created_at is not None:
                row.created_at = created_at
            session.add(row)
            session.flush()
            record = _to_record(row)
        _logger.info("store:saved id=%d category=%s", record.id, record.category)
        return record

    def get(self, expense_id: int) -> ExpenseRecord | None:
        with self._db.session_scope() as session:
            row = session.get(Expense, expense_id)
            return _to_record(row) if row is not None else None

    def list_expenses(self) -> list[ExpenseRecord]:
        """All records in insertion order."""

        with self._db.session_scope() as session:
            rows = session.execute(select(Expense).order_by(Expense.id)).scalars().all()
            return [_to_record(r) for r in rows]

    def delete_by_id(self, expense_id: int) -> bool:
        """Delete one record; returns False when it did not exist."""

        with self._db.session_scope() as session:
            row = session.get(Expense, expense_id)
            if row is None:
                return False
            session.delete(row)
        _logger.info("store:deleted id=%d", expense_id)
        return True

    def close(self) -> None:
        self._db.close()


__all__ = [
    "ExpenseStore",
]
