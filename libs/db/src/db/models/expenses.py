from __future__ import annotations

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import (
    JSON,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Base(DeclarativeBase):
    pass


# ---------------------------
# Reference: et_categories
# ---------------------------


class ExpenseCategory(Base):
    __tablename__ = "et_categories"

    # Top-level rows use the category name as ``code``. Subcategory rows use
    # ``"<Category>:<Subcategory>"`` so names may repeat across parents.
    code: Mapped[str] = mapped_column(String, primary_key=True)
    display_name: Mapped[str] = mapped_column(String, nullable=False)
    # Two-level depth only; a child's parent is always a top-level row.
    parent_code: Mapped[str | None] = mapped_column(
        String,
        ForeignKey("et_categories.code", deferrable=True, initially="DEFERRED"),
        nullable=True,
    )
    sort_order: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )


# ---------------------------
# Core: et_expenses
# ---------------------------


class Expense(Base):
    __tablename__ = "et_expenses"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    category: Mapped[str] = mapped_column(
        String,
        ForeignKey("et_categories.code"),
        nullable=False,
    )
    # Ordered list of subcategory display names under ``category``. Membership
    # is enforced by the store before insert.
    subcategories: Mapped[list[str]] = mapped_column(JSON, nullable=False)
    confirmation_text: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )


__all__ = [
    "Base",
    "ExpenseCategory",
    "Expense",
]
