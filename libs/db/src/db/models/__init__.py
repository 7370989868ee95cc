"""Shared SQLAlchemy models registry for the expense tracker database."""

from .expenses import Base, Expense, ExpenseCategory

__all__ = [
    "Base",
    "Expense",
    "ExpenseCategory",
]
