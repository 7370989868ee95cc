"""db: shared database library (SQLAlchemy).

Public exports
--------------
- ``Base`` and ``metadata`` for schema creation
- ORM models in ``db.models.expenses`` (re-exported for convenience)
- ``Database`` engine/session owner in ``db.client``
"""

from __future__ import annotations

from .client import Database
from .models.expenses import Base, Expense, ExpenseCategory

metadata = Base.metadata

__all__ = [
    "Base",
    "metadata",
    "Database",
    "Expense",
    "ExpenseCategory",
]
