"""Data models for ``expense_tracker``.

- :class:`ExpenseCandidate`: untrusted, validated shape of the extractor's
  JSON reply (pydantic).
- :class:`ExpenseRecord`: a persisted expense as returned by the store.
- :class:`IndexedDocument`: the derived text + metadata kept in the vector
  index.
- :class:`Intent`, :class:`ExtractionResult` and the per-cycle outcomes.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import StrEnum
from typing import Any, NamedTuple, TypeAlias

from pydantic import BaseModel, ConfigDict, Field, field_validator

# ---------------------------------------------------------------------------
# Intent
# ---------------------------------------------------------------------------


class Intent(StrEnum):
    """The user's goal for one line of input."""

    ADD = "add"
    RETRIEVE = "retrieve"


# ---------------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------------


class ExpenseCandidate(BaseModel):
    """Expense proposed by the model, not yet checked against the taxonomy.

    Field aliases match the JSON keys requested from the model
    (``sub-category`` and ``response``); Python code uses the attribute names.
    ``amount`` is already converted to the reporting currency (INR).
    """

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    amount: Decimal = Field(gt=0)
    category: str = Field(min_length=1)
    subcategories: tuple[str, ...] = Field(alias="sub-category", min_length=1)
    confirmation_text: str = Field(alias="response", min_length=1)

    @field_validator("amount", mode="before")
    @classmethod
    def _amount_from_text(cls, v: Any) -> Any:
        # Models occasionally quote the number or prefix a currency symbol.
        if isinstance(v, str):
            return v.strip().lstrip("₹$€£").replace(",", "").strip()
        return v

    @field_validator("subcategories", mode="before")
    @classmethod
    def _subcategories_as_list(cls, v: Any) -> Any:
        if isinstance(v, str):
            return [v]
        return v

    @field_validator("subcategories")
    @classmethod
    def _subcategories_non_blank(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        cleaned = tuple(s.strip() for s in v)
        if any(not s for s in cleaned):
            raise ValueError("sub-category entries must be non-empty strings")
        return cleaned


class ExtractionResult(NamedTuple):
    """Tagged outcome of decoding model output: a candidate or a reason."""

    candidate: ExpenseCandidate | None
    reason: str | None = None

    @property
    def ok(self) -> bool:
        return self.candidate is not None

    @classmethod
    def success(cls, candidate: ExpenseCandidate) -> ExtractionResult:
        return cls(candidate=candidate, reason=None)

    @classmethod
    def failure(cls, reason: str) -> ExtractionResult:
        return cls(candidate=None, reason=reason)


# ---------------------------------------------------------------------------
# Persistence and index
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ExpenseRecord:
    """A stored expense. ``id`` is assigned by the store on insert."""

    id: int
    amount: Decimal
    category: str
    subcategories: tuple[str, ...]
    confirmation_text: str
    created_at: datetime


@dataclass(frozen=True, slots=True)
class IndexedDocument:
    """Searchable rendering of an expense plus a metadata mirror.

    Metadata keys: ``id`` (string), ``amount``, ``category``,
    ``subcategories``, ``date`` (ISO-8601). The sentinel document carries
    ``{"initialization": True}`` only.
    """

    text_content: str
    metadata: Mapping[str, Any] = field(default_factory=dict)

    @property
    def is_initialization(self) -> bool:
        return bool(self.metadata.get("initialization"))

    @property
    def expense_id(self) -> str | None:
        value = self.metadata.get("id")
        return None if value is None else str(value)


# ---------------------------------------------------------------------------
# Loop outcomes
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class AddOutcome:
    record: ExpenseRecord
    document: IndexedDocument


@dataclass(frozen=True, slots=True)
class RetrieveOutcome:
    summary: str
    matches: tuple[IndexedDocument, ...]


Outcome: TypeAlias = AddOutcome | RetrieveOutcome
