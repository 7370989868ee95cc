"""Exception hierarchy for ``expense_tracker``.

Startup failures (``TaxonomyLoadError``, ``CredentialMissingError``) end the
process. Everything else is raised inside a single loop cycle and reported
without terminating the loop.
"""

from __future__ import annotations

from enum import Enum


class ExpenseTrackerError(Exception):
    """Base class for all application errors."""


# ---- Startup -----------------------------------------------------------------


class TaxonomyLoadError(ExpenseTrackerError):
    """The category definition is missing, unreadable, or malformed."""


class CredentialMissingError(ExpenseTrackerError):
    """A required environment variable (API key, database URL) is not set."""


# ---- External model calls ----------------------------------------------------


class FailureKind(Enum):
    """Structured classification of a failed model call."""

    RATE_LIMIT = "rate_limit"
    TIMEOUT = "timeout"
    OTHER = "other"


class ModelCallError(ExpenseTrackerError):
    """A call to the language model or embedding endpoint failed."""

    def __init__(self, message: str, *, kind: FailureKind = FailureKind.OTHER) -> None:
        super().__init__(message)
        self.kind = kind

    @property
    def is_rate_limited(self) -> bool:
        return self.kind is FailureKind.RATE_LIMIT


class RateLimitExceededError(ExpenseTrackerError):
    """Every attempt was rate limited; ``last_error`` holds the final failure."""

    def __init__(self, message: str, *, attempts: int, last_error: BaseException) -> None:
        super().__init__(message)
        self.attempts = attempts
        self.last_error = last_error


# ---- Model output ------------------------------------------------------------


class IntentParseError(ExpenseTrackerError, ValueError):
    """The classifier reply was not one of the known intent tokens."""


class ExtractionParseError(ExpenseTrackerError, ValueError):
    """The extractor reply was not valid JSON or lacked a required field."""


# ---- Promotion ---------------------------------------------------------------


class InvalidCategoryError(ExpenseTrackerError, ValueError):
    def __init__(self, category: str) -> None:
        super().__init__(f"Unknown category: {category!r}")
        self.category = category


class InvalidSubcategoryError(ExpenseTrackerError, ValueError):
    def __init__(self, category: str, subcategory: str) -> None:
        super().__init__(f"Subcategory {subcategory!r} is not allowed under {category!r}")
        self.category = category
        self.subcategory = subcategory


__all__ = [
    "ExpenseTrackerError",
    "TaxonomyLoadError",
    "CredentialMissingError",
    "FailureKind",
    "ModelCallError",
    "RateLimitExceededError",
    "IntentParseError",
    "ExtractionParseError",
    "InvalidCategoryError",
    "InvalidSubcategoryError",
]
