"""Public interface for the ``expense_tracker`` package.

Symbol re-exports only; no runtime logic and no side effects at import time.
"""

from .errors import (
    CredentialMissingError,
    ExpenseTrackerError,
    ExtractionParseError,
    FailureKind,
    IntentParseError,
    InvalidCategoryError,
    InvalidSubcategoryError,
    ModelCallError,
    RateLimitExceededError,
    TaxonomyLoadError,
)
from .extraction import ExpenseExtractor, decode_candidate
from .intent import IntentClassifier
from .models import (
    AddOutcome,
    ExpenseCandidate,
    ExpenseRecord,
    ExtractionResult,
    IndexedDocument,
    Intent,
    RetrieveOutcome,
)
from .persistence import ExpenseStore
from .pipeline import ExpenseAssistant, build_assistant
from .retry import ResilientInvoker
from .summarize import RetrievalSummarizer
from .taxonomy import CategoryTaxonomy, load_taxonomy
from .vector_index import SemanticIndex

__all__ = [
    # Pipeline
    "ExpenseAssistant",
    "build_assistant",
    # Components
    "CategoryTaxonomy",
    "load_taxonomy",
    "ResilientInvoker",
    "IntentClassifier",
    "ExpenseExtractor",
    "decode_candidate",
    "ExpenseStore",
    "SemanticIndex",
    "RetrievalSummarizer",
    # Models / types
    "Intent",
    "ExpenseCandidate",
    "ExtractionResult",
    "ExpenseRecord",
    "IndexedDocument",
    "AddOutcome",
    "RetrieveOutcome",
    # Errors
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
