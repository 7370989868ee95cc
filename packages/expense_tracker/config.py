"""Environment-driven settings.

The CLI loads a local ``.env`` (via ``python-dotenv``) before calling
:func:`load_settings`, so every value here can come from either source.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from .errors import CredentialMissingError

DEFAULT_MODEL = "gpt-4o-mini"
DEFAULT_EMBEDDING_MODEL = "text-embedding-3-small"
DEFAULT_INDEX_DIR = "vector_store"
DEFAULT_MAX_ATTEMPTS = 5


@dataclass(frozen=True, slots=True)
class Settings:
    """Resolved configuration for one process.

    Attributes
    ----------
    openai_api_key:
        Credential for the completion and embedding endpoints.
    database_url:
        SQLAlchemy URL of the expense store.
    model / embedding_model:
        OpenAI model names.
    index_dir:
        Directory holding the persisted vector index artifacts.
    taxonomy_path:
        Optional override for the category definition file; ``None`` uses the
        bundled default.
    max_attempts:
        Attempts per model call when rate limited.
    """

    openai_api_key: str
    database_url: str
    model: str = DEFAULT_MODEL
    embedding_model: str = DEFAULT_EMBEDDING_MODEL
    index_dir: Path = Path(DEFAULT_INDEX_DIR)
    taxonomy_path: Path | None = None
    max_attempts: int = DEFAULT_MAX_ATTEMPTS


def _required(name: str) -> str:
    value = (os.getenv(name) or "").strip()
    if not value:
        raise CredentialMissingError(f"{name} is not set in the environment")
    return value


def _positive_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from e
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {value}")
    return value


def load_settings() -> Settings:
    """Build :class:`Settings` from the environment.

    Raises :class:`CredentialMissingError` when ``OPENAI_API_KEY`` or
    ``DATABASE_URL`` is absent.
    """

    taxonomy_raw = (os.getenv("EXPENSE_TRACKER_TAXONOMY_PATH") or "").strip()
    return Settings(
        openai_api_key=_required("OPENAI_API_KEY"),
        database_url=_required("DATABASE_URL"),
        model=os.getenv("EXPENSE_TRACKER_MODEL") or DEFAULT_MODEL,
        embedding_model=os.getenv("EXPENSE_TRACKER_EMBEDDING_MODEL") or DEFAULT_EMBEDDING_MODEL,
        index_dir=Path(os.getenv("EXPENSE_TRACKER_INDEX_DIR") or DEFAULT_INDEX_DIR).expanduser(),
        taxonomy_path=Path(taxonomy_raw).expanduser() if taxonomy_raw else None,
        max_attempts=_positive_int("EXPENSE_TRACKER_MAX_ATTEMPTS", DEFAULT_MAX_ATTEMPTS),
    )
