"""Pytest configuration: import paths, environment isolation, shared fixtures.

Tests never touch the network. The OpenAI client is replaced by
``tests.helpers.openai_stub.OpenAIStub``, embeddings by the deterministic
``KeywordEmbedder``, and every store/index lives under ``tmp_path``.
"""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Make the workspace packages importable without an editable install.
_ROOT = Path(__file__).resolve().parents[1]
sys.path[:0] = [
    p
    for p in [str(_ROOT / "packages"), str(_ROOT / "libs/db/src"), str(_ROOT)]
    if p not in sys.path
]

from expense_tracker.persistence import ExpenseStore  # noqa: E402
from expense_tracker.retry import ResilientInvoker  # noqa: E402
from expense_tracker.taxonomy import CategoryTaxonomy, load_taxonomy  # noqa: E402
from expense_tracker.vector_index import SemanticIndex  # noqa: E402

from tests.helpers.db import seeded_store  # noqa: E402
from tests.helpers.embeddings import KeywordEmbedder  # noqa: E402

_ENV_VARS = (
    "OPENAI_API_KEY",
    "DATABASE_URL",
    "EXPENSE_TRACKER_MODEL",
    "EXPENSE_TRACKER_EMBEDDING_MODEL",
    "EXPENSE_TRACKER_INDEX_DIR",
    "EXPENSE_TRACKER_TAXONOMY_PATH",
    "EXPENSE_TRACKER_MAX_ATTEMPTS",
    "EXPENSE_TRACKER_LOG_LEVEL",
    "EXPENSE_TRACKER_LOG_FILE",
)


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep a developer's shell environment from leaking into tests."""

    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def taxonomy() -> CategoryTaxonomy:
    return load_taxonomy()


@pytest.fixture
def store(tmp_path: Path, taxonomy: CategoryTaxonomy):
    s: ExpenseStore = seeded_store(tmp_path / "expenses.db", taxonomy)
    yield s
    s.close()


@pytest.fixture
def embedder(taxonomy: CategoryTaxonomy) -> KeywordEmbedder:
    return KeywordEmbedder(list(taxonomy.keys()))


@pytest.fixture
def index(tmp_path: Path, embedder: KeywordEmbedder) -> SemanticIndex:
    return SemanticIndex(tmp_path / "vector_store", embedder)


@pytest.fixture
def sleeps() -> list[float]:
    return []


@pytest.fixture
def invoker(sleeps: list[float]):
    inv = ResilientInvoker(max_attempts=5, sleep=sleeps.append)
    yield inv
    inv.close()
