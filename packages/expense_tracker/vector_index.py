"""Semantic index over expense renderings (FAISS).

The index is a derived, rebuildable copy of the store: every document is a
text rendering of one :class:`ExpenseRecord` plus a metadata mirror keyed by
the record id. A new index is seeded with a single sentinel document so the
structure is never empty; the sentinel is filtered out of every search.

On-disk layout (``<directory>/``):

- ``index.faiss``: the FAISS inner-product index over L2-normalized vectors.
- ``docstore.json``: documents in row order. Its presence is the sole signal
  used to decide "load existing" vs. "create new".

Both files are rewritten together on every mutation, the docstore last.
"""

from __future__ import annotations

import json
import os
from collections.abc import Callable, Iterable, Sequence
from pathlib import Path
from typing import Any, Protocol, TypeVar

import faiss
import numpy as np

from .logging_setup import get_logger
from .models import ExpenseRecord, IndexedDocument
from .retry import ResilientInvoker

INDEX_FILENAME = "index.faiss"
DOCSTORE_FILENAME = "docstore.json"
DOCSTORE_SCHEMA_VERSION = 1
SENTINEL_TEXT = "Initialization document"

T = TypeVar("T")

_logger = get_logger("expense_tracker.vector_index")


class Embedder(Protocol):
    def embed_documents(self, texts: Sequence[str]) -> list[list[float]]: ...

    def embed_query(self, text: str) -> list[float]: ...


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


def format_amount(amount: Any) -> str:
    s = f"{amount:,.2f}"
    return s[:-3] if s.endswith(".00") else s


def render_expense(record: ExpenseRecord) -> str:
    """Category-tagged text used for embedding.

    The leading ``[CATEGORY]`` tag keeps expenses from different categories
    apart in similarity search even when vendors or wording overlap.
    """

    return (
        f"[{record.category.upper()}] Expense of ₹{format_amount(record.amount)} for "
        f"{record.confirmation_text} (Category: {record.category}, "
        f"Subcategories: {', '.join(record.subcategories)}) "
        f"on {record.created_at.date().isoformat()}"
    )


def expense_metadata(record: ExpenseRecord) -> dict[str, Any]:
    return {
        "id": str(record.id),
        "amount": str(record.amount),
        "category": record.category,
        "subcategories": list(record.subcategories),
        "date": record.created_at.isoformat(),
    }


def to_document(record: ExpenseRecord) -> IndexedDocument:
    return IndexedDocument(text_content=render_expense(record), metadata=expense_metadata(record))


def sentinel_document() -> IndexedDocument:
    return IndexedDocument(text_content=SENTINEL_TEXT, metadata={"initialization": True})


# ---------------------------------------------------------------------------
# Index
# ---------------------------------------------------------------------------


def _normalize(vectors: Sequence[Sequence[float]]) -> np.ndarray:
    arr = np.asarray(vectors, dtype=np.float32)
    if arr.ndim != 2 or arr.shape[0] == 0:
        raise ValueError("expected a non-empty 2-D batch of embeddings")
    norms = np.linalg.norm(arr, axis=1, keepdims=True)
    norms[norms == 0] = 1.0  # zero vectors stay zero
    return np.ascontiguousarray(arr / norms, dtype=np.float32)


class SemanticIndex:
    """FAISS index + docstore persisted under ``directory``."""

    def __init__(
        self,
        directory: str | os.PathLike[str],
        embedder: Embedder,
        *,
        invoker: ResilientInvoker | None = None,
    ) -> None:
        self.directory = Path(directory)
        self._embedder = embedder
        self._invoker = invoker
        self._index: faiss.Index | None = None
        self._documents: list[IndexedDocument] = []

    # ---- Paths / state -------------------------------------------------------

    @property
    def index_path(self) -> Path:
        return self.directory / INDEX_FILENAME

    @property
    def docstore_path(self) -> Path:
        return self.directory / DOCSTORE_FILENAME

    @property
    def is_initialized(self) -> bool:
        return self._index is not None

    @property
    def documents(self) -> tuple[IndexedDocument, ...]:
        """All stored documents in row order, sentinel included."""

        return tuple(self._documents)

    # ---- Embedding -----------------------------------------------------------

    def _call(self, operation: Callable[[], T]) -> T:
        if self._invoker is None:
            return operation()
        return self._invoker.invoke(operation)

    def _embed_documents(self, texts: Sequence[str]) -> np.ndarray:
        vectors = self._call(lambda: self._embedder.embed_documents(list(texts)))
        return _normalize(vectors)

    def _embed_query(self, text: str) -> np.ndarray:
        vector = self._call(lambda: self._embedder.embed_query(text))
        return _normalize([vector])

    # ---- Persistence ---------------------------------------------------------

    def _save(self) -> None:
        assert self._index is not None
        self.directory.mkdir(parents=True, exist_ok=True)
        tmp_index = self.index_path.with_suffix(".faiss.tmp")
        faiss.write_index(self._index, str(tmp_index))
        os.replace(tmp_index, self.index_path)

        payload = {
            "schema_version": DOCSTORE_SCHEMA_VERSION,
            "documents": [
                {"text": d.text_content, "metadata": dict(d.metadata)} for d in self._documents
            ],
        }
        tmp_docs = self.docstore_path.with_suffix(".json.tmp")
        tmp_docs.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
        os.replace(tmp_docs, self.docstore_path)

    def _load(self) -> None:
        payload = json.loads(self.docstore_path.read_text(encoding="utf-8"))
        documents = [
            IndexedDocument(text_content=d["text"], metadata=d.get("metadata") or {})
            for d in payload.get("documents", [])
        ]
        index = faiss.read_index(str(self.index_path))
        if index.ntotal != len(documents):
            raise RuntimeError(
                f"vector index out of sync with docstore: {index.ntotal} vectors, "
                f"{len(documents)} documents in {self.directory}"
            )
        self._index = index
        self._documents = documents

    def _create(self, documents: list[IndexedDocument]) -> None:
        vectors = self._embed_documents([d.text_content for d in documents])
        index = faiss.IndexFlatIP(vectors.shape[1])
        index.add(vectors)
        self._index = index
        self._documents = documents
        self._save()

    # ---- Public API ----------------------------------------------------------

    def initialize(self) -> faiss.Index:
        """Attach to the persisted index, creating a seeded one if absent.

        Repeated calls return the already attached index unchanged.
        """

        if self._index is not None:
            return self._index
        if self.docstore_path.exists():
            self._load()
            _logger.info(
                "index:loaded dir=%s documents=%d", self.directory, len(self._documents)
            )
        else:
            self._create([sentinel_document()])
            _logger.info("index:created dir=%s", self.directory)
        assert self._index is not None
        return self._index

    def add_expense(self, record: ExpenseRecord) -> IndexedDocument:
        index = self.initialize()
        doc = to_document(record)
        vectors = self._embed_documents([doc.text_content])
        index.add(vectors)
        self._documents.append(doc)
        self._save()
        _logger.info("index:added id=%s category=%s", record.id, record.category)
        return doc

    def similarity_search(self, query: str, k: int = 5) -> list[IndexedDocument]:
        """Top-``k`` expense documents for ``query``; ``[]`` on any failure."""

        if k <= 0:
            return []
        try:
            index = self.initialize()
            sentinels = sum(1 for d in self._documents if d.is_initialization)
            n = min(k + sentinels, index.ntotal)
            if n == 0:
                return []
            _scores, rows = index.search(self._embed_query(query), n)
            hits = [self._documents[int(i)] for i in rows[0] if 0 <= int(i) < len(self._documents)]
        except Exception as e:  # noqa: BLE001 - reads degrade to empty results
            _logger.error("index:search_failed error=%s: %s", e.__class__.__name__, e)
            return []
        return [d for d in hits if not d.is_initialization][:k]

    def delete_expense(self, identifier: int | str) -> int:
        """Remove every document for ``identifier``; unknown ids are a no-op.

        Returns the number of documents removed.
        """

        index = self.initialize()
        key = str(identifier)
        keep = [i for i, d in enumerate(self._documents) if d.expense_id != key]
        removed = len(self._documents) - len(keep)
        if removed == 0:
            return 0

        vectors = index.reconstruct_n(0, index.ntotal)
        rebuilt = faiss.IndexFlatIP(index.d)
        if keep:
            rebuilt.add(np.ascontiguousarray(vectors[keep], dtype=np.float32))
        self._index = rebuilt
        self._documents = [self._documents[i] for i in keep]
        self._save()
        _logger.info("index:deleted id=%s removed=%d", key, removed)
        return removed

    def rebuild(self, records: Iterable[ExpenseRecord]) -> int:
        """Recreate the index from authoritative records; returns their count."""

        documents = [sentinel_document(), *(to_document(r) for r in records)]
        self._create(documents)
        _logger.info("index:rebuilt dir=%s expenses=%d", self.directory, len(documents) - 1)
        return len(documents) - 1


__all__ = [
    "DOCSTORE_FILENAME",
    "Embedder",
    "INDEX_FILENAME",
    "SENTINEL_TEXT",
    "SemanticIndex",
    "expense_metadata",
    "render_expense",
    "sentinel_document",
    "to_document",
]
