"""The request pipeline as one explicitly constructed service object.

:class:`ExpenseAssistant` owns the collaborators for the process lifetime
and handles one input line per call:

- ``add``: extract -> validate against the taxonomy -> store -> index.
- ``retrieve``: similarity search -> summarize.

Store and index writes are sequential without rollback: if indexing fails
after the record was stored, the error surfaces and the record stays (the
index can be rebuilt from the store with :meth:`rebuild_index`).
"""

from __future__ import annotations

from dataclasses import dataclass

from db.client import Database

from .config import Settings
from .extraction import ExpenseExtractor
from .intent import IntentClassifier
from .llm import ChatModel, OpenAIEmbedder, create_client
from .logging_setup import get_logger
from .models import AddOutcome, Intent, Outcome, RetrieveOutcome
from .persistence import ExpenseStore
from .retry import ResilientInvoker
from .summarize import RetrievalSummarizer
from .taxonomy import CategoryTaxonomy, load_taxonomy
from .vector_index import SemanticIndex

DEFAULT_SEARCH_K = 5

_logger = get_logger("expense_tracker.pipeline")


@dataclass
class ExpenseAssistant:
    taxonomy: CategoryTaxonomy
    classifier: IntentClassifier
    extractor: ExpenseExtractor
    store: ExpenseStore
    index: SemanticIndex
    summarizer: RetrievalSummarizer
    invoker: ResilientInvoker | None = None
    search_k: int = DEFAULT_SEARCH_K

    def handle(self, text: str) -> Outcome:
        """Classify ``text`` and run the matching branch."""

        intent = self.classifier.classify(text)
        if intent is Intent.ADD:
            return self.record_expense(text)
        return self.answer_query(text)

    def record_expense(self, text: str) -> AddOutcome:
        candidate = self.extractor.extract(text)
        # Promotion gate: nothing is stored or indexed for an invalid candidate.
        self.taxonomy.validate(candidate)
        record = self.store.save(candidate)
        document = self.index.add_expense(record)
        return AddOutcome(record=record, document=document)

    def answer_query(self, text: str) -> RetrieveOutcome:
        matches = self.index.similarity_search(text, k=self.search_k)
        summary = self.summarizer.summarize(text, [d.text_content for d in matches])
        _logger.info("pipeline:answered matches=%d", len(matches))
        return RetrieveOutcome(summary=summary, matches=tuple(matches))

    def delete_expense(self, expense_id: int) -> bool:
        """Remove a record from the store and the index (cleanup helper)."""

        deleted = self.store.delete_by_id(expense_id)
        self.index.delete_expense(expense_id)
        return deleted

    def rebuild_index(self) -> int:
        return self.index.rebuild(self.store.list_expenses())

    def close(self) -> None:
        self.store.close()
        if self.invoker is not None:
            self.invoker.close()


def build_assistant(settings: Settings) -> ExpenseAssistant:
    """Wire every collaborator from ``settings``.

    Raises :class:`TaxonomyLoadError` for a bad category definition; database
    connection problems surface from the schema setup.
    """

    taxonomy = load_taxonomy(settings.taxonomy_path)

    database = Database(settings.database_url)
    database.create_schema()
    store = ExpenseStore(database)
    store.sync_taxonomy(taxonomy)

    client = create_client(settings.openai_api_key)
    invoker = ResilientInvoker(max_attempts=settings.max_attempts)
    chat = ChatModel(client, model=settings.model)
    embedder = OpenAIEmbedder(client, model=settings.embedding_model)

    return ExpenseAssistant(
        taxonomy=taxonomy,
        classifier=IntentClassifier(chat, invoker),
        extractor=ExpenseExtractor(chat, invoker, taxonomy),
        store=store,
        index=SemanticIndex(settings.index_dir, embedder, invoker=invoker),
        summarizer=RetrievalSummarizer(chat, invoker),
        invoker=invoker,
    )
