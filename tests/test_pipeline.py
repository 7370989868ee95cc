from __future__ import annotations

import json
from decimal import Decimal
from pathlib import Path

import pytest

from expense_tracker.config import Settings
from expense_tracker.errors import (
    ExtractionParseError,
    IntentParseError,
    InvalidCategoryError,
    RateLimitExceededError,
)
from expense_tracker.extraction import ExpenseExtractor
from expense_tracker.intent import IntentClassifier
from expense_tracker.llm import ChatModel
from expense_tracker.models import AddOutcome, ExpenseCandidate, RetrieveOutcome
from expense_tracker.pipeline import ExpenseAssistant, build_assistant
from expense_tracker.retry import ResilientInvoker
from expense_tracker.summarize import NO_MATCHES_MESSAGE, RetrievalSummarizer

from tests.helpers.openai_stub import OpenAIStub, ScriptedReplies, rate_limit_error


def _extraction(amount, category, subs, response) -> str:
    return json.dumps(
        {"amount": amount, "category": category, "sub-category": subs, "response": response}
    )


def _assistant(replies, *, taxonomy, store, index, invoker, search_k=5):
    client = OpenAIStub(reply=replies)
    chat = ChatModel(client, model="gpt-test")
    assistant = ExpenseAssistant(
        taxonomy=taxonomy,
        classifier=IntentClassifier(chat, invoker),
        extractor=ExpenseExtractor(chat, invoker, taxonomy),
        store=store,
        index=index,
        summarizer=RetrievalSummarizer(chat, invoker),
        search_k=search_k,
    )
    return assistant, client


def _seed(store, index, amount, category, subs, text):
    record = store.save(
        ExpenseCandidate(
            amount=Decimal(amount), category=category, subcategories=subs, confirmation_text=text
        )
    )
    index.add_expense(record)
    return record


def test_add_flow_persists_and_indexes(taxonomy, store, index, invoker):
    replies = ScriptedReplies(
        "add",
        _extraction(500, "Food", ["Dining out"], "Lunch for ₹500"),
    )
    assistant, _client = _assistant(
        replies, taxonomy=taxonomy, store=store, index=index, invoker=invoker
    )

    outcome = assistant.handle("spent 500 on lunch")

    assert isinstance(outcome, AddOutcome)
    (stored,) = store.list_expenses()
    assert stored == outcome.record
    assert stored.amount == Decimal("500.00")
    assert stored.category == "Food"
    assert stored.subcategories == ("Dining out",)

    assert outcome.document.text_content.startswith("[FOOD] Expense of ₹500 for Lunch for ₹500")
    assert outcome.document.metadata["id"] == str(stored.id)
    assert [d.expense_id for d in index.documents] == [None, str(stored.id)]


def test_retrieve_flow_ranks_matching_category_first(taxonomy, store, index, invoker):
    _seed(store, index, "500", "Food", ("Dining out",), "lunch at the canteen")
    _seed(store, index, "250", "Transportation", ("Public transport",), "taxi ride")
    _seed(store, index, "300", "Food", ("Snacks",), "evening chips")

    replies = ScriptedReplies("retrieve", "Food total: ₹800")
    assistant, client = _assistant(
        replies, taxonomy=taxonomy, store=store, index=index, invoker=invoker
    )

    outcome = assistant.handle("show me food expenses")

    assert isinstance(outcome, RetrieveOutcome)
    assert outcome.summary == "Food total: ₹800"
    assert [m.metadata["category"] for m in outcome.matches[:2]] == ["Food", "Food"]
    assert all(not m.is_initialization for m in outcome.matches)
    summary_input = client.response_calls[-1]["input"]
    assert "1. [FOOD]" in summary_input and "2. [FOOD]" in summary_input


def test_retrieve_with_empty_index_skips_summary_call(taxonomy, store, index, invoker):
    replies = ScriptedReplies("retrieve")
    assistant, client = _assistant(
        replies, taxonomy=taxonomy, store=store, index=index, invoker=invoker
    )
    outcome = assistant.handle("what did I spend on fuel?")
    assert outcome == RetrieveOutcome(summary=NO_MATCHES_MESSAGE, matches=())
    assert len(client.response_calls) == 1


def test_invalid_category_stores_and_indexes_nothing(taxonomy, store, index, invoker):
    replies = ScriptedReplies("add", _extraction(1200, "Travel", ["Flights"], "Flight"))
    assistant, _ = _assistant(replies, taxonomy=taxonomy, store=store, index=index, invoker=invoker)

    with pytest.raises(InvalidCategoryError):
        assistant.handle("booked a flight for 1200")
    assert store.list_expenses() == []
    assert not index.is_initialized


def test_unparseable_extraction_stores_nothing(taxonomy, store, index, invoker):
    replies = ScriptedReplies("add", "Sorry, I can't help with that.")
    assistant, _ = _assistant(replies, taxonomy=taxonomy, store=store, index=index, invoker=invoker)
    with pytest.raises(ExtractionParseError):
        assistant.handle("spent something somewhere")
    assert store.list_expenses() == []


def test_unknown_intent_surfaces_parse_error(taxonomy, store, index, invoker):
    replies = ScriptedReplies("delete")
    assistant, _ = _assistant(replies, taxonomy=taxonomy, store=store, index=index, invoker=invoker)
    with pytest.raises(IntentParseError):
        assistant.handle("remove my last expense")


def test_persistent_rate_limit_surfaces_after_retries(taxonomy, store, index, sleeps):
    invoker = ResilientInvoker(max_attempts=3, sleep=sleeps.append)
    try:
        replies = ScriptedReplies(*(rate_limit_error() for _ in range(3)))
        assistant, _ = _assistant(
            replies, taxonomy=taxonomy, store=store, index=index, invoker=invoker
        )
        with pytest.raises(RateLimitExceededError):
            assistant.handle("spent 500 on lunch")
        assert replies.calls == 3
        assert sleeps == [1.0, 2.0]
    finally:
        invoker.close()


def test_delete_removes_from_store_and_index(taxonomy, store, index, invoker):
    keep = _seed(store, index, "500", "Food", ("Dining out",), "lunch")
    gone = _seed(store, index, "90", "Bills", ("Phone",), "recharge")
    assistant, _ = _assistant(
        ScriptedReplies(), taxonomy=taxonomy, store=store, index=index, invoker=invoker
    )

    assert assistant.delete_expense(gone.id) is True
    assert [r.id for r in store.list_expenses()] == [keep.id]
    assert [d.expense_id for d in index.documents] == [None, str(keep.id)]


def test_rebuild_index_from_store(taxonomy, store, index, invoker, tmp_path):
    a = _seed(store, index, "500", "Food", ("Dining out",), "lunch")
    # Simulate an index write that never happened for the second record.
    b = store.save(
        ExpenseCandidate(
            amount=Decimal("75"), category="Bills", subcategories=("Internet",), confirmation_text="wifi"
        )
    )
    assistant, _ = _assistant(
        ScriptedReplies(), taxonomy=taxonomy, store=store, index=index, invoker=invoker
    )
    assert assistant.rebuild_index() == 2
    assert [d.expense_id for d in index.documents] == [None, str(a.id), str(b.id)]


def test_build_assistant_wires_sqlite_store(tmp_path: Path):
    settings = Settings(
        openai_api_key="sk-test",
        database_url=f"sqlite+pysqlite:///{tmp_path / 'wired.db'}",
        index_dir=tmp_path / "vs",
        max_attempts=2,
    )
    assistant = build_assistant(settings)
    try:
        assert list(assistant.taxonomy)[0] == "Food"
        assert assistant.store.sync_taxonomy(assistant.taxonomy) == 0
        assert assistant.invoker is not None and assistant.invoker.max_attempts == 2
        assert assistant.index.directory == tmp_path / "vs"
        # The index is attached lazily, on first use.
        assert not assistant.index.is_initialized
    finally:
        assistant.close()
