from __future__ import annotations

from datetime import UTC, datetime
from decimal import Decimal

import pytest

from expense_tracker.errors import InvalidCategoryError, InvalidSubcategoryError
from expense_tracker.models import ExpenseCandidate


def _candidate(amount="500", category="Food", subs=("Dining out",), text="Lunch") -> ExpenseCandidate:
    return ExpenseCandidate(
        amount=Decimal(amount), category=category, subcategories=subs, confirmation_text=text
    )


def test_save_assigns_id_and_timestamp(store):
    before = datetime.now(UTC)
    record = store.save(_candidate())

    assert record.id >= 1
    assert record.amount == Decimal("500.00")
    assert record.category == "Food"
    assert record.subcategories == ("Dining out",)
    assert record.confirmation_text == "Lunch"
    assert record.created_at.tzinfo is not None
    assert record.created_at >= before.replace(microsecond=0)


def test_save_rounds_to_cents(store):
    record = store.save(_candidate(amount="12.345"))
    assert record.amount == Decimal("12.35")


def test_save_honours_explicit_created_at(store):
    when = datetime(2026, 3, 1, 9, 30, tzinfo=UTC)
    record = store.save(_candidate(), created_at=when)
    assert store.get(record.id).created_at == when


def test_ids_are_unique_and_listed_in_insertion_order(store):
    a = store.save(_candidate(text="first"))
    b = store.save(_candidate(category="Bills", subs=("Phone", "Internet"), text="second"))
    assert a.id != b.id

    listed = store.list_expenses()
    assert [r.id for r in listed] == [a.id, b.id]
    assert listed[1].subcategories == ("Phone", "Internet")


def test_unknown_category_is_rejected_and_nothing_written(store):
    with pytest.raises(InvalidCategoryError):
        store.save(_candidate(category="Travel", subs=("Flights",)))
    assert store.list_expenses() == []


def test_subcategory_must_belong_to_category(store):
    with pytest.raises(InvalidSubcategoryError):
        store.save(_candidate(category="Food", subs=("Fuel",)))
    assert store.list_expenses() == []


def test_subcategory_name_is_not_a_category(store):
    with pytest.raises(InvalidCategoryError):
        store.save(_candidate(category="Food:Snacks", subs=("Snacks",)))


def test_get_and_delete(store):
    record = store.save(_candidate())
    assert store.get(record.id) == record
    assert store.delete_by_id(record.id) is True
    assert store.get(record.id) is None
    assert store.delete_by_id(record.id) is False


def test_sync_taxonomy_is_idempotent(store, taxonomy):
    # The fixture already synced once.
    assert store.sync_taxonomy(taxonomy) == 0
