"""Category taxonomy: loading, parsing, and candidate validation.

The definition file is plain text::

    Expense Categories

    1. Food
       - Groceries
       - Dining out

An ordinal line (``"<n>. <Name>"``) opens a category; bullet lines
(``-``, ``*`` or ``•``) add subcategories to the most recent category. The
header line and blank lines are ignored. Anything else is malformed.
"""

from __future__ import annotations

import re
from collections.abc import Iterator, Mapping
from pathlib import Path
from typing import Any

from .errors import InvalidCategoryError, InvalidSubcategoryError, TaxonomyLoadError
from .logging_setup import get_logger
from .models import ExpenseCandidate

DEFAULT_TAXONOMY_PATH = Path(__file__).resolve().parent / "data" / "categories.md"
HEADER_LINE = "Expense Categories"

_CATEGORY_RE = re.compile(r"^\d+\.\s+(?P<name>\S.*)$")
_BULLET_RE = re.compile(r"^[-*•]\s*(?P<name>\S.*)$")

_logger = get_logger("expense_tracker.taxonomy")


class CategoryTaxonomy(Mapping[str, tuple[str, ...]]):
    """Immutable, ordered mapping of category name -> subcategory names."""

    __slots__ = ("_data",)

    def __init__(self, categories: Mapping[str, tuple[str, ...] | list[str]]) -> None:
        data: dict[str, tuple[str, ...]] = {}
        for name, subs in categories.items():
            subs_t = tuple(dict.fromkeys(subs))
            if not subs_t:
                raise ValueError(f"category {name!r} must have at least one subcategory")
            data[name] = subs_t
        if not data:
            raise ValueError("taxonomy must contain at least one category")
        self._data = data

    def __getitem__(self, key: str) -> tuple[str, ...]:
        return self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"CategoryTaxonomy({self._data!r})"

    def validate(self, candidate: ExpenseCandidate) -> None:
        """Raise unless ``candidate`` fits this taxonomy (exact, case-sensitive)."""

        allowed = self._data.get(candidate.category)
        if allowed is None:
            raise InvalidCategoryError(candidate.category)
        for sub in candidate.subcategories:
            if sub not in allowed:
                raise InvalidSubcategoryError(candidate.category, sub)

    def to_rows(self) -> list[dict[str, Any]]:
        """Two-level rows (parents first) for the store's category table."""

        rows: list[dict[str, Any]] = []
        for order, name in enumerate(self._data):
            rows.append(
                {"code": name, "display_name": name, "parent_code": None, "sort_order": order}
            )
        for parent_index, (name, subs) in enumerate(self._data.items()):
            for child_index, sub in enumerate(subs):
                rows.append(
                    {
                        "code": subcategory_code(name, sub),
                        "display_name": sub,
                        "parent_code": name,
                        "sort_order": parent_index * 100 + child_index,
                    }
                )
        return rows


def subcategory_code(category: str, subcategory: str) -> str:
    return f"{category}:{subcategory}"


def parse_taxonomy(text: str) -> CategoryTaxonomy:
    """Parse the definition format described in the module docstring."""

    categories: dict[str, list[str]] = {}
    current: str | None = None
    for lineno, raw in enumerate(text.splitlines(), start=1):
        line = raw.strip()
        if not line or line == HEADER_LINE:
            continue
        m = _CATEGORY_RE.match(line)
        if m:
            current = m.group("name").strip()
            if current in categories:
                _logger.warning("taxonomy:redefined category=%s line=%d", current, lineno)
            categories[current] = []
            continue
        m = _BULLET_RE.match(line)
        if m:
            if current is None:
                raise TaxonomyLoadError(
                    f"line {lineno}: subcategory {m.group('name')!r} appears before any category"
                )
            categories[current].append(m.group("name").strip())
            continue
        raise TaxonomyLoadError(f"line {lineno}: unrecognized line {line!r}")

    if not categories:
        raise TaxonomyLoadError("no categories defined")
    empty = [name for name, subs in categories.items() if not subs]
    if empty:
        raise TaxonomyLoadError(f"categories without subcategories: {', '.join(empty)}")
    return CategoryTaxonomy(categories)


def load_taxonomy(path: str | Path | None = None) -> CategoryTaxonomy:
    """Read and parse the taxonomy file (bundled default when ``path`` is None)."""

    source = Path(path) if path is not None else DEFAULT_TAXONOMY_PATH
    try:
        text = source.read_text(encoding="utf-8")
    except OSError as e:
        raise TaxonomyLoadError(f"cannot read taxonomy definition {source}: {e}") from e
    taxonomy = parse_taxonomy(text)
    _logger.info("taxonomy:loaded path=%s categories=%d", source, len(taxonomy))
    return taxonomy


__all__ = [
    "CategoryTaxonomy",
    "DEFAULT_TAXONOMY_PATH",
    "load_taxonomy",
    "parse_taxonomy",
    "subcategory_code",
]
