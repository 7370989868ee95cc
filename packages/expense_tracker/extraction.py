"""Expense extraction: free text -> :class:`ExpenseCandidate`.

Decoding is a strict two-step affair: the reply must be a JSON object, and
that object must validate as an :class:`ExpenseCandidate`. Either failure is
captured in an :class:`ExtractionResult` by :func:`decode_candidate`;
:meth:`ExpenseExtractor.extract` turns a failure into
:class:`ExtractionParseError`. Taxonomy membership is *not* checked here.
"""

from __future__ import annotations

import json
from collections.abc import Mapping

from pydantic import ValidationError

from . import prompting
from .errors import ExtractionParseError
from .llm import ChatModel
from .logging_setup import get_logger
from .models import ExpenseCandidate, ExtractionResult
from .retry import ResilientInvoker
from .taxonomy import CategoryTaxonomy

_logger = get_logger("expense_tracker.extraction")


def _strip_code_fence(text: str) -> str:
    s = text.strip()
    if s.startswith("```") and s.endswith("```"):
        s = s[3:-3].strip()
        if s.lower().startswith("json"):
            s = s[4:]
    return s.strip()


def _describe(err: ValidationError) -> str:
    parts = []
    for e in err.errors():
        loc = ".".join(str(p) for p in e.get("loc", ())) or "<root>"
        parts.append(f"{loc}: {e.get('msg')}")
    return "; ".join(parts)


def decode_candidate(raw: str) -> ExtractionResult:
    """Decode and validate a model reply without raising."""

    try:
        decoded = json.loads(_strip_code_fence(raw))
    except json.JSONDecodeError as e:
        return ExtractionResult.failure(f"reply is not valid JSON: {e.msg}")
    if not isinstance(decoded, Mapping):
        return ExtractionResult.failure("reply is not a JSON object")
    try:
        candidate = ExpenseCandidate.model_validate(decoded)
    except ValidationError as e:
        return ExtractionResult.failure(f"reply failed validation: {_describe(e)}")
    return ExtractionResult.success(candidate)


class ExpenseExtractor:
    def __init__(
        self,
        model: ChatModel,
        invoker: ResilientInvoker,
        taxonomy: CategoryTaxonomy,
    ) -> None:
        self._model = model
        self._invoker = invoker
        self._instructions = prompting.build_extraction_instructions(taxonomy)
        self._text_format = prompting.build_extraction_format(taxonomy)

    def extract(self, text: str) -> ExpenseCandidate:
        reply = self._invoker.invoke(
            lambda: self._model.complete(
                self._instructions, text, text_format=self._text_format
            )
        )
        result = decode_candidate(reply)
        if not result.ok:
            _logger.warning("extraction:parse_failed reason=%s", result.reason)
            raise ExtractionParseError(result.reason or "unparseable reply")
        assert result.candidate is not None
        _logger.info(
            "extraction:done category=%s amount=%s",
            result.candidate.category,
            result.candidate.amount,
        )
        return result.candidate
