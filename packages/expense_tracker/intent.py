"""Intent classification: free text -> :class:`Intent`."""

from __future__ import annotations

from . import prompting
from .errors import IntentParseError
from .llm import ChatModel
from .logging_setup import get_logger
from .models import Intent
from .retry import ResilientInvoker

_logger = get_logger("expense_tracker.intent")

_STRIP_CHARS = " \t\r\n\"'`."


def parse_intent(reply: str) -> Intent:
    """Match a bare ``add``/``retrieve`` token; raise :class:`IntentParseError` otherwise."""

    token = reply.strip(_STRIP_CHARS).lower()
    try:
        return Intent(token)
    except ValueError:
        raise IntentParseError(f"unexpected intent reply: {reply.strip()[:80]!r}") from None


class IntentClassifier:
    def __init__(self, model: ChatModel, invoker: ResilientInvoker) -> None:
        self._model = model
        self._invoker = invoker
        self._instructions = prompting.build_intent_instructions()

    def classify(self, text: str) -> Intent:
        reply = self._invoker.invoke(lambda: self._model.complete(self._instructions, text))
        intent = parse_intent(reply)
        _logger.info("intent:classified intent=%s", intent.value)
        return intent
