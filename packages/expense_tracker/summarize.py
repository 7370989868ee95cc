"""Natural-language answers over retrieved expense texts."""

from __future__ import annotations

from collections.abc import Sequence

from . import prompting
from .llm import ChatModel
from .retry import ResilientInvoker

NO_MATCHES_MESSAGE = "No matching expenses found."


class RetrievalSummarizer:
    def __init__(self, model: ChatModel, invoker: ResilientInvoker) -> None:
        self._model = model
        self._invoker = invoker
        self._instructions = prompting.build_summary_instructions()

    def summarize(self, query: str, matched_texts: Sequence[str]) -> str:
        """Return the model's answer verbatim; presentation only, not parsed.

        An empty ``matched_texts`` returns :data:`NO_MATCHES_MESSAGE` without
        calling the model.
        """

        if not matched_texts:
            return NO_MATCHES_MESSAGE
        user_content = prompting.build_summary_user_content(query, matched_texts)
        return self._invoker.invoke(
            lambda: self._model.complete(self._instructions, user_content)
        )
