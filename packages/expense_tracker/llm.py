"""Thin adapters over the OpenAI SDK (Responses and Embeddings APIs).

Both adapters translate SDK exceptions into :class:`ModelCallError` tagged
with a :class:`FailureKind`, so the retry wrapper never has to inspect error
messages. Retrying and call serialization live in :mod:`expense_tracker.retry`;
the SDK's own retries are disabled.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Any, TypeVar

import openai
from openai import OpenAI
from openai.types.responses import ResponseTextConfigParam

from .errors import FailureKind, ModelCallError

CALL_TIMEOUT_S: float = 60.0

T = TypeVar("T")


def create_client(api_key: str | None = None, *, timeout: float = CALL_TIMEOUT_S) -> OpenAI:
    return OpenAI(api_key=api_key, timeout=timeout, max_retries=0)


def classify_failure(exc: BaseException) -> FailureKind:
    """Map an SDK exception to a :class:`FailureKind`.

    HTTP 429 (``openai.RateLimitError``) is the only rate-limit signal.
    """

    if isinstance(exc, openai.RateLimitError):
        return FailureKind.RATE_LIMIT
    if isinstance(exc, openai.APITimeoutError):
        return FailureKind.TIMEOUT
    sc = getattr(exc, "status_code", None)
    if sc == 429:
        return FailureKind.RATE_LIMIT
    return FailureKind.OTHER


def _call_sdk(fn: Callable[[], T], what: str) -> T:
    try:
        return fn()
    except openai.OpenAIError as e:
        kind = classify_failure(e)
        raise ModelCallError(f"{what} failed ({kind.value}): {e}", kind=kind) from e


def extract_output_text(resp: Any) -> str:
    """Return the text of a Responses API result.

    Prefers ``resp.output_text``; falls back to ``resp.output[0].content[0].text``
    for SDK shapes that do not populate the convenience property.
    """

    text: str | None = getattr(resp, "output_text", None)
    if not text:
        try:
            first = resp.output[0] if getattr(resp, "output", None) else None
            content = getattr(first, "content", None)
            if content:
                txt_obj = getattr(content[0], "text", None)
                if isinstance(txt_obj, str):
                    text = txt_obj
                else:
                    maybe_val = getattr(txt_obj, "value", None)
                    if isinstance(maybe_val, str):
                        text = maybe_val
        except (AttributeError, IndexError, TypeError):
            text = None
    if not text or not isinstance(text, str):
        raise ModelCallError("Unexpected Responses API shape; unable to locate text output")
    return text


class ChatModel:
    """``(system_prompt, user_text) -> completion text`` over the Responses API."""

    def __init__(self, client: OpenAI, *, model: str, timeout: float = CALL_TIMEOUT_S) -> None:
        self._client = client
        self.model = model
        self.timeout = timeout

    def complete(
        self,
        system_prompt: str,
        user_text: str,
        *,
        text_format: ResponseTextConfigParam | None = None,
    ) -> str:
        kwargs: dict[str, Any] = {
            "model": self.model,
            "instructions": system_prompt,
            "input": user_text,
            "timeout": self.timeout,
        }
        if text_format is not None:
            kwargs["text"] = text_format
        resp = _call_sdk(lambda: self._client.responses.create(**kwargs), "responses.create")
        return extract_output_text(resp)


class OpenAIEmbedder:
    """Text -> vector via the Embeddings API."""

    def __init__(self, client: OpenAI, *, model: str, timeout: float = CALL_TIMEOUT_S) -> None:
        self._client = client
        self.model = model
        self.timeout = timeout

    def embed_documents(self, texts: Sequence[str]) -> list[list[float]]:
        if not texts:
            return []
        resp = _call_sdk(
            lambda: self._client.embeddings.create(
                model=self.model, input=list(texts), timeout=self.timeout
            ),
            "embeddings.create",
        )
        ordered = sorted(resp.data, key=lambda d: d.index)
        return [list(d.embedding) for d in ordered]

    def embed_query(self, text: str) -> list[float]:
        return self.embed_documents([text])[0]


__all__ = [
    "CALL_TIMEOUT_S",
    "ChatModel",
    "OpenAIEmbedder",
    "classify_failure",
    "create_client",
    "extract_output_text",
]
