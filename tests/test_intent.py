from __future__ import annotations

import pytest

from expense_tracker.errors import IntentParseError
from expense_tracker.intent import IntentClassifier, parse_intent
from expense_tracker.llm import ChatModel
from expense_tracker.models import Intent

from tests.helpers.openai_stub import OpenAIStub


@pytest.mark.parametrize(
    "reply, expected",
    [
        ("add", Intent.ADD),
        ("retrieve", Intent.RETRIEVE),
        (" Retrieve.\n", Intent.RETRIEVE),
        ('"ADD"', Intent.ADD),
        ("`add`", Intent.ADD),
    ],
)
def test_parse_intent_accepts_bare_tokens(reply, expected):
    assert parse_intent(reply) is expected


@pytest.mark.parametrize("reply", ["", "maybe", "add retrieve", "I think add", "delete"])
def test_parse_intent_rejects_anything_else(reply):
    with pytest.raises(IntentParseError):
        parse_intent(reply)


def test_classifier_sends_fixed_instructions_and_user_text(invoker):
    client = OpenAIStub(reply=lambda kwargs: "add\n")
    classifier = IntentClassifier(ChatModel(client, model="gpt-test"), invoker)

    assert classifier.classify("spent 500 on lunch") is Intent.ADD

    (call,) = client.response_calls
    assert call["model"] == "gpt-test"
    assert call["input"] == "spent 500 on lunch"
    assert "retrieve" in call["instructions"]
    assert "text" not in call


def test_classifier_raises_on_unexpected_reply(invoker):
    client = OpenAIStub(reply=lambda kwargs: "I could not decide")
    classifier = IntentClassifier(ChatModel(client, model="gpt-test"), invoker)
    with pytest.raises(IntentParseError):
        classifier.classify("hello")
