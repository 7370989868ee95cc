"""Prompt construction for intent classification, extraction and summaries.

This module builds:
- The fixed intent-classification instructions.
- The extraction instructions, which enumerate the taxonomy and carry the
  currency conversion and category disambiguation rules.
- The strict ``text.format`` (JSON Schema) object for the extraction call.
- The summarization instructions and user content for retrieval answers.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from openai.types.responses import ResponseTextConfigParam

# Approximate conversion rates into the reporting currency (INR).
CURRENCY_RATES: Mapping[str, int] = {"USD": 83, "EUR": 90, "GBP": 105}
REPORTING_CURRENCY_SYMBOL = "₹"


def build_intent_instructions() -> str:
    return (
        "You route messages for a personal expense tracker. Decide what the user wants.\n"
        "- add: the user is reporting money they spent (e.g. 'spent 500 on lunch', "
        "'paid 1200 for electricity').\n"
        "- retrieve: the user is asking about expenses already recorded (e.g. "
        "'show me food expenses', 'how much did I spend on fuel?').\n"
        "Reply with exactly one lowercase word, either add or retrieve, and nothing else."
    )


def format_taxonomy(taxonomy: Mapping[str, Sequence[str]]) -> str:
    """Render categories with their subcategories, one category per line."""

    lines: list[str] = []
    for category, subs in taxonomy.items():
        quoted = ", ".join(f'"{s}"' for s in subs)
        lines.append(f"  * {category}: [{quoted}]")
    return "\n".join(lines)


def build_extraction_instructions(taxonomy: Mapping[str, Sequence[str]]) -> str:
    categories = ", ".join(taxonomy.keys())
    rates = "\n".join(
        f"  * 1 {code} = {rate} INR" for code, rate in CURRENCY_RATES.items()
    )
    return (
        "You are an AI expense analyzer. Analyze the expense statement and return a JSON "
        "object with these exact fields:\n"
        "- amount: the numeric value of the expense in INR\n"
        f"- category: one of [{categories}]\n"
        "- sub-category: an array of one or more values allowed for that category:\n"
        f"{format_taxonomy(taxonomy)}\n"
        "- response: a brief confirmation of the expense\n\n"
        "Currency rules:\n"
        "- Amounts without a currency, or given in rupees (₹, Rs, INR), are already INR.\n"
        "- Convert other currencies with these approximate rates and report the INR value:\n"
        f"{rates}\n"
        "  ($ means USD, € means EUR, £ means GBP.)\n\n"
        "Category rules:\n"
        "- Use category and sub-category names exactly as listed; never invent new ones.\n"
        "- Prepared food and meals (restaurants, cafes, takeaway, delivery) are Food / "
        "Dining out; raw ingredients and household staples are Food / Groceries. Two "
        "purchases at the same vendor must be split accordingly and never merged.\n"
        "- Non-food items bought at a supermarket belong to their own category "
        "(e.g. cleaning supplies are Shopping / Household).\n\n"
        "Return ONLY the JSON object, no additional text."
    )


def build_extraction_format(taxonomy: Mapping[str, Sequence[str]]) -> ResponseTextConfigParam:
    """Return the strict JSON Schema text config for the extraction call.

    Enums constrain the shape only loosely (subcategories are not tied to
    their category in JSON Schema); membership is validated after decoding.
    """

    categories = list(taxonomy.keys())
    subcategories = list(dict.fromkeys(s for subs in taxonomy.values() for s in subs))
    if not categories:
        raise ValueError("taxonomy must contain at least one category")

    return {
        "format": {
            "type": "json_schema",
            "name": "expense",
            "schema": {
                "type": "object",
                "properties": {
                    "amount": {"type": "number"},
                    "category": {"type": "string", "enum": categories},
                    "sub-category": {
                        "type": "array",
                        "items": {"type": "string", "enum": subcategories},
                    },
                    "response": {"type": "string"},
                },
                "required": ["amount", "category", "sub-category", "response"],
                "additionalProperties": False,
            },
            "strict": True,
        }
    }


def build_summary_instructions() -> str:
    s = REPORTING_CURRENCY_SYMBOL
    return (
        "You are an AI assistant that answers questions about a user's recorded expenses. "
        "You receive the question and the relevant expense entries; each entry starts with "
        "its category tag in square brackets.\n"
        "Rules:\n"
        "- Group expenses by category with one heading per category.\n"
        "- Under each heading list every expense individually with its amount and "
        "description.\n"
        "- Give a separate total for each category. Never add amounts from different "
        "categories together, even when the same vendor appears in several categories.\n"
        f"- Write every amount with the {s} symbol (e.g. {s}500).\n"
        "- Only use the expenses provided; if none answer the question, say so."
    )


def build_summary_user_content(query: str, matched_texts: Sequence[str]) -> str:
    entries = "\n".join(f"{i}. {t.strip()}" for i, t in enumerate(matched_texts, start=1))
    return f"Question: {query.strip()}\n\nRelevant expenses:\n{entries}"


__all__ = [
    "CURRENCY_RATES",
    "REPORTING_CURRENCY_SYMBOL",
    "build_extraction_format",
    "build_extraction_instructions",
    "build_intent_instructions",
    "build_summary_instructions",
    "build_summary_user_content",
    "format_taxonomy",
]
