"""Interactive CLI for ``expense_tracker``.

``expense-tracker`` loads a local ``.env`` (existing environment variables
win), configures logging, wires an :class:`ExpenseAssistant` and then reads
one line at a time until ``q`` or end of input. Errors inside a cycle are
reported and the loop keeps going; only startup failures end the process
with a non-zero status.
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import typer
from dotenv import load_dotenv
from prompt_toolkit import PromptSession

from .config import load_settings
from .errors import CredentialMissingError, ExpenseTrackerError, TaxonomyLoadError
from .logging_setup import configure_logging, get_logger
from .models import AddOutcome, Outcome, RetrieveOutcome
from .pipeline import ExpenseAssistant, build_assistant
from .vector_index import format_amount

QUIT_TOKEN = "q"
PROMPT = 'Enter an expense or a question (or type "q" to quit): '
SEPARATOR = "-------------------"

_logger = get_logger("expense_tracker.cli")


def render_outcome(outcome: Outcome) -> list[str]:
    """Lines reported to the user for one completed cycle."""

    if isinstance(outcome, AddOutcome):
        r = outcome.record
        return [
            f"Analysis: {r.confirmation_text}",
            (
                f"  ₹{format_amount(r.amount)} | {r.category} > "
                f"{', '.join(r.subcategories)} | id={r.id}"
            ),
            "✅ Expense saved to database",
        ]
    assert isinstance(outcome, RetrieveOutcome)
    lines = [outcome.summary, "", f"Matched expenses ({len(outcome.matches)}):"]
    lines.extend(f"  - {d.text_content}" for d in outcome.matches)
    return lines


def run_loop(
    assistant: ExpenseAssistant,
    *,
    session: PromptSession | None = None,
    echo: Callable[[str], None] = typer.echo,
) -> int:
    """Read-dispatch-report until quit; returns the process exit code."""

    session = session or PromptSession()
    while True:
        try:
            text = session.prompt(PROMPT)
        except (EOFError, KeyboardInterrupt):
            break
        text = text.strip()
        if not text:
            continue
        if text.lower() == QUIT_TOKEN:
            break
        try:
            outcome = assistant.handle(text)
        except ExpenseTrackerError as e:
            _logger.warning("cycle:failed error=%s: %s", e.__class__.__name__, e)
            echo(f"Error: {e}")
        except Exception as e:  # noqa: BLE001 - one bad input must not end the loop
            _logger.exception("cycle:unexpected_error")
            echo(f"Error: unexpected failure: {e}")
        else:
            for line in render_outcome(outcome):
                echo(line)
        echo(SEPARATOR)
    echo("Goodbye!")
    return 0


app = typer.Typer(
    add_completion=False,
    help=(
        "Conversational expense tracker. Type an expense to record it or a question to "
        "search past expenses. Reads OPENAI_API_KEY and DATABASE_URL from the environment "
        "or a local .env."
    ),
)


@app.command()
def main() -> None:
    """Start the interactive loop."""

    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
    configure_logging()

    try:
        settings = load_settings()
        assistant = build_assistant(settings)
    except (CredentialMissingError, TaxonomyLoadError, ValueError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from e
    except Exception as e:  # noqa: BLE001 - e.g. database unreachable at startup
        _logger.exception("startup:failed")
        typer.echo(f"Error: startup failed: {e}", err=True)
        raise typer.Exit(1) from e

    try:
        code = run_loop(assistant)
    finally:
        assistant.close()
    raise typer.Exit(code)


if __name__ == "__main__":  # pragma: no cover - `python -m expense_tracker.cli`
    app()
