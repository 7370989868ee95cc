from __future__ import annotations

# Rebuild the vector index from the expense store.
#
# Usage (example):
#   python -m expense_tracker.rebuild_index --index-dir ./vector_store
#
# The store is authoritative; the index directory is overwritten with a fresh
# sentinel plus one document per stored expense.
import argparse
import sys
from dataclasses import replace
from pathlib import Path

from dotenv import load_dotenv

from .config import load_settings
from .errors import ExpenseTrackerError
from .logging_setup import configure_logging
from .pipeline import build_assistant


def main(argv: list[str] | None = None) -> int:
    ap = argparse.ArgumentParser(description="Rebuild the expense vector index from the store")
    ap.add_argument(
        "--index-dir",
        type=Path,
        default=None,
        help="Index directory; falls back to $EXPENSE_TRACKER_INDEX_DIR",
    )
    args = ap.parse_args(argv)

    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
    configure_logging("INFO")

    try:
        settings = load_settings()
    except ExpenseTrackerError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    if args.index_dir is not None:
        settings = replace(settings, index_dir=args.index_dir)

    assistant = build_assistant(settings)
    try:
        count = assistant.rebuild_index()
    finally:
        assistant.close()
    print(f"Rebuilt {settings.index_dir} with {count} expenses")
    return 0


if __name__ == "__main__":  # pragma: no cover - manual utility
    raise SystemExit(main())
