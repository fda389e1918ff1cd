"""
CLI for querying a memory database.

Usage:
    python scripts/memory_query.py search --owner user_42 "favorite color"
    python scripts/memory_query.py context --owner user_42 --persona lyra "favorite color"
    python scripts/memory_query.py stats --owner user_42 --window 90
"""

import argparse
import json
import sys

from memory_engine.config.settings import load_settings
from memory_engine.memory import (
    InvalidQuery,
    InvalidWindow,
    MemoryEngine,
    MemoryQuery,
    SQLiteMemoryStore,
    StoreUnavailable,
)
from memory_engine.telemetry import configure_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Query a memory database")
    parser.add_argument("--db", type=str, default=None, help="SQLite database path")
    parser.add_argument("--config", type=str, default=None, help="Settings JSON file")

    sub = parser.add_subparsers(dest="command", required=True)

    for name in ("search", "context"):
        cmd = sub.add_parser(name)
        cmd.add_argument("text", help="Query text")
        cmd.add_argument("--owner", required=True)
        cmd.add_argument("--persona", default=None)
        cmd.add_argument("--category", default=None)
        cmd.add_argument("--limit", type=int, default=5)

    stats = sub.add_parser("stats")
    stats.add_argument("--owner", required=True)
    stats.add_argument("--persona", default=None)
    stats.add_argument("--window", type=int, default=30)

    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)

    settings = load_settings(args.config)
    configure_logging(settings.log_level)
    engine = MemoryEngine(SQLiteMemoryStore(args.db or settings.paths.memory_db), settings)

    try:
        if args.command == "stats":
            snapshot = engine.aggregate(args.owner, persona_id=args.persona, window_days=args.window)
            print(json.dumps(snapshot.model_dump(mode="json"), indent=2))
            return 0

        query = MemoryQuery(
            text=args.text,
            owner_id=args.owner,
            persona_id=args.persona,
            category=args.category,
            limit=args.limit,
        )
        if args.command == "context":
            print(engine.build_context(query))
            return 0

        for item in engine.search(query):
            print(f"{item.score:>6g}  {item.record.created_at:%Y-%m-%d}  {item.record.content}")
        return 0

    except (InvalidQuery, InvalidWindow) as e:
        print(f"❌ {e}", file=sys.stderr)
        return 2
    except StoreUnavailable as e:
        print(f"❌ Memory store unavailable: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
