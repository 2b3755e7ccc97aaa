# Area: Shared
# PRD: docs/prd-match-lifecycle.md
"""
companion_matches.cli — Command-line interface
==============================================

Inspection commands for the match store.

Usage:
    python -m companion_matches init-db
    python -m companion_matches status [--pack league]
    python -m companion_matches timeline --pack league --subpack 0 --match EUW1_123
    python -m companion_matches timeline --pack league --subpack 0 --match EUW1_123 \\
        --types event,statistic --limit 20

Every command accepts ``--config config.json``; the database path can
also be set with COMPANION_DB_PATH.
"""

import argparse
import json
import sys
from typing import List, Optional

from ._config import load_config
from ._shared.logging_config import setup_logging
from ._store import MatchRepository, TimelineRepository, init_database
from .errors import CompanionMatchesError
from .types import GetMatchTimelineRequest


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="companion_matches",
        description="Companion match store - inspect match summaries and timelines",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m companion_matches init-db
  python -m companion_matches status
  python -m companion_matches timeline --pack league --subpack 0 --match EUW1_123 --limit 10
        """,
    )
    parser.add_argument(
        "--config",
        type=str,
        help="Path to JSON config file",
    )

    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("init-db", help="Create the database tables if missing")

    status = commands.add_parser(
        "status", help="List in-progress matches with their recovery state"
    )
    status.add_argument("--pack", type=str, help="Only show this gamepack's matches")

    timeline = commands.add_parser("timeline", help="Print a match timeline as JSON")
    timeline.add_argument("--pack", type=str, required=True, help="Gamepack id")
    timeline.add_argument("--subpack", type=int, required=True, help="Subpack index")
    timeline.add_argument("--match", type=str, required=True, help="External match id")
    timeline.add_argument(
        "--types",
        type=str,
        help="Comma-separated entry types (event,statistic,moment)",
    )
    timeline.add_argument("--limit", type=int, help="Only the latest N entries")

    return parser


def cmd_init_db(config: dict) -> int:
    init_database(config["db_path"])
    print(f"Database ready at {config['db_path']}")
    return 0


def cmd_status(config: dict, pack_id: Optional[str]) -> int:
    """Print one line per in-progress match."""
    matches = MatchRepository(config["db_path"]).list_in_progress(pack_id)
    timeline = TimelineRepository(config["db_path"])
    if not matches:
        print("No in-progress matches.")
        return 0

    print(
        f"{'PACK':12} {'SUB':>3}  {'MATCH':24} {'RECOVERY':10} "
        f"{'ATTEMPTS':>8} {'ENTRIES':>7}  LAST VERIFIED"
    )
    for match in matches:
        print(
            f"{match.pack_id:12} {match.subpack:>3}  {match.external_match_id:24} "
            f"{match.recovery_state or '-':10} {match.verification_attempts:>8} "
            f"{timeline.count(match.id):>7}  "
            f"{match.last_verification_at or '-'}"
        )
    return 0


def cmd_timeline(config: dict, args: argparse.Namespace) -> int:
    """Print the GetMatchTimelineResponse JSON of a match."""
    entry_types = None
    if args.types is not None:
        entry_types = [t.strip() for t in args.types.split(",") if t.strip()]
    request = GetMatchTimelineRequest(
        subpack=args.subpack,
        external_match_id=args.match,
        entry_types=entry_types,
        limit=args.limit,
    )
    response = TimelineRepository(config["db_path"]).get_timeline(args.pack, request)
    print(json.dumps(response.to_wire(), indent=2))
    return 0 if response.found else 1


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)

    try:
        config = load_config(args.config)
        # CLI output goes to stdout; keep the JSON log file out of it
        setup_logging(None, "WARNING")

        if args.command == "init-db":
            return cmd_init_db(config)
        if args.command == "status":
            init_database(config["db_path"])
            return cmd_status(config, args.pack)
        if args.command == "timeline":
            init_database(config["db_path"])
            return cmd_timeline(config, args)
    except CompanionMatchesError as e:
        print(f"Error [{e.code}]: {e}", file=sys.stderr)
        return 1
    except ValueError as e:
        # pydantic rejects bad --types / --limit values
        print(f"Error: {e}", file=sys.stderr)
        return 2

    return 2
