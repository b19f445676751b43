from __future__ import annotations

import argparse
import logging
import sys
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from powermap.app import create_user, delete, merge, resolve, restore
from powermap.config import configure_logging
from powermap.domain.model import Ability

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

log = logging.getLogger(__name__)


def _positive_id(value: str) -> int:
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Invalid id: {value}") from exc
    if parsed < 1:
        raise argparse.ArgumentTypeError(f"Ids are positive integers, got {parsed}")
    return parsed


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Maintain the power map")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log at DEBUG level")
    subparsers = parser.add_subparsers(dest="command", required=True)

    merge_cmd = subparsers.add_parser("merge", help="Merge one entity into another")
    merge_cmd.add_argument("source", type=_positive_id, help="Entity to merge away")
    merge_cmd.add_argument("dest", type=_positive_id, help="Entity that survives")
    merge_cmd.add_argument("--user-id", type=_positive_id, required=True, help="Acting user")
    merge_cmd.add_argument(
        "--dry-run",
        action="store_true",
        help="Report what the merge would change without writing",
    )

    resolve_cmd = subparsers.add_parser("resolve", help="Follow merges to the live entity")
    resolve_cmd.add_argument("entity_id", type=_positive_id)

    delete_cmd = subparsers.add_parser("delete", help="Soft-delete an entity")
    delete_cmd.add_argument("entity_id", type=_positive_id)
    delete_cmd.add_argument("--user-id", type=_positive_id, required=True, help="Acting user")

    restore_cmd = subparsers.add_parser("restore", help="Restore a soft-deleted entity")
    restore_cmd.add_argument("entity_id", type=_positive_id)
    restore_cmd.add_argument(
        "--with-relationships",
        action="store_true",
        help="Also restore relationships whose other end is still live",
    )

    user = subparsers.add_parser("user", help="User management commands")
    user_sub = user.add_subparsers(dest="user_command", required=True)
    user_create = user_sub.add_parser("create", help="Create a user")
    user_create.add_argument("--username", type=str, required=True)
    user_create.add_argument("--email", type=str, help="Optional email address")
    user_create.add_argument(
        "--ability",
        dest="abilities",
        action="append",
        type=Ability,
        choices=list(Ability),
        default=[],
        help="Ability to grant (repeatable)",
    )

    return parser.parse_args(list(argv))


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args = _parse_args(args_list)
    configure_logging(level=logging.DEBUG if parsed_args.verbose else logging.INFO)

    try:
        if parsed_args.command == "merge":
            result = merge(
                parsed_args.source,
                parsed_args.dest,
                user_id=parsed_args.user_id,
                dry_run=parsed_args.dry_run,
            )
            for category, count in result.counts.items():
                if count:
                    log.info("  %s: %s", category, count)
            for duplicate in result.potential_duplicates:
                log.info(
                    "  potential duplicate: relationship %s %s",
                    duplicate.relationship_id,
                    duplicate.triplet,
                )
        elif parsed_args.command == "resolve":
            entity = resolve(parsed_args.entity_id)
            log.info("Entity %s resolves to %s (%s)", parsed_args.entity_id, entity.id, entity.name)
        elif parsed_args.command == "delete":
            delete(parsed_args.entity_id, user_id=parsed_args.user_id)
        elif parsed_args.command == "restore":
            restore(parsed_args.entity_id, with_relationships=parsed_args.with_relationships)
        elif parsed_args.command == "user" and parsed_args.user_command == "create":
            create_user(
                username=parsed_args.username,
                email=parsed_args.email,
                abilities=parsed_args.abilities,
            )
        else:
            raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301

    except Exception:
        log.exception("Fatal error running %s", parsed_args.command)
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
