from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING
from uuid import UUID

from dotenv import load_dotenv

from savestate.adapters.records import RecordFileError
from savestate.app import (
    backfill_metadata,
    catalog_health,
    dedupe_games,
    map_release_to_retroachievements,
    merge_releases,
    pin_game_metadata,
    resolve_record,
    sync_records_file,
)
from savestate.config import ConfigurationError, configure_logging
from savestate.domain.resolution.duplicates import DEFAULT_GROUP_LIMIT, MAX_GROUP_LIMIT
from savestate.domain.resolution.enrichment import DEFAULT_BACKFILL_LIMIT, MAX_BACKFILL_LIMIT

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

log = logging.getLogger(__name__)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Resolve and maintain the SaveState game catalog")
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log debug output",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    resolve = subparsers.add_parser("resolve", help="Resolve one external title to a release")
    resolve.add_argument("--source", required=True, help="Source such as steam, psn, xbox, ra")
    resolve.add_argument("--external-id", required=True, help="Id of the title at the source")
    resolve.add_argument("--title", required=True, help="Title as the source reports it")
    resolve.add_argument(
        "--platform-key",
        help="Platform key of the release (defaults to the source)",
    )
    resolve.add_argument("--platform-label", help="Human readable platform name")
    resolve.add_argument("--cover-url", help="Cover image reported by the source")
    resolve.add_argument(
        "--no-metadata",
        action="store_true",
        help="Skip the IGDB search even if it is configured",
    )

    sync = subparsers.add_parser("sync", help="Import a JSON-lines file of external records")
    sync.add_argument("path", type=Path, help="File with one JSON record per line")
    sync.add_argument("--user-id", type=str, help="User to attach ownership rows to")
    sync.add_argument(
        "--no-metadata",
        action="store_true",
        help="Skip the IGDB search even if it is configured",
    )

    merge = subparsers.add_parser("merge", help="Merge a duplicate release into another")
    merge.add_argument("winner_id", type=str, help="Release that survives")
    merge.add_argument("loser_id", type=str, help="Release that is folded in and deleted")

    dedupe = subparsers.add_parser(
        "dedupe-games",
        help="Fold games sharing a title key into one (dry run unless --apply)",
    )
    dedupe.add_argument(
        "--apply",
        action="store_true",
        help="Write the changes instead of only reporting the plan",
    )
    dedupe.add_argument(
        "--limit",
        type=int,
        default=DEFAULT_GROUP_LIMIT,
        help=f"Maximum number of groups to handle (default: %(default)s, max {MAX_GROUP_LIMIT})",
    )

    map_ra = subparsers.add_parser("map-ra", help="Map a release to a RetroAchievements game")
    map_ra.add_argument("release_id", type=str, help="Release to map")
    map_ra.add_argument(
        "--dry-run",
        action="store_true",
        help="Report the match without writing the mapping",
    )

    backfill = subparsers.add_parser(
        "backfill-metadata",
        help="Search metadata and covers for games that are missing them",
    )
    backfill.add_argument(
        "--limit",
        type=int,
        default=DEFAULT_BACKFILL_LIMIT,
        help=f"Maximum number of games to handle (default: %(default)s, max {MAX_BACKFILL_LIMIT})",
    )
    backfill.add_argument(
        "--dry-run",
        action="store_true",
        help="Report what would change without writing",
    )

    pin = subparsers.add_parser("pin-metadata", help="Attach a known IGDB game id to a game")
    pin.add_argument("game_id", type=str, help="Catalog game to update")
    pin.add_argument("metadata_id", type=str, help="IGDB game id")

    subparsers.add_parser("health", help="Report catalog completeness counts")

    return parser.parse_args(list(argv))


def _parse_uuid(value: str) -> UUID:
    try:
        return UUID(value)
    except ValueError as exc:
        raise ValueError(f"Invalid UUID: {value}") from exc


def _validate(args: argparse.Namespace) -> None:
    if args.command == "sync" and args.user_id is not None:
        args.user_id = _parse_uuid(args.user_id)
    elif args.command == "merge":
        args.winner_id = _parse_uuid(args.winner_id)
        args.loser_id = _parse_uuid(args.loser_id)
        if args.winner_id == args.loser_id:
            raise ValueError("Winner and loser must be different releases")
    elif args.command == "map-ra":
        args.release_id = _parse_uuid(args.release_id)
    elif args.command in {"dedupe-games", "backfill-metadata"} and args.limit < 1:
        raise ValueError("--limit must be at least 1")
    elif args.command == "pin-metadata":
        args.game_id = _parse_uuid(args.game_id)
        if not args.metadata_id.isdigit():
            raise ValueError(f"Invalid IGDB game id: {args.metadata_id}")


def _run_command(args: argparse.Namespace) -> None:
    if args.command == "resolve":
        resolved = resolve_record(
            args.source,
            args.external_id,
            args.title,
            args.platform_key or args.source,
            cover_url=args.cover_url,
            platform_label=args.platform_label,
            use_metadata_search=not args.no_metadata,
        )
        log.info(
            "release=%s game=%s matched_by=%s game_created=%s release_created=%s",
            resolved.release_id,
            resolved.game_id,
            resolved.matched_by,
            resolved.game_created,
            resolved.release_created,
        )
    elif args.command == "sync":
        counters = sync_records_file(
            args.path,
            user_id=args.user_id,
            use_metadata_search=not args.no_metadata,
        )
        for failure in counters.failures:
            log.warning("Failed %s:%s: %s", failure.source, failure.external_id, failure.error)
    elif args.command == "merge":
        report = merge_releases(args.winner_id, args.loser_id)
        log.info(
            "Merged %s into %s: moved=%s, state_rows=%s, mappings=%s, deleted=%s",
            report.loser_id,
            report.winner_id,
            report.moved,
            report.deleted_state_rows,
            report.repointed_mappings,
            report.deleted,
        )
    elif args.command == "dedupe-games":
        result = dedupe_games(dry_run=not args.apply, limit=args.limit)
        for plan in result.plans:
            log.info(
                "%r: keep %s, fold %s",
                plan.title_key,
                plan.winner_id,
                ", ".join(str(loser) for loser in plan.loser_ids),
            )
        if result.dry_run:
            log.info("Dry run: %s groups found; pass --apply to fold them", len(result.plans))
    elif args.command == "map-ra":
        mapping = map_release_to_retroachievements(args.release_id, dry_run=args.dry_run)
        log.info(
            "ok=%s game_id=%s confidence=%s matched=%r written=%s note=%s",
            mapping.ok,
            mapping.game_id,
            f"{mapping.confidence:.2f}" if mapping.confidence is not None else None,
            mapping.matched_title,
            mapping.written,
            mapping.note,
        )
    elif args.command == "backfill-metadata":
        result = backfill_metadata(limit=args.limit, dry_run=args.dry_run)
        for failure in result.failures:
            log.warning("Failed %s (%r): %s", failure.game_id, failure.title, failure.error)
        log.info(
            "processed=%s updated_ids=%s updated_covers=%s updated_releases=%s skipped=%s "
            "failed=%s dry_run=%s",
            result.processed,
            result.updated_ids,
            result.updated_covers,
            result.updated_releases,
            result.skipped,
            len(result.failures),
            result.dry_run,
        )
    elif args.command == "pin-metadata":
        pinned = pin_game_metadata(args.game_id, args.metadata_id)
        log.info(
            "game=%s metadata_id=%s title=%r cover=%s releases_updated=%s",
            pinned.game_id,
            pinned.metadata_id,
            pinned.canonical_title,
            pinned.cover_url,
            pinned.releases_updated,
        )
    elif args.command == "health":
        health = catalog_health()
        log.info(
            "games=%s with_metadata=%s pending_metadata=%s with_cover=%s "
            "without_releases=%s duplicate_title_groups=%s releases=%s "
            "releases_without_cover=%s mappings=%s",
            health.games_total,
            health.games_with_metadata,
            health.games_pending_metadata,
            health.games_with_cover,
            health.games_without_releases,
            health.duplicate_title_groups,
            health.releases_total,
            health.releases_without_cover,
            health.mappings_total,
        )
    else:
        raise ValueError(f"Unsupported command: {args.command}")


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args: argparse.Namespace
    try:
        parsed_args = _parse_args(args_list)
        configure_logging(level=logging.DEBUG if parsed_args.verbose else logging.INFO)
        _validate(parsed_args)
    except ValueError:
        log.exception("CLI validation error")
        sys.exit(2)

    try:
        _run_command(parsed_args)
    except (ConfigurationError, RecordFileError) as exc:
        log.error("%s", exc)  # noqa: TRY400
        sys.exit(2)
    except Exception:
        log.exception("Fatal error during %s", parsed_args.command)
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
