# ruff: noqa: T201

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from signal import SIGINT, signal
from typing import TYPE_CHECKING
from uuid import UUID

from dotenv import load_dotenv

from papershelf.app import Library, build_library
from papershelf.config import configure_logging
from papershelf.domain.model import CategorizerKind
from papershelf.domain.ports import PaperQuery, SortField

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from papershelf.domain.ingestion import BatchResult
    from papershelf.domain.model import PaperRecord

log = logging.getLogger(__name__)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Manage a papershelf library")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log debug output")
    subparsers = parser.add_subparsers(dest="command", required=True)

    ingest = subparsers.add_parser("ingest", help="Add papers from files, URLs or identifiers")
    ingest.add_argument("references", nargs="+", help="Path, URL, doi:<doi> or arxiv:<id>")

    rescrape = subparsers.add_parser("rescrape", help="Resolve stored papers again")
    rescrape.add_argument("ids", nargs="*", help="Paper ids (default: all preprints)")
    rescrape.add_argument(
        "--exclude",
        action="append",
        default=[],
        metavar="PROVIDER",
        help="Skip a provider by name (repeatable)",
    )

    rescrape_from = subparsers.add_parser(
        "rescrape-from", help="Resolve stored papers against one provider only"
    )
    rescrape_from.add_argument("provider", help="Provider name, e.g. dblp")
    rescrape_from.add_argument("ids", nargs="+", help="Paper ids")

    delete = subparsers.add_parser("delete", help="Delete papers and their files")
    delete.add_argument("ids", nargs="+", help="Paper ids")

    listing = subparsers.add_parser("list", help="List papers")
    listing.add_argument("--search", help="Substring of title, venue or authors")
    listing.add_argument("--tag")
    listing.add_argument("--folder")
    listing.add_argument("--flagged", action="store_true", default=None)
    listing.add_argument("--preprints", action="store_true", help="Only preprint-like papers")
    listing.add_argument(
        "--sort",
        choices=[field.value for field in SortField],
        default=SortField.ADDED_AT.value,
    )
    listing.add_argument("--ascending", action="store_true")
    listing.add_argument("--limit", type=int)

    tags = subparsers.add_parser("tags", help="List tags (or folders) with their counts")
    tags.add_argument("--folders", action="store_true", help="List folders instead of tags")

    subparsers.add_parser("prune", help="Drop tags and folders no paper uses")

    watch = subparsers.add_parser("watch", help="Rescrape preprints periodically until stopped")
    watch.add_argument("--interval-days", type=float, help="Override the configured interval")

    args = parser.parse_args(list(argv))
    if getattr(args, "limit", None) is not None and args.limit < 1:
        raise ValueError("--limit must be positive")
    if getattr(args, "interval_days", None) is not None and args.interval_days <= 0:
        raise ValueError("--interval-days must be positive")
    return args


def _parse_uuid(value: str) -> UUID:
    try:
        return UUID(value)
    except ValueError as exc:
        raise ValueError(f"Invalid paper id: {value}") from exc


def _format_paper(record: PaperRecord) -> str:
    year = record.year if record.year is not None else "----"
    venue = record.venue or "?"
    return f"{record.id}  {year}  {venue[:24]:<24}  {record.title or '<untitled>'}"


def _report(result: BatchResult) -> None:
    for outcome in result.failures():
        log.warning("%s failed during %s: %s", outcome.item, outcome.stage, outcome.error)
    print(f"{result.succeeded} succeeded, {result.failed} failed")


async def _watch(library: Library, interval_days: float | None) -> None:
    if not library.arm_scheduler(interval_days):
        print("Routine rescrapes are disabled in the settings")
        return
    # runs until cancelled or interrupted
    await asyncio.Event().wait()


async def _run(args: argparse.Namespace) -> None:
    async with build_library() as library:
        match args.command:
            case "ingest":
                _report(await library.ingest(args.references))
            case "rescrape":
                if args.ids:
                    ids = [_parse_uuid(value) for value in args.ids]
                    _report(await library.rescrape(ids, excluded=args.exclude))
                else:
                    _report(await library.rescrape_preprints())
            case "rescrape-from":
                ids = [_parse_uuid(value) for value in args.ids]
                _report(await library.rescrape_from(ids, args.provider))
            case "delete":
                _report(await library.delete([_parse_uuid(value) for value in args.ids]))
            case "list":
                query = PaperQuery(
                    search=args.search,
                    flagged=args.flagged,
                    tag=args.tag,
                    folder=args.folder,
                    preprint_only=args.preprints,
                    sort_by=SortField(args.sort),
                    descending=not args.ascending,
                    limit=args.limit,
                )
                for record in library.list_papers(query):
                    print(_format_paper(record))
            case "tags":
                kind = CategorizerKind.FOLDER if args.folders else CategorizerKind.TAG
                for categorizer in library.list_categorizers(kind):
                    print(f"{categorizer.count:>5}  {categorizer.name}")
            case "prune":
                print(f"Pruned {library.prune_categorizers()} unused tags and folders")
            case "watch":
                await _watch(library, args.interval_days)
            case _:
                raise ValueError(f"Unsupported command: {args.command}")


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    try:
        parsed_args = _parse_args(args_list)
        for value in getattr(parsed_args, "ids", ()):
            _parse_uuid(value)
    except ValueError:
        configure_logging()
        log.exception("CLI validation error")
        sys.exit(2)

    configure_logging(level=logging.DEBUG if parsed_args.verbose else logging.INFO)
    try:
        asyncio.run(_run(parsed_args))
    except Exception:
        log.exception("Fatal error")
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
