import argparse
import asyncio
import json
from contextlib import contextmanager
from dataclasses import replace
from pathlib import Path

from . import __version__
from .browser import BrowserSession
from .cleanup import cleanup_stale_postings
from .config import Settings, load_settings
from .env import load_env
from .errors import ExtractionUnavailable, StorageFailure
from .logger import configure_logger
from .models import Criteria, Posting
from .pipeline import Pipeline
from .report import CollectingSink, SmtpSink, format_text_report, send_best_postings
from .schema import validate_posting
from .scoring import explain
from .scrapers import get_sources
from .storage import PostingStore


def _read_json(path_str: str) -> dict:
    path = Path(path_str)
    if not path.exists():
        raise SystemExit(f"Input file not found: {path}")
    with path.open("r", encoding="utf-8") as f:
        return json.load(f)


@contextmanager
def open_store(settings: Settings):
    """Yield an open store; storage errors end the command with a message."""
    try:
        store = PostingStore(settings.db_path, retention_days=settings.retention_days)
    except StorageFailure as e:
        raise SystemExit(f"Store unavailable: {e}")
    try:
        yield store
    except StorageFailure as e:
        raise SystemExit(f"Store unavailable: {e}")
    finally:
        store.close()


def build_pipeline(settings: Settings, store: PostingStore) -> Pipeline:
    try:
        sources = get_sources(settings.sources)
    except ValueError as e:
        raise SystemExit(str(e))

    def session_factory():
        return BrowserSession(
            headless=settings.headless,
            timeout_ms=settings.timeout_ms,
            wait_timeout_ms=settings.wait_timeout_ms,
        )

    return Pipeline(
        store=store,
        criteria=settings.criteria(),
        sources=sources,
        session_factory=session_factory,
        max_jobs=settings.max_jobs,
        delay_seconds=settings.delay_ms / 1000,
    )


def _run(settings: Settings, make_coro) -> None:
    with open_store(settings) as store:
        pipeline = build_pipeline(settings, store)
        try:
            summary = asyncio.run(make_coro(pipeline))
        except ExtractionUnavailable as e:
            raise SystemExit(f"Run failed: {e}")

    if summary is None:
        print("Another run is in progress; skipped.")
        return
    print(f"Done. analyzed={summary.analyzed} saved={summary.saved} failed={summary.failed}")
    if summary.preserved or summary.purged:
        print(f"preserved={summary.preserved} purged={summary.purged}")
    if summary.sources_failed:
        print(f"Unreachable sources: {', '.join(summary.sources_failed)}")


def cmd_refresh(args: argparse.Namespace, settings: Settings) -> None:
    params = settings.search_params()
    _run(settings, lambda p: p.run_full_refresh(params))


def cmd_scrape(args: argparse.Namespace, settings: Settings) -> None:
    params = settings.search_params()
    _run(settings, lambda p: p.run_incremental(params, analyze=not args.no_analyze))


def cmd_analyze(args: argparse.Namespace, settings: Settings) -> None:
    limit = args.limit or settings.analyze_limit
    _run(settings, lambda p: p.run_pending_analysis(limit))


def cmd_stats(args: argparse.Namespace, settings: Settings) -> None:
    with open_store(settings) as store:
        stats = store.stats()
    print(f"total={stats['total']} pending={stats['pending']} scored={stats['scored']} failed={stats['failed']}")


def cmd_best(args: argparse.Namespace, settings: Settings) -> None:
    threshold = settings.score_threshold if args.threshold is None else args.threshold
    with open_store(settings) as store:
        postings = store.get_by_score_at_least(threshold, args.limit or settings.report_limit)
    if not postings:
        print("No postings at or above threshold.")
        return
    for posting in postings:
        print(f"[{posting.score:3d}] {posting.title} @ {posting.company}")
        print(f"      {posting.url}")


def cmd_cleanup(args: argparse.Namespace, settings: Settings) -> None:
    days = args.days or settings.retention_days
    before, after = cleanup_stale_postings(settings.db_path, days=days)
    print(f"Removed {before - after} stale postings, {after} remaining")


def cmd_score(args: argparse.Namespace, settings: Settings) -> None:
    posting = Posting.from_dict(_read_json(args.input))
    criteria = Criteria.from_dict(_read_json(args.criteria)) if args.criteria else settings.criteria()
    breakdown = explain(posting, criteria)
    print(f"Score: {breakdown.total}")
    print(
        f"  skills={breakdown.skills} experience={breakdown.experience} "
        f"location={breakdown.location} exclusions={breakdown.exclusions} bonus={breakdown.bonus}"
    )
    for reason in breakdown.reasons:
        print(f" - {reason}")


def cmd_validate(args: argparse.Namespace, settings: Settings) -> None:
    errors = validate_posting(_read_json(args.input))
    if errors:
        print("Invalid:")
        for e in errors:
            print(f" - {e}")
        raise SystemExit(2)
    print("Valid")


def cmd_report(args: argparse.Namespace, settings: Settings) -> None:
    address = args.to or settings.smtp.to_addr
    threshold = settings.score_threshold if args.threshold is None else args.threshold
    sink = CollectingSink() if args.dry_run else SmtpSink(settings.smtp)
    with open_store(settings) as store:
        delivered = send_best_postings(store, sink, address, threshold, settings.report_limit)
    if args.dry_run:
        postings, _ = sink.deliveries[0]
        print(format_text_report(postings))
        return
    if not delivered:
        raise SystemExit("Report was not delivered")
    print(f"Report sent to {address}")


def main():
    load_env()
    parser = argparse.ArgumentParser(prog="jobhound", description="Scrape, score and retain job postings")
    parser.add_argument("--version", action="store_true", help="Show version")
    parser.add_argument("--db", help="Path to SQLite store (default: $JOBHOUND_DB or data/jobs.db)")

    subparsers = parser.add_subparsers(dest="command")

    ref = subparsers.add_parser("refresh", help="Full refresh: scrape, score new postings, purge stale ones")
    ref.set_defaults(func=cmd_refresh)

    scr = subparsers.add_parser("scrape", help="Scrape and save new postings one by one")
    scr.add_argument("--no-analyze", action="store_true", help="Store postings as pending without scoring")
    scr.set_defaults(func=cmd_scrape)

    ana = subparsers.add_parser("analyze", help="Score pending postings without scraping")
    ana.add_argument("--limit", type=int, help="Maximum postings to analyze (default: $ANALYZE_LIMIT)")
    ana.set_defaults(func=cmd_analyze)

    sts = subparsers.add_parser("stats", help="Show store counts by status")
    sts.set_defaults(func=cmd_stats)

    bst = subparsers.add_parser("best", help="List best scored postings")
    bst.add_argument("--threshold", type=int, help="Minimum score (default: $SCORE_THRESHOLD)")
    bst.add_argument("--limit", type=int, help="Maximum postings (default: $REPORT_LIMIT)")
    bst.set_defaults(func=cmd_best)

    cln = subparsers.add_parser("cleanup", help="Delete postings older than the retention window")
    cln.add_argument("--days", type=int, help="Retention in days (default: $RETENTION_DAYS)")
    cln.set_defaults(func=cmd_cleanup)

    sco = subparsers.add_parser("score", help="Score a posting JSON and explain the result")
    sco.add_argument("--input", required=True, help="Path to posting JSON")
    sco.add_argument("--criteria", help="Path to criteria JSON (default: from environment)")
    sco.set_defaults(func=cmd_score)

    val = subparsers.add_parser("validate", help="Validate a posting JSON")
    val.add_argument("--input", required=True, help="Path to posting JSON")
    val.set_defaults(func=cmd_validate)

    rep = subparsers.add_parser("report", help="Send the best postings to the notification address")
    rep.add_argument("--to", help="Recipient (default: $TO_EMAIL)")
    rep.add_argument("--threshold", type=int, help="Minimum score (default: $SCORE_THRESHOLD)")
    rep.add_argument("--dry-run", action="store_true", help="Print the report instead of sending it")
    rep.set_defaults(func=cmd_report)

    args = parser.parse_args()

    if args.version:
        print(__version__)
        return

    settings = load_settings()
    if args.db:
        settings = replace(settings, db_path=Path(args.db))
    configure_logger(settings.log_level, settings.log_dir)

    if hasattr(args, "func"):
        args.func(args, settings)
        return

    parser.print_help()


if __name__ == "__main__":
    main()
