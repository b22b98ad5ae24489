"""Convert the Garmin Connect export into canonical activities.

Reads the configured summarizedActivities files, deduplicates by activityId,
normalizes units, writes data/activities.json and, when Supabase credentials
are configured, upserts everything into the `activities` table.

Usage:
  SUPABASE_URL=https://xxx.supabase.co SUPABASE_SERVICE_KEY=... \\
    python services/ingestion/garmin_import.py

The service role key (not the anon key) is needed because row level security
only allows public reads on `activities`.
"""
from __future__ import annotations

import argparse
from dataclasses import dataclass, field
import json
import logging
from pathlib import Path
import sys
import time
from typing import Optional, Protocol

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
from packages.config import STORE_TIMEOUT_SEC, ImportConfig, load_import_config
from packages.error_reporting import init_error_reporting, report_exception
from packages.logging_utils import setup_logging
from packages.metrics import inc, labelled, observe
from packages.request_context import import_run_context, new_run_id
from packages.store import StoreError, SupabaseStore
from services.ingestion.garmin_export import (
    ImportFailure,
    dedupe_activities,
    read_exports,
)
from services.processing.normalize import CanonicalActivity, normalize_activity, sort_newest_first

logger = logging.getLogger("activitylog.import")

ACTIVITIES_TABLE = "activities"


class ActivityStore(Protocol):
    def upsert(self, table: str, rows: list[dict], on_conflict: str = "id") -> None:
        ...


class UpsertError(ImportFailure):
    def __init__(self, batch_number: int, total_batches: int, cause: Exception):
        super().__init__(f"upsert failed on batch {batch_number}/{total_batches}: {cause}")
        self.batch_number = batch_number
        self.total_batches = total_batches
        self.cause = cause


@dataclass
class ImportReport:
    cache_path: Path
    files_read: int = 0
    files_missing: int = 0
    raw_count: int = 0
    unique_count: int = 0
    skipped: int = 0
    skip_reasons: list[str] = field(default_factory=list)
    normalized: int = 0
    seeded: bool = False
    batches: int = 0
    upserted: int = 0


def _count(stage: str, value: int) -> None:
    inc(labelled("import_records_total", stage=stage), value)


def write_cache(activities: list[CanonicalActivity], path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    rows = [a.as_row() for a in activities]
    path.write_text(json.dumps(rows, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")


def upsert_in_batches(store: ActivityStore, activities: list[CanonicalActivity], batch_size: int = 500) -> tuple[int, int]:
    """Upsert sequentially; the first failing batch aborts the rest.

    Batches already sent stay committed. Returns (batches, rows) upserted.
    """
    if batch_size <= 0:
        raise ValueError("batch_size must be positive")
    total = len(activities)
    total_batches = (total + batch_size - 1) // batch_size
    upserted = 0
    for index, start in enumerate(range(0, total, batch_size), start=1):
        batch = [a.as_row() for a in activities[start:start + batch_size]]
        started = time.perf_counter()
        try:
            store.upsert(ACTIVITIES_TABLE, batch, on_conflict="id")
        except StoreError as exc:
            inc("import_upsert_failures_total")
            logger.error("Upsert failed on batch %d/%d: %s", index, total_batches, exc)
            raise UpsertError(index, total_batches, exc) from exc
        observe("import_upsert_duration_seconds", time.perf_counter() - started)
        inc("import_upsert_batches_total")
        upserted += len(batch)
        logger.info("Upserted %d/%d", upserted, total)
    return total_batches, upserted


def run_import(
    config: ImportConfig,
    store: Optional[ActivityStore] = None,
    spot_check_id: Optional[int] = None,
) -> ImportReport:
    report = ImportReport(cache_path=config.cache_path)

    raw, report.files_read, report.files_missing = read_exports(config.source_files)
    report.raw_count = len(raw)
    _count("raw", report.raw_count)
    logger.info("Total raw activities: %d", report.raw_count)

    unique = dedupe_activities(raw)
    report.unique_count = len(unique)
    _count("unique", report.unique_count)
    logger.info("After deduplication: %d", report.unique_count)

    normalized: list[CanonicalActivity] = []
    for record in unique:
        result = normalize_activity(record)
        if result.skipped:
            report.skipped += 1
            report.skip_reasons.append(result.skip_reason)
            logger.warning("SKIP: %s", result.skip_reason)
            continue
        normalized.append(result.activity)
    if report.skipped:
        logger.warning("Skipped %d activities without a usable timestamp or id.", report.skipped)
    _count("skipped", report.skipped)

    activities = sort_newest_first(normalized)
    report.normalized = len(activities)
    _count("normalized", report.normalized)
    logger.info("Normalized: %d activities", report.normalized)

    write_cache(activities, config.cache_path)
    logger.info("Wrote: %s", config.cache_path)
    if spot_check_id is not None:
        spot_check(config.cache_path, spot_check_id)

    if store is None:
        if not config.store_configured:
            logger.info("No SUPABASE_URL / SUPABASE_SERVICE_KEY set; skipping DB seed.")
            return report
        store = SupabaseStore(config.store_url, config.store_key, timeout=STORE_TIMEOUT_SEC)

    logger.info("Seeding activities table...")
    report.batches, report.upserted = upsert_in_batches(store, activities, config.batch_size)
    report.seeded = True
    _count("upserted", report.upserted)
    return report


def spot_check(cache_path: Path, activity_id: int) -> None:
    rows = json.loads(cache_path.read_text(encoding="utf-8"))
    match = next((row for row in rows if row.get("id") == activity_id), None)
    if match is None:
        logger.warning("Spot-check activity (id: %s) not found.", activity_id)
        return
    logger.info(
        "Spot-check id=%s date=%s distance_m=%s duration_sec=%s",
        activity_id,
        match["date"],
        match["distance_m"],
        match["duration_sec"],
    )


def print_summary(report: ImportReport) -> None:
    print(f"Files read: {report.files_read} (missing: {report.files_missing})")
    print(f"Raw activities: {report.raw_count}")
    print(f"After deduplication: {report.unique_count}")
    print(f"Skipped: {report.skipped}")
    print(f"Normalized: {report.normalized}")
    print(f"Cache: {report.cache_path}")
    if report.seeded:
        print(f"Upserted: {report.upserted} activities in {report.batches} batches")
    else:
        print("DB seed skipped (no Supabase credentials configured).")


def positive_int(text: str) -> int:
    try:
        value = int(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not an integer: {text!r}") from None
    if value <= 0:
        raise argparse.ArgumentTypeError(f"must be positive, got {value}")
    return value


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Import the Garmin export into the activity log.")
    p.add_argument("--source", action="append", type=Path, help="Export file; repeat to read several (in order).")
    p.add_argument("--cache", type=Path, help="Where to write the JSON cache.")
    p.add_argument("--batch-size", type=positive_int, help="Rows per upsert request.")
    p.add_argument("--local-only", action="store_true", help="Write the cache but do not seed the store.")
    p.add_argument("--spot-check", type=int, metavar="ID", help="Log the normalized record for this activityId.")
    return p.parse_args(argv)


def build_config(args: argparse.Namespace) -> ImportConfig:
    config = load_import_config()
    if args.source:
        config.source_files = list(args.source)
    if args.cache:
        config.cache_path = args.cache
    if args.batch_size is not None:
        config.batch_size = args.batch_size
    if args.local_only:
        config.store_url = None
        config.store_key = None
    return config


def main(argv: list[str] | None = None) -> int:
    setup_logging()
    init_error_reporting("garmin-import")
    args = parse_args(argv)
    config = build_config(args)
    with import_run_context(new_run_id()):
        try:
            report = run_import(config, spot_check_id=args.spot_check)
        except (ImportFailure, StoreError, OSError) as exc:
            logger.error("Import aborted: %s", exc)
            report_exception(exc, stage="garmin-import")
            print(f"Fatal error: {exc}", file=sys.stderr)
            return 1
    print_summary(report)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
