"""Read Garmin Connect `*_summarizedActivities.json` export files."""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Iterable, Iterator

from packages.units import to_activity_id

logger = logging.getLogger("activitylog.import")

EXPORT_KEY = "summarizedActivitiesExport"

RawActivity = dict[str, Any]


class ImportFailure(Exception):
    """Fatal problem that aborts an import run."""


class ExportFormatError(ImportFailure):
    def __init__(self, path: Path, reason: str):
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason


def extract_activities(payload: Any, path: Path) -> list[RawActivity]:
    # Garmin ships either {"summarizedActivitiesExport": [...]} or the same
    # object wrapped in a one-element list.
    root = payload
    if isinstance(payload, list):
        if not payload:
            return []
        root = payload[0]
    if not isinstance(root, dict):
        raise ExportFormatError(path, f"expected an object at top level, got {type(root).__name__}")
    activities = root.get(EXPORT_KEY) or []
    if not isinstance(activities, list):
        raise ExportFormatError(path, f"{EXPORT_KEY} is not a list")
    return [a for a in activities if isinstance(a, dict)]


def read_export_file(path: Path) -> list[RawActivity] | None:
    """Return the file's activities, or None when the file does not exist."""
    if not path.exists():
        logger.warning("File not found, skipping: %s", path)
        return None
    logger.info("Reading %s", path.name)
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except UnicodeDecodeError as exc:
        raise ExportFormatError(path, f"not UTF-8 text ({exc})") from exc
    except json.JSONDecodeError as exc:
        raise ExportFormatError(path, f"malformed JSON ({exc})") from exc
    activities = extract_activities(payload, path)
    logger.info("  -> %d activities", len(activities))
    return activities


def read_exports(paths: Iterable[Path]) -> tuple[list[RawActivity], int, int]:
    """Merge all files in order. Returns (records, files_read, files_missing)."""
    merged: list[RawActivity] = []
    files_read = 0
    files_missing = 0
    for path in paths:
        activities = read_export_file(Path(path))
        if activities is None:
            files_missing += 1
            continue
        files_read += 1
        merged.extend(activities)
    return merged, files_read, files_missing


def iter_unique(records: Iterable[RawActivity]) -> Iterator[RawActivity]:
    seen: set[int] = set()
    for raw in records:
        # Same coercion as the normalizer, so 42 and "42" collide here.
        activity_id = to_activity_id(raw.get("activityId"))
        if activity_id is None:
            # Nothing usable to key on; the normalizer skips these with a reason.
            yield raw
            continue
        if activity_id in seen:
            continue
        seen.add(activity_id)
        yield raw


def dedupe_activities(records: Iterable[RawActivity]) -> list[RawActivity]:
    """Keep the first record seen for each activityId, in input order."""
    return list(iter_unique(records))
