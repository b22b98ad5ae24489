import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

import packages.config as config
from packages.store import quote_filter_value

SORTABLE_COLUMNS = (
    "date",
    "distance_m",
    "elevation_gain_m",
    "duration_sec",
    "avg_hr",
    "calories",
    "avg_power",
    "tss",
    "avg_temperature",
    "min_temperature",
    "max_temperature",
)
SEARCH_COLUMNS = ("name", "location_name", "activity_type", "description")
LIST_COLUMNS = (
    "id",
    "date",
    "name",
    "activity_type",
    "duration_sec",
    "distance_m",
    "elevation_gain_m",
    "avg_speed_kmh",
    "avg_hr",
    "max_hr",
    "calories",
    "avg_power",
    "tss",
    "avg_temperature",
    "min_temperature",
    "max_temperature",
    "location_name",
    "description",
)
DETAIL_COLUMNS = LIST_COLUMNS + ("start_lat", "start_lon")


def build_order(sort_by: Optional[str], sort_dir: Optional[str]) -> str:
    column = sort_by if sort_by in SORTABLE_COLUMNS else "date"
    direction = "asc" if sort_dir == "asc" else "desc"
    return f"{column}.{direction}"


def build_search_filter(search: Optional[str]) -> List[Tuple[str, str]]:
    term = (search or "").strip()
    if not term:
        return []
    pattern = quote_filter_value(f"*{term}*")
    clauses = ",".join(f"{col}.ilike.{pattern}" for col in SEARCH_COLUMNS)
    return [("or", f"({clauses})")]


def build_date_filter(
    start: Optional[datetime.date], end: Optional[datetime.date]
) -> List[Tuple[str, str]]:
    params: List[Tuple[str, str]] = []
    if start:
        params.append(("date", f"gte.{start.isoformat()}"))
    if end:
        params.append(("date", f"lte.{end.isoformat()}"))
    return params


def _mean(values: List[float]) -> Optional[float]:
    if not values:
        return None
    return round(sum(values) / len(values), 1)


def summarize(rows: Iterable[Dict[str, Any]]) -> Dict[str, Any]:
    rows = list(rows)
    dates = sorted(str(r["date"]) for r in rows if r.get("date"))
    return {
        "count": len(rows),
        "distance_m": round(sum(r.get("distance_m") or 0 for r in rows), 2),
        "duration_sec": sum(r.get("duration_sec") or 0 for r in rows),
        "elevation_gain_m": round(sum(r.get("elevation_gain_m") or 0 for r in rows), 2),
        "calories": sum(r.get("calories") or 0 for r in rows),
        "avg_hr": _mean([r["avg_hr"] for r in rows if r.get("avg_hr") is not None]),
        "avg_power": _mean([r["avg_power"] for r in rows if r.get("avg_power") is not None]),
        "first_date": dates[0] if dates else None,
        "last_date": dates[-1] if dates else None,
    }


def get_last_import() -> Optional[str]:
    if not config.CACHE_PATH.exists():
        return None
    mtime = config.CACHE_PATH.stat().st_mtime
    return datetime.datetime.fromtimestamp(mtime, tz=datetime.timezone.utc).isoformat()
