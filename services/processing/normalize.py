"""Map raw Garmin activity records onto the canonical `activities` row."""
from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from pathlib import Path
import sys
from typing import Any, Dict, Optional

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
from packages.units import (
    as_number,
    centimeters_to_meters,
    epoch_ms_to_calendar_date,
    milliseconds_to_seconds,
    round_to,
    speed_cm_per_ms_to_kmh,
    to_activity_id,
    to_integer_or_absent,
)


@dataclass(frozen=True)
class CanonicalActivity:
    id: int
    date: str
    name: Optional[str] = None
    activity_type: Optional[str] = None
    duration_sec: Optional[int] = None
    distance_m: Optional[float] = None
    elevation_gain_m: Optional[float] = None
    avg_speed_kmh: Optional[float] = None
    avg_hr: Optional[int] = None
    max_hr: Optional[int] = None
    calories: Optional[int] = None
    avg_power: Optional[int] = None
    tss: Optional[float] = None
    avg_temperature: Optional[float] = None
    min_temperature: Optional[float] = None
    max_temperature: Optional[float] = None
    start_lat: Optional[float] = None
    start_lon: Optional[float] = None
    location_name: Optional[str] = None
    description: Optional[str] = None

    def as_row(self) -> Dict[str, Any]:
        return asdict(self)


ACTIVITY_COLUMNS = [f.name for f in fields(CanonicalActivity)]


@dataclass(frozen=True)
class NormalizeResult:
    activity: Optional[CanonicalActivity] = None
    skip_reason: Optional[str] = None

    @property
    def skipped(self) -> bool:
        return self.activity is None


def _text(value: Any) -> Optional[str]:
    if not value:
        return None
    return value if isinstance(value, str) else str(value)


def _coordinate(value: Any) -> Optional[float]:
    return as_number(value)


def normalize_activity(raw: Dict[str, Any]) -> NormalizeResult:
    raw_id = raw.get("activityId")
    date = epoch_ms_to_calendar_date(raw.get("beginTimestamp"))
    if date is None:
        return NormalizeResult(skip_reason=f"activityId={raw_id} missing beginTimestamp")
    activity_id = to_activity_id(raw_id)
    if activity_id is None:
        return NormalizeResult(skip_reason=f"activityId={raw_id!r} missing activityId")

    activity = CanonicalActivity(
        id=activity_id,
        date=date,
        name=_text(raw.get("name")),
        activity_type=_text(raw.get("activityType")),
        duration_sec=milliseconds_to_seconds(raw.get("duration")),
        distance_m=centimeters_to_meters(raw.get("distance")),
        elevation_gain_m=centimeters_to_meters(raw.get("elevationGain")),
        avg_speed_kmh=speed_cm_per_ms_to_kmh(raw.get("avgSpeed")),
        avg_hr=to_integer_or_absent(raw.get("avgHr")),
        max_hr=to_integer_or_absent(raw.get("maxHr")),
        calories=to_integer_or_absent(raw.get("calories")),
        avg_power=to_integer_or_absent(raw.get("avgPower")),
        tss=round_to(raw.get("trainingStressScore"), 1),
        avg_temperature=round_to(raw.get("avgTemperature"), 1),
        min_temperature=round_to(raw.get("minTemperature"), 1),
        max_temperature=round_to(raw.get("maxTemperature"), 1),
        start_lat=_coordinate(raw.get("startLatitude")),
        start_lon=_coordinate(raw.get("startLongitude")),
        location_name=_text(raw.get("locationName")),
        description=_text(raw.get("description")),
    )
    return NormalizeResult(activity=activity)


def sort_newest_first(activities: list[CanonicalActivity]) -> list[CanonicalActivity]:
    # sorted() is stable with reverse=True, so same-day records keep input order.
    return sorted(activities, key=lambda a: a.date, reverse=True)
