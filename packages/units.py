"""Unit conversions for Garmin export values.

Every helper takes a raw vendor value and returns the converted value or
``None``. Missing, non-numeric, NaN and infinite inputs all map to ``None``;
nothing here raises or substitutes zero.

Rounding is half-up (``floor(x + 0.5)``) to match the values the dashboard
has always shown, not Python's round-half-even.
"""
from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Any, Optional

CM_PER_M = 100
MS_PER_SEC = 1000
# 1 cm/ms = 0.01 m / 0.001 s = 10 m/s = 36 km/h
KMH_PER_CM_PER_MS = 36
# activities.id is a Postgres bigint.
MAX_ACTIVITY_ID = 2**63 - 1


def as_number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
        try:
            value = float(value)
        except ValueError:
            return None
    if not isinstance(value, (int, float)):
        return None
    try:
        value = float(value)
    except OverflowError:
        return None
    if not math.isfinite(value):
        return None
    return value


def round_half_up(value: float) -> Optional[int]:
    shifted = value + 0.5
    if not math.isfinite(shifted):
        return None
    return math.floor(shifted)


def to_activity_id(value: Any) -> Optional[int]:
    """Integral activityId as an int, or None.

    ``42``, ``42.0`` and ``"42"`` are the same activity.
    """
    if isinstance(value, int) and not isinstance(value, bool):
        number = value
    else:
        v = as_number(value)
        if v is None or not v.is_integer():
            return None
        number = int(v)
    if not -MAX_ACTIVITY_ID <= number <= MAX_ACTIVITY_ID:
        return None
    return number


def round_to(value: Any, decimals: int = 1) -> Optional[float]:
    v = as_number(value)
    if v is None:
        return None
    factor = 10 ** decimals
    rounded = round_half_up(v * factor)
    return None if rounded is None else rounded / factor


def to_integer_or_absent(value: Any) -> Optional[int]:
    v = as_number(value)
    if v is None:
        return None
    return round_half_up(v)


def centimeters_to_meters(value: Any) -> Optional[float]:
    v = as_number(value)
    if v is None:
        return None
    rounded = round_half_up(v)
    return None if rounded is None else rounded / CM_PER_M


def milliseconds_to_seconds(value: Any) -> Optional[int]:
    v = as_number(value)
    if v is None:
        return None
    return round_half_up(v / MS_PER_SEC)


def speed_cm_per_ms_to_kmh(value: Any) -> Optional[float]:
    # Whole km/h on purpose; round_to() is not used here.
    v = as_number(value)
    if v is None:
        return None
    rounded = round_half_up(v * KMH_PER_CM_PER_MS)
    return None if rounded is None else float(rounded)


def epoch_ms_to_calendar_date(value: Any) -> Optional[str]:
    v = as_number(value)
    if v is None:
        return None
    try:
        dt = datetime.fromtimestamp(v / MS_PER_SEC, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None
    return dt.date().isoformat()
