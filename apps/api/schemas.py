from __future__ import annotations

import datetime as dt
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field


class ErrorDetail(BaseModel):
    code: str
    message: str
    request_id: Optional[str] = None
    details: Optional[Dict[str, Any]] = None


class ErrorResponse(BaseModel):
    error: ErrorDetail


class HealthResponse(BaseModel):
    status: str
    store: str
    last_import: Optional[str] = None


class Activity(BaseModel):
    id: int
    date: dt.date
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
    location_name: Optional[str] = None
    description: Optional[str] = None


class ActivityDetail(Activity):
    start_lat: Optional[float] = None
    start_lon: Optional[float] = None


class ActivitiesResponse(BaseModel):
    activities: List[Activity] = Field(default_factory=list)


class ActivitySummary(BaseModel):
    count: int = 0
    distance_m: float = 0.0
    duration_sec: int = 0
    elevation_gain_m: float = 0.0
    calories: int = 0
    avg_hr: Optional[float] = None
    avg_power: Optional[float] = None
    first_date: Optional[dt.date] = None
    last_date: Optional[dt.date] = None


class DiaryEntryCreate(BaseModel):
    date: dt.date
    content: str = Field(min_length=1)


class DiaryEntry(BaseModel):
    id: int
    date: dt.date
    content: Optional[str] = None
    created_at: Optional[str] = None


class DiaryResponse(BaseModel):
    entries: List[DiaryEntry] = Field(default_factory=list)
