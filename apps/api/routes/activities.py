import datetime
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from packages.store import SupabaseStore
from ..deps import get_store
from ..schemas import ActivitiesResponse, ActivityDetail, ActivitySummary
from ..utils import (
    DETAIL_COLUMNS,
    LIST_COLUMNS,
    build_date_filter,
    build_order,
    build_search_filter,
    summarize,
)


router = APIRouter()

logger = logging.getLogger("activitylog.api")

TABLE = "activities"


def _query_activities(
    store: SupabaseStore,
    search: Optional[str],
    sort_by: Optional[str],
    sort_dir: Optional[str],
    date_from: Optional[datetime.date],
    date_to: Optional[datetime.date],
):
    filters = build_search_filter(search) + build_date_filter(date_from, date_to)
    return store.select(TABLE, LIST_COLUMNS, filters=filters, order=build_order(sort_by, sort_dir))


@router.get("/activities", response_model=ActivitiesResponse)
def activities(
    search: Optional[str] = None,
    sort_by: Optional[str] = Query(None, alias="sortBy"),
    sort_dir: Optional[str] = Query(None, alias="sortDir"),
    date_from: Optional[datetime.date] = Query(None, alias="dateFrom"),
    date_to: Optional[datetime.date] = Query(None, alias="dateTo"),
    store: SupabaseStore = Depends(get_store),
):
    rows = _query_activities(store, search, sort_by, sort_dir, date_from, date_to)
    return {"activities": rows}


@router.get("/activities/summary", response_model=ActivitySummary)
def activities_summary(
    search: Optional[str] = None,
    date_from: Optional[datetime.date] = Query(None, alias="dateFrom"),
    date_to: Optional[datetime.date] = Query(None, alias="dateTo"),
    store: SupabaseStore = Depends(get_store),
):
    rows = _query_activities(store, search, None, None, date_from, date_to)
    return summarize(rows)


@router.get("/activities/{activity_id}", response_model=ActivityDetail)
def activity_detail(activity_id: int, store: SupabaseStore = Depends(get_store)):
    rows = store.select(TABLE, DETAIL_COLUMNS, filters=[("id", f"eq.{activity_id}")], limit=1)
    if not rows:
        raise HTTPException(status_code=404, detail="Activity not found")
    return rows[0]
