import datetime
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from packages.store import SupabaseStore
from ..deps import get_store
from ..schemas import DiaryEntry, DiaryEntryCreate, DiaryResponse
from ..utils import build_date_filter


router = APIRouter()

logger = logging.getLogger("activitylog.api")

TABLE = "diary_entries"


@router.get("/diary", response_model=DiaryResponse)
def diary(
    date_from: Optional[datetime.date] = Query(None, alias="dateFrom"),
    date_to: Optional[datetime.date] = Query(None, alias="dateTo"),
    store: SupabaseStore = Depends(get_store),
):
    rows = store.select(
        TABLE,
        "id,date,content,created_at",
        filters=build_date_filter(date_from, date_to),
        order="date.desc",
    )
    return {"entries": rows}


@router.post("/diary", response_model=DiaryEntry, status_code=status.HTTP_201_CREATED)
def create_diary_entry(entry: DiaryEntryCreate, store: SupabaseStore = Depends(get_store)):
    created = store.insert(TABLE, [{"date": entry.date.isoformat(), "content": entry.content}])
    if not created:
        raise HTTPException(status_code=502, detail="Store did not return the created entry")
    logger.info("diary_entry_created date=%s", entry.date.isoformat())
    return created[0]
