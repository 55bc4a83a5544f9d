from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.deps import optional_schedule_store
from src.content.schemas import ContentResponse, ContentUpsertRequest
from src.content.service import (
    content_strategy,
    get_content,
    get_donation_growth,
    get_time_range_stats,
    upsert_content,
)
from src.db.database import get_db
from src.models import Content
from src.scheduler.store import ScheduleStore

router = APIRouter(prefix="/api/content", tags=["content"])


def _to_response(content: Content) -> dict:
    return ContentResponse(
        id=content.id,
        app_name=content.app_name,
        organization_name=content.organization_name,
        our_mission=content.our_mission,
        notification_strategy=content_strategy(content),
    ).model_dump(mode="json")


@router.get("")
async def read_content(db: AsyncSession = Depends(get_db)):
    data = await db.run_sync(lambda session: _to_response(get_content(session)))
    return {"success": True, "message": "Content retrieved successfully", "data": data}


@router.put("")
async def save_content(
    body: ContentUpsertRequest,
    db: AsyncSession = Depends(get_db),
    store: Optional[ScheduleStore] = Depends(optional_schedule_store),
):
    def _upsert(session):
        content, is_new = upsert_content(session, body, store)
        return _to_response(content), is_new

    data, is_new = await db.run_sync(_upsert)
    return JSONResponse(
        status_code=201 if is_new else 200,
        content={
            "success": True,
            "message": "Content created successfully" if is_new else "Content updated successfully",
            "data": data,
        },
    )


@router.get("/stats")
async def time_range_stats(
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    data = await db.run_sync(lambda session: get_time_range_stats(session, start_date, end_date))
    return {"success": True, "message": "Time range statistics retrieved successfully", "data": data}


@router.get("/donation-growth")
async def donation_growth(
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    data = await db.run_sync(lambda session: get_donation_growth(session, start_date, end_date))
    return {"success": True, "message": "Donation growth data retrieved successfully", "data": data}
