from __future__ import annotations

from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.deps import optional_schedule_store
from src.db.database import get_db
from src.donations.invitations import InvitationRequest, create_invitations
from src.scheduler.store import ScheduleStore

router = APIRouter(prefix="/api", tags=["invitations"])


@router.post("/invitations", status_code=201)
async def send_invitations(
    body: InvitationRequest,
    db: AsyncSession = Depends(get_db),
    store: Optional[ScheduleStore] = Depends(optional_schedule_store),
):
    result = await db.run_sync(lambda session: create_invitations(session, body, store=store))
    return {"success": True, "message": "Invitations sent successfully", "data": asdict(result)}
