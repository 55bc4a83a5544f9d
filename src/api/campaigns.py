from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field, field_validator, model_validator
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.database import get_db
from src.errors import NotFoundError
from src.models import Campaign, CampaignStatus
from src.models.base import to_naive_utc, utcnow
from src.notifications.formatter import campaign_progress

router = APIRouter(prefix="/api", tags=["campaigns"])


class CampaignCreateRequest(BaseModel):
    title: str = Field(min_length=3)
    description: Optional[str] = None
    goal_amount: float = Field(ge=0)
    start_date: datetime
    end_date: datetime
    created_by: int
    organization_name: Optional[str] = None
    contact_email: Optional[str] = None

    @field_validator("start_date", "end_date")
    @classmethod
    def naive_utc(cls, value: datetime) -> datetime:
        return to_naive_utc(value)

    @model_validator(mode="after")
    def end_after_start(self) -> "CampaignCreateRequest":
        if self.end_date <= self.start_date:
            raise ValueError("End date must be after start date")
        return self


class CampaignUpdateRequest(BaseModel):
    title: Optional[str] = Field(default=None, min_length=3)
    description: Optional[str] = None
    goal_amount: Optional[float] = Field(default=None, ge=0)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    status: Optional[CampaignStatus] = None
    organization_name: Optional[str] = None
    contact_email: Optional[str] = None

    @field_validator("start_date", "end_date")
    @classmethod
    def naive_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return to_naive_utc(value) if value is not None else None

    @model_validator(mode="after")
    def end_after_start(self) -> "CampaignUpdateRequest":
        if self.start_date and self.end_date and self.end_date <= self.start_date:
            raise ValueError("End date must be after start date")
        return self


class CampaignResponse(BaseModel):
    id: int
    title: str
    description: Optional[str]
    status: CampaignStatus
    current_amount: float
    goal_amount: float
    progress: Optional[float]
    start_date: Optional[datetime]
    end_date: datetime
    created_by: int
    organization_name: Optional[str]


def _to_response(campaign: Campaign) -> CampaignResponse:
    progress = campaign_progress(campaign)
    return CampaignResponse(
        id=campaign.id,
        title=campaign.title,
        description=campaign.description,
        status=campaign.status,
        current_amount=campaign.current_amount,
        goal_amount=campaign.goal_amount,
        progress=round(progress, 1) if progress is not None else None,
        start_date=campaign.start_date,
        end_date=campaign.end_date,
        created_by=campaign.created_by,
        organization_name=campaign.organization_name,
    )


async def _get_campaign(db: AsyncSession, campaign_id: int) -> Campaign:
    campaign = await db.get(Campaign, campaign_id)
    if campaign is None:
        raise NotFoundError("Campaign not found.")
    return campaign


@router.get("/campaigns")
async def list_campaigns(
    status: Optional[CampaignStatus] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    stmt = (
        select(Campaign)
        .where(Campaign.is_deleted == False)  # noqa: E712
        .order_by(Campaign.end_date.asc())
    )
    if status:
        stmt = stmt.where(Campaign.status == status)
    result = await db.execute(stmt)
    return {"items": [_to_response(c) for c in result.scalars().all()]}


@router.post("/campaigns", status_code=201)
async def create_campaign(body: CampaignCreateRequest, db: AsyncSession = Depends(get_db)):
    campaign = Campaign(**body.model_dump(), status=CampaignStatus.active, current_amount=0)
    db.add(campaign)
    await db.commit()
    await db.refresh(campaign)
    return _to_response(campaign)


@router.get("/campaigns/{campaign_id}")
async def get_campaign(campaign_id: int, db: AsyncSession = Depends(get_db)):
    return _to_response(await _get_campaign(db, campaign_id))


@router.patch("/campaigns/{campaign_id}")
async def update_campaign(
    campaign_id: int, body: CampaignUpdateRequest, db: AsyncSession = Depends(get_db)
):
    campaign = await _get_campaign(db, campaign_id)
    for key, value in body.model_dump(exclude_unset=True).items():
        setattr(campaign, key, value)
    await db.commit()
    await db.refresh(campaign)
    return _to_response(campaign)


@router.delete("/campaigns/{campaign_id}", status_code=204)
async def delete_campaign(campaign_id: int, db: AsyncSession = Depends(get_db)):
    campaign = await _get_campaign(db, campaign_id)
    campaign.is_deleted = True
    campaign.deleted_at = utcnow()
    await db.commit()


@router.delete("/campaigns/{campaign_id}/hard", status_code=204)
async def hard_delete_campaign(campaign_id: int, db: AsyncSession = Depends(get_db)):
    campaign = await _get_campaign(db, campaign_id)
    await db.delete(campaign)
    await db.commit()
