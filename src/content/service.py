from __future__ import annotations

from collections import OrderedDict
from datetime import date, datetime, time
from typing import Any, Dict, List, Optional, Tuple

from loguru import logger
from sqlalchemy import func
from sqlalchemy.orm import Session

from src.content.schemas import ContentUpsertRequest, NotificationStrategy
from src.content.strategy import get_strategy_store
from src.errors import NotFoundError
from src.models import (
    Campaign,
    CampaignStatus,
    Content,
    DonationTransaction,
    InvitationHistory,
    PaymentStatus,
)
from src.scheduler.cron import build_cron_expression
from src.scheduler.reconciler import ScheduleReconciler
from src.scheduler.store import ScheduleStore


def get_content(session: Session) -> Content:
    content = session.query(Content).order_by(Content.id).first()
    if content is None:
        raise NotFoundError("Content not found")
    return content


def upsert_content(
    session: Session,
    payload: ContentUpsertRequest,
    store: Optional[ScheduleStore] = None,
) -> Tuple[Content, bool]:
    """Create or update the singleton content row.

    A supplied notification strategy replaces the stored one and the recurring
    notification jobs are reconciled against it. Returns (content, is_new).
    """
    strategy = payload.notification_strategy
    if strategy is not None and strategy.progress_alert:
        # Fail before anything is written if the schedule cannot be expressed
        build_cron_expression(strategy.progress_alert_schedule)

    values = payload.model_dump(exclude_unset=True, exclude={"notification_strategy"})
    content = session.query(Content).order_by(Content.id).first()
    is_new = content is None
    if is_new:
        content = Content(**values)
        session.add(content)
    else:
        for key, value in values.items():
            setattr(content, key, value)
    if strategy is not None:
        content.notification_strategy = strategy.model_dump(mode="json")
    session.commit()
    session.refresh(content)

    if strategy is not None:
        get_strategy_store().refresh(strategy)
        if store is None:
            logger.warning("Job store unavailable, notification jobs not reconciled")
        else:
            ScheduleReconciler(store).reconcile(strategy)

    logger.info(f"Content {'created' if is_new else 'updated'} (id={content.id})")
    return content, is_new


def content_strategy(content: Content) -> Optional[NotificationStrategy]:
    if not content.notification_strategy:
        return None
    return NotificationStrategy.model_validate(content.notification_strategy)


def _date_bounds(
    start_date: Optional[date], end_date: Optional[date]
) -> Tuple[Optional[datetime], Optional[datetime]]:
    start = datetime.combine(start_date, time.min) if start_date else None
    end = datetime.combine(end_date, time.max) if end_date else None
    return start, end


def _within(query, column, start: Optional[datetime], end: Optional[datetime]):
    if start is not None:
        query = query.filter(column >= start)
    if end is not None:
        query = query.filter(column <= end)
    return query


def get_time_range_stats(
    session: Session, start_date: Optional[date] = None, end_date: Optional[date] = None
) -> Dict[str, Any]:
    start, end = _date_bounds(start_date, end_date)

    total_raised = _within(
        session.query(func.coalesce(func.sum(DonationTransaction.amount_paid), 0)),
        DonationTransaction.created_at,
        start,
        end,
    ).scalar()
    total_donors = _within(
        session.query(func.count(func.distinct(DonationTransaction.donor_id))),
        DonationTransaction.created_at,
        start,
        end,
    ).scalar()
    active_campaigns = _within(
        session.query(func.count(Campaign.id)).filter(
            Campaign.status == CampaignStatus.active,
            Campaign.is_deleted == False,  # noqa: E712
        ),
        Campaign.created_at,
        start,
        end,
    ).scalar()
    total_invitees = _within(
        session.query(func.count(InvitationHistory.id)),
        InvitationHistory.created_at,
        start,
        end,
    ).scalar()

    return {
        "total_funds_raised": float(total_raised or 0),
        "total_donors": total_donors or 0,
        "active_campaigns": active_campaigns or 0,
        "total_invitees": total_invitees or 0,
    }


def get_donation_growth(
    session: Session, start_date: Optional[date] = None, end_date: Optional[date] = None
) -> List[Dict[str, Any]]:
    """Monthly donation totals with a running total, completed payments only."""
    start, end = _date_bounds(start_date, end_date)
    rows = (
        _within(
            session.query(DonationTransaction.created_at, DonationTransaction.amount_paid).filter(
                DonationTransaction.payment_status == PaymentStatus.completed
            ),
            DonationTransaction.created_at,
            start,
            end,
        )
        .order_by(DonationTransaction.created_at.asc())
        .all()
    )

    months: "OrderedDict[str, Dict[str, Any]]" = OrderedDict()
    for created_at, amount in rows:
        bucket = months.setdefault(
            created_at.strftime("%Y-%m"), {"amount": 0.0, "count": 0}
        )
        bucket["amount"] += amount
        bucket["count"] += 1

    growth = []
    running_total = 0.0
    for month, bucket in months.items():
        running_total += bucket["amount"]
        growth.append(
            {
                "month": month,
                "monthly_amount": bucket["amount"],
                "total_amount": running_total,
                "transaction_count": bucket["count"],
            }
        )
    return growth
