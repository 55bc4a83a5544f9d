"""Notification job handlers.

Each handler takes the job payload, opens its own session, notifies the
affected campaign owners and returns how many it handled. Handlers may run more
than once for the same job (retries), so every side effect is safe to repeat.
"""
from __future__ import annotations

from datetime import timedelta
from typing import Any, Callable, Dict

from loguru import logger
from sqlalchemy import update

from src.content.strategy import get_strategy_store
from src.db.database import get_sync_session
from src.models import Campaign, CampaignStatus
from src.models.base import utcnow
from src.notifications.formatter import (
    LOW_PROGRESS_THRESHOLD,
    campaign_progress,
    format_campaign_expired,
    format_low_progress_warning,
    format_milestone_alert,
    format_progress_alert,
)
from src.notifications.sender import NotificationSender
from src.scheduler.store import JobName

LOW_PROGRESS_WINDOW = timedelta(days=7)
DEFAULT_PROGRESS_MESSAGE = "Your campaign is at {progress}% of its goal"


def send_progress_alert(payload: Dict[str, Any]) -> int:
    """Progress update for every running campaign, optionally scoped by campaign or owner."""
    message = payload.get("message") or DEFAULT_PROGRESS_MESSAGE
    campaign_id = payload.get("campaign_id")
    organization_ids = payload.get("organization_ids") or []

    with get_sync_session() as session:
        query = session.query(Campaign).filter(
            Campaign.status == CampaignStatus.active,
            Campaign.end_date > utcnow(),
            Campaign.is_deleted == False,  # noqa: E712
        )
        if campaign_id:
            query = query.filter(Campaign.id == campaign_id)
        if organization_ids:
            query = query.filter(Campaign.created_by.in_(organization_ids))
        campaigns = query.all()

        sender = NotificationSender(session)
        sent = 0
        for campaign in campaigns:
            progress = campaign_progress(campaign)
            if progress is None:
                logger.warning(f"Campaign {campaign.id} has no positive goal, skipping progress alert")
                continue
            sender.send(campaign.created_by, **format_progress_alert(campaign, message, progress))
            sent += 1

    logger.info(f"Sent {sent} progress alerts")
    return sent


def check_low_progress(payload: Dict[str, Any]) -> int:
    """Warn owners of campaigns ending within a week that are below 25%."""
    now = utcnow()

    with get_sync_session() as session:
        campaigns = (
            session.query(Campaign)
            .filter(
                Campaign.status == CampaignStatus.active,
                Campaign.end_date >= now,
                Campaign.end_date <= now + LOW_PROGRESS_WINDOW,
                Campaign.is_deleted == False,  # noqa: E712
            )
            .all()
        )

        sender = NotificationSender(session)
        warned = 0
        for campaign in campaigns:
            progress = campaign_progress(campaign)
            if progress is None:
                logger.warning(f"Campaign {campaign.id} has no positive goal, skipping low progress check")
                continue
            if progress < LOW_PROGRESS_THRESHOLD:
                sender.send(campaign.created_by, **format_low_progress_warning(campaign, progress))
                warned += 1

    logger.info(f"Sent {warned} low progress warnings")
    return warned


def check_expired_campaigns(payload: Dict[str, Any]) -> int:
    """Mark campaigns past their end date as expired and notify their owners."""
    with get_sync_session() as session:
        campaigns = (
            session.query(Campaign)
            .filter(
                Campaign.status == CampaignStatus.active,
                Campaign.end_date < utcnow(),
                Campaign.is_deleted == False,  # noqa: E712
            )
            .all()
        )

        sender = NotificationSender(session)
        expired = 0
        for campaign in campaigns:
            # Conditional update: a concurrent or retried run expires each campaign once
            result = session.execute(
                update(Campaign)
                .where(Campaign.id == campaign.id, Campaign.status == CampaignStatus.active)
                .values(status=CampaignStatus.expired)
            )
            session.commit()
            if result.rowcount == 0:
                continue
            sender.send(campaign.created_by, **format_campaign_expired(campaign))
            expired += 1

    logger.info(f"{expired} campaigns expired")
    return expired


def send_milestone_alert(payload: Dict[str, Any]) -> int:
    campaign_id = payload.get("campaign_id")
    milestone = payload.get("milestone")

    with get_sync_session() as session:
        campaign = session.get(Campaign, campaign_id) if campaign_id else None
        if campaign is None:
            logger.warning(f"Campaign {campaign_id} not found, skipping milestone alert")
            return 0

        # Re-read: the API may have changed the template since this worker started
        strategy = get_strategy_store().load(session)
        template = strategy.milestone_alert_message if strategy else None
        NotificationSender(session).send(
            campaign.created_by, **format_milestone_alert(campaign.id, milestone, template)
        )

    logger.info(f"Milestone {milestone}% for campaign {campaign_id}")
    return 1


JOB_HANDLERS: Dict[JobName, Callable[[Dict[str, Any]], int]] = {
    JobName.send_progress_alert: send_progress_alert,
    JobName.check_low_progress: check_low_progress,
    JobName.check_expired_campaigns: check_expired_campaigns,
    JobName.send_milestone_alert: send_milestone_alert,
}
