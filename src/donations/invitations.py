"""Invitation batches with an optional donation, written as one atomic unit.

Milestone jobs and invitation SMS happen after commit: a failure there never
undoes the recorded invitations and donation.
"""
from __future__ import annotations

import threading
import uuid
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple

from loguru import logger
from pydantic import BaseModel, Field
from sqlalchemy import update
from sqlalchemy.orm import Session

from src.config import Settings, get_settings
from src.content.strategy import get_strategy_store
from src.donations.milestones import crossed_milestones, enqueue_milestone_alerts
from src.errors import NotFoundError, TransactionFailure, ValidationError
from src.models import Campaign, DonationTransaction, InvitationHistory, PaymentStatus, User
from src.notifications.formatter import campaign_progress, format_invitation_sms
from src.notifications.sms import SmsSender, is_valid_phone
from src.scheduler.store import ScheduleStore


class Invitee(BaseModel):
    phone: str
    name: Optional[str] = None


class InvitationRequest(BaseModel):
    inviter_id: int
    referrer_id: int
    invitees: List[Invitee]
    donation_amount: float = Field(default=0, ge=0)
    payment_method: str = "card"
    campaign_id: Optional[int] = None
    invitation_type: str = "sms"


@dataclass
class InvitationResult:
    invitation_ids: List[int]
    transaction_id: Optional[str] = None
    milestones: List[int] = field(default_factory=list)


def generate_transaction_id() -> str:
    return f"TXN-{uuid.uuid4().hex.upper()}"


def run_in_background(target: Callable, *args) -> None:
    threading.Thread(target=target, args=args, daemon=True).start()


def _validate(
    session: Session, request: InvitationRequest
) -> Tuple[User, User, Optional[Campaign]]:
    if request.inviter_id == request.referrer_id:
        raise ValidationError("You cannot use your own invitation")
    if not request.invitees:
        raise ValidationError("At least one invitee is required")

    inviter = session.get(User, request.inviter_id)
    if inviter is None:
        raise NotFoundError("Inviting user not found")
    referrer = session.get(User, request.referrer_id)
    if referrer is None:
        raise NotFoundError("Referring user not found")
    if not inviter.contact:
        raise ValidationError("Inviting user has no contact number on file")

    campaign = None
    if request.campaign_id is not None:
        campaign = session.get(Campaign, request.campaign_id)
        if campaign is None or campaign.is_deleted:
            raise NotFoundError("Campaign not found")

    return inviter, referrer, campaign


def _record_invitations(
    session: Session, request: InvitationRequest, inviter: User, is_donated: bool
) -> List[InvitationHistory]:
    records = [
        InvitationHistory(
            type=request.invitation_type,
            campaign_id=request.campaign_id,
            from_user_id=inviter.id,
            from_phone=inviter.contact,
            to_phone=invitee.phone,
            to_name=invitee.name,
            is_donated=is_donated,
        )
        for invitee in request.invitees
    ]
    session.add_all(records)
    session.flush()
    return records


def _record_donation(
    session: Session, request: InvitationRequest, inviter: User, amount: float
) -> str:
    transaction = DonationTransaction(
        donor_id=inviter.id,
        donor_phone=inviter.contact,
        payment_method=request.payment_method,
        transaction_id=generate_transaction_id(),
        amount_paid=amount,
        campaign_id=request.campaign_id,
        payment_status=PaymentStatus.completed,
    )
    session.add(transaction)
    session.flush()
    return transaction.transaction_id


def _increment_counters(
    session: Session, request: InvitationRequest, amount: float, invited: int
) -> None:
    session.execute(
        update(User)
        .where(User.id == request.referrer_id)
        .values(total_raised=User.total_raised + amount)
    )
    session.execute(
        update(User)
        .where(User.id == request.inviter_id)
        .values(
            total_donated=User.total_donated + amount,
            total_invited=User.total_invited + invited,
        )
    )
    if request.campaign_id is not None:
        session.execute(
            update(Campaign)
            .where(Campaign.id == request.campaign_id)
            .values(current_amount=Campaign.current_amount + amount)
        )


def _send_invitation_sms(
    sender: SmsSender, invitees: List[Invitee], inviter_name: str, campaign_title: Optional[str]
) -> None:
    sent = 0
    for invitee in invitees:
        if not is_valid_phone(invitee.phone):
            logger.warning(f"Skipping invitation SMS to invalid phone {invitee.phone!r}")
            continue
        try:
            message = format_invitation_sms(inviter_name, invitee.name, campaign_title)
            if sender.send_sms(invitee.phone, message):
                sent += 1
        except Exception as e:
            logger.error(f"Invitation SMS to {invitee.phone} failed: {e}")
    logger.info(f"Sent {sent}/{len(invitees)} invitation SMS")


def create_invitations(
    session: Session,
    request: InvitationRequest,
    store: Optional[ScheduleStore] = None,
    sms_sender: Optional[SmsSender] = None,
    settings: Optional[Settings] = None,
) -> InvitationResult:
    """Record an invitation batch and, when an amount is given, its donation.

    Raises:
        ValidationError / NotFoundError: before anything is written.
        TransactionFailure: any write failed; everything was rolled back.
    """
    settings = settings or get_settings()
    inviter, referrer, campaign = _validate(session, request)

    amount = request.donation_amount or 0
    progress_before = campaign_progress(campaign) if campaign else None
    transaction_id = None

    try:
        records = _record_invitations(session, request, inviter, is_donated=amount > 0)
        if amount > 0:
            transaction_id = _record_donation(session, request, inviter, amount)
            _increment_counters(session, request, amount, len(records))
        session.commit()
    except Exception as e:
        session.rollback()
        logger.exception(f"Invitation transaction failed for user {request.inviter_id}: {e}")
        raise TransactionFailure("Failed to process invitation") from e

    invitation_ids = [record.id for record in records]
    logger.info(
        f"User {request.inviter_id} invited {len(invitation_ids)} people"
        + (f", donated {amount} ({transaction_id})" if transaction_id else "")
    )

    milestones: List[int] = []
    if campaign is not None and amount > 0:
        session.refresh(campaign)
        milestones = crossed_milestones(
            progress_before, campaign_progress(campaign), settings.milestones
        )
        strategy = get_strategy_store().current(session)
        if milestones and strategy is not None and strategy.milestone_alert:
            if store is None:
                logger.warning(f"Job store unavailable, milestones {milestones} not enqueued")
            else:
                enqueue_milestone_alerts(store, campaign.id, milestones)

    if sms_sender is None and SmsSender.is_configured():
        sms_sender = SmsSender()
    if sms_sender is not None:
        run_in_background(
            _send_invitation_sms,
            sms_sender,
            list(request.invitees),
            inviter.name,
            campaign.title if campaign else None,
        )

    return InvitationResult(
        invitation_ids=invitation_ids,
        transaction_id=transaction_id,
        milestones=milestones,
    )
