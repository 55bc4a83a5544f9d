from __future__ import annotations

from typing import Any, Dict, Optional

from src.models import Campaign, NotificationType

LOW_PROGRESS_THRESHOLD = 25.0  # percent

TITLES = {
    NotificationType.progress_alert: "Campaign Progress Update",
    NotificationType.low_progress_warning: "Low Campaign Progress",
    NotificationType.campaign_expired: "Campaign Expired",
    NotificationType.milestone_alert: "Milestone Reached!",
}


def campaign_progress(campaign: Campaign) -> Optional[float]:
    """Percentage of the goal raised so far, or None when the goal is not positive.

    No upper clamp: an over-funded campaign reports more than 100.
    """
    if not campaign.goal_amount or campaign.goal_amount <= 0:
        return None
    return max((campaign.current_amount or 0) / campaign.goal_amount * 100, 0.0)


def format_progress(progress: float) -> str:
    return f"{progress:.1f}"


def format_progress_alert(
    campaign: Campaign, template: str, progress: float
) -> Dict[str, Any]:
    return {
        "type": NotificationType.progress_alert,
        "title": TITLES[NotificationType.progress_alert],
        "message": template.replace("{progress}", format_progress(progress)),
        "data": {"campaign_id": campaign.id},
    }


def format_low_progress_warning(campaign: Campaign, progress: float) -> Dict[str, Any]:
    return {
        "type": NotificationType.low_progress_warning,
        "title": TITLES[NotificationType.low_progress_warning],
        "message": f'"{campaign.title}" is below {LOW_PROGRESS_THRESHOLD:.0f}% with 1 week left',
        "data": {"campaign_id": campaign.id, "progress": round(progress, 1)},
    }


def format_campaign_expired(campaign: Campaign) -> Dict[str, Any]:
    return {
        "type": NotificationType.campaign_expired,
        "title": TITLES[NotificationType.campaign_expired],
        "message": f'"{campaign.title}" has ended',
        "data": {"campaign_id": campaign.id},
    }


def format_milestone_alert(
    campaign_id: int, milestone: int, template: Optional[str] = None
) -> Dict[str, Any]:
    if template:
        message = template.replace("{milestone}", str(milestone))
    else:
        message = f"Congratulations! {milestone}% achieved!"
    return {
        "type": NotificationType.milestone_alert,
        "title": TITLES[NotificationType.milestone_alert],
        "message": message,
        "data": {"campaign_id": campaign_id, "milestone": milestone},
    }


def format_invitation_sms(
    inviter_name: str, invitee_name: Optional[str], campaign_title: Optional[str] = None
) -> str:
    greeting = f"Hi {invitee_name}, " if invitee_name else "Hi, "
    cause = f' to support "{campaign_title}"' if campaign_title else " to join our fundraising community"
    return f"{greeting}{inviter_name} has invited you{cause}."
