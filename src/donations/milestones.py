from __future__ import annotations

from typing import Iterable, List, Optional

from loguru import logger

from src.scheduler.store import JobName, ScheduleStore


def crossed_milestones(
    before: Optional[float], after: Optional[float], thresholds: Iterable[int]
) -> List[int]:
    """Thresholds passed when progress moved from ``before`` to ``after`` (percent)."""
    if after is None:
        return []
    before = before or 0.0
    return [threshold for threshold in sorted(thresholds) if before < threshold <= after]


def trigger_milestone_alert(store: ScheduleStore, campaign_id: int, milestone: int) -> str:
    return store.add_one_shot(
        JobName.send_milestone_alert,
        {"campaign_id": campaign_id, "milestone": milestone},
    )


def enqueue_milestone_alerts(
    store: ScheduleStore, campaign_id: int, milestones: Iterable[int]
) -> List[str]:
    """Enqueue one alert job per milestone; a failed enqueue is logged and skipped."""
    job_ids = []
    for milestone in milestones:
        try:
            job_ids.append(trigger_milestone_alert(store, campaign_id, milestone))
        except Exception as e:
            logger.error(f"Could not enqueue milestone {milestone}% for campaign {campaign_id}: {e}")
    return job_ids
