from __future__ import annotations

from typing import Any, Dict, List, NamedTuple, Optional

from loguru import logger

from src.config import Settings, get_settings
from src.content.schemas import NotificationStrategy
from src.scheduler.cron import build_cron_expression
from src.scheduler.store import RecurringJob, ScheduleStore


class PlannedJob(NamedTuple):
    job: RecurringJob
    cron_expression: str
    payload: Dict[str, Any]


class ScheduleReconciler:
    """Replace the recurring notification jobs with those a strategy enables.

    Remove-then-add keyed on the fixed identities of RecurringJob: running it
    any number of times leaves at most one registration per job.
    """

    def __init__(self, store: ScheduleStore, settings: Optional[Settings] = None):
        self.store = store
        self.settings = settings or get_settings()

    def plan(self, strategy: NotificationStrategy) -> List[PlannedJob]:
        """Derive the recurring jobs for a strategy. Raises InvalidScheduleConfig."""
        planned: List[PlannedJob] = []

        if strategy.progress_alert:
            schedule = strategy.progress_alert_schedule
            planned.append(
                PlannedJob(
                    RecurringJob.progress_alert,
                    build_cron_expression(schedule),
                    {
                        "message": strategy.progress_alert_message,
                        "frequency": schedule.frequency.value,
                        "campaign_id": strategy.campaign_id,
                        "organization_ids": list(strategy.organization_ids),
                    },
                )
            )

        if strategy.low_progress_warning:
            planned.append(
                PlannedJob(RecurringJob.low_progress_warning, self.settings.low_progress_cron, {})
            )

        if strategy.campaign_expired_alert:
            planned.append(
                PlannedJob(
                    RecurringJob.campaign_expired_alert, self.settings.expired_campaign_cron, {}
                )
            )

        return planned

    def remove_existing(self) -> int:
        """Best-effort removal of every registration carrying a known identity."""
        identities = [job.identity for job in RecurringJob]
        try:
            jobs = self.store.list_recurring()
        except Exception as e:
            logger.error(f"Error listing notification jobs: {e}")
            return 0

        removed = 0
        for job in jobs:
            if not any(identity in job.id for identity in identities):
                continue
            try:
                if self.store.remove_by_key(job.id):
                    removed += 1
            except Exception as e:
                logger.error(f"Error removing notification job {job.id}: {e}")
        return removed

    def reconcile(self, strategy: NotificationStrategy) -> List[str]:
        planned = self.plan(strategy)
        removed = self.remove_existing()
        logger.info(f"Removed {removed} recurring notification jobs")

        registered = []
        for item in planned:
            self.store.add_recurring(
                item.job.job_name, item.payload, item.job.identity, item.cron_expression
            )
            registered.append(item.job.identity)

        logger.info(f"Notification jobs setup completed: {registered}")
        return registered
