"""Durable job store shared by producers (reconciler, donation flow) and the worker.

Recurring jobs are registered under fixed identities, so registering the same
identity again replaces the previous registration. One-shot jobs (milestones,
retries) get a generated identity and are removed by the scheduler after they
run.
"""
from __future__ import annotations

import enum
import random
import re
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Mapping, Optional, Union

from apscheduler.job import Job
from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.base import BaseScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.date import DateTrigger
from loguru import logger


class JobName(str, enum.Enum):
    send_progress_alert = "sendProgressAlert"
    check_low_progress = "checkLowProgress"
    check_expired_campaigns = "checkExpiredCampaigns"
    send_milestone_alert = "sendMilestoneAlert"


class RecurringJob(enum.Enum):
    """Recurring jobs and their fixed identities (at most one registration each)."""

    progress_alert = "progress-alert-job"
    low_progress_warning = "low-progress-warning-job"
    campaign_expired_alert = "campaign-expired-alert-job"

    @property
    def identity(self) -> str:
        return self.value

    @property
    def job_name(self) -> JobName:
        return _RECURRING_JOB_NAMES[self]


_RECURRING_JOB_NAMES = {
    RecurringJob.progress_alert: JobName.send_progress_alert,
    RecurringJob.low_progress_warning: JobName.check_low_progress,
    RecurringJob.campaign_expired_alert: JobName.check_expired_campaigns,
}

# Textual reference so persisted jobs survive restarts
JOB_FUNC = "src.scheduler.worker:execute_job"

# APScheduler counts weekdays from monday=0, cron from sunday=0; use names instead
_CRON_DAY_NAMES = ("sun", "mon", "tue", "wed", "thu", "fri", "sat", "sun")
_WEEKDAY_NUMBER = re.compile(r"(?<![/\d])\d(?!\d)")


def cron_to_trigger(expression: str, tz: Optional[str] = None) -> CronTrigger:
    """Build a CronTrigger from a standard five-field cron expression."""
    fields = expression.split()
    if len(fields) != 5:
        raise ValueError(
            f"Wrong number of fields in cron expression {expression!r}: got {len(fields)}, expected 5"
        )
    minute, hour, day, month, day_of_week = fields
    day_of_week = _WEEKDAY_NUMBER.sub(
        lambda m: _CRON_DAY_NAMES[int(m.group())], day_of_week
    )
    return CronTrigger(
        minute=minute,
        hour=hour,
        day=day,
        month=month,
        day_of_week=day_of_week,
        timezone=tz,
    )


def get_retry_delay(
    attempt: int, base_delay: float = 30, max_delay: float = 1800, include_jitter: bool = True
) -> float:
    """Exponential backoff: base_delay * 2**attempt, capped at max_delay."""
    delay = min(base_delay * (2**attempt), max_delay)
    if include_jitter:
        delay += random.uniform(0, min(delay * 0.1, 60))
    return float(delay)


class ScheduleStore:
    def __init__(
        self,
        scheduler: BaseScheduler,
        tz: str = "UTC",
        retry_base_delay: float = 30,
        retry_max_delay: float = 1800,
    ):
        self.scheduler = scheduler
        self.tz = tz
        self.retry_base_delay = retry_base_delay
        self.retry_max_delay = retry_max_delay

    def add_recurring(
        self,
        name: Union[JobName, str],
        payload: Mapping[str, Any],
        identity: str,
        cron_expression: str,
    ) -> Job:
        """Register (or replace) the recurring job stored under ``identity``."""
        name = JobName(name)
        trigger = cron_to_trigger(cron_expression, self.tz)
        job = self.scheduler.add_job(
            JOB_FUNC,
            trigger,
            id=identity,
            name=name.value,
            replace_existing=True,
            kwargs={"name": name.value, "payload": dict(payload), "attempt": 0},
        )
        logger.info(f"Registered recurring job {identity} ({name.value}): {cron_expression}")
        return job

    def add_one_shot(
        self,
        name: Union[JobName, str],
        payload: Mapping[str, Any],
        run_at: Optional[datetime] = None,
        attempt: int = 0,
    ) -> str:
        """Enqueue a job that runs once, immediately unless ``run_at`` is given.

        One-shot jobs never misfire: a job still queued when the worker comes
        back after downtime runs late instead of being dropped.
        """
        name = JobName(name)
        job_id = f"{name.value}-{uuid.uuid4().hex}"
        self.scheduler.add_job(
            JOB_FUNC,
            DateTrigger(run_date=run_at, timezone=self.tz),
            id=job_id,
            name=name.value,
            misfire_grace_time=None,
            coalesce=True,
            kwargs={"name": name.value, "payload": dict(payload), "attempt": attempt},
        )
        logger.debug(f"Enqueued one-shot job {job_id}")
        return job_id

    def list_recurring(self) -> List[Job]:
        return [job for job in self.scheduler.get_jobs() if isinstance(job.trigger, CronTrigger)]

    def remove_by_key(self, key: str) -> bool:
        """Remove a job by key. Removing an absent key is a no-op."""
        try:
            self.scheduler.remove_job(key)
        except JobLookupError:
            logger.debug(f"Job {key} already gone")
            return False
        logger.info(f"Removed job: {key}")
        return True

    def schedule_retry(
        self, name: Union[JobName, str], payload: Mapping[str, Any], attempt: int
    ) -> float:
        """Re-enqueue a failed job after an exponential backoff delay.

        Args:
            attempt: The attempt number the retry will run as (1 = first retry).

        Returns:
            Delay in seconds before the retry runs.
        """
        delay = get_retry_delay(attempt - 1, self.retry_base_delay, self.retry_max_delay)
        run_at = datetime.now(timezone.utc) + timedelta(seconds=delay)
        job_id = self.add_one_shot(name, payload, run_at=run_at, attempt=attempt)
        logger.info(f"Scheduled retry {job_id} in {delay:.1f}s (attempt {attempt + 1})")
        return delay

    def describe(self) -> List[Dict[str, Any]]:
        jobs = []
        for job in self.scheduler.get_jobs():
            next_run = getattr(job, "next_run_time", None)
            jobs.append(
                {
                    "id": job.id,
                    "name": job.name,
                    "trigger": str(job.trigger),
                    "next_run": str(next_run) if next_run else None,
                }
            )
        return jobs
