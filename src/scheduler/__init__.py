"""Notification scheduling: durable job store, worker and recurring job setup.

Schedule overview:
  - progress-alert-job         - weekly or on the 1st/15th, per content settings
  - low-progress-warning-job   - 10:00 daily
  - campaign-expired-alert-job - 08:00 daily
  - sendMilestoneAlert         - one-shot, enqueued by donations crossing a milestone
"""
from src.scheduler.cron import build_cron_expression
from src.scheduler.reconciler import ScheduleReconciler
from src.scheduler.store import JobName, RecurringJob, ScheduleStore

__all__ = [
    "JobName",
    "RecurringJob",
    "ScheduleReconciler",
    "ScheduleStore",
    "build_cron_expression",
]
