from typing import Optional

from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_EXECUTED, JobExecutionEvent
from apscheduler.executors.pool import ThreadPoolExecutor
from apscheduler.jobstores.sqlalchemy import SQLAlchemyJobStore
from apscheduler.schedulers.background import BackgroundScheduler
from loguru import logger

from src.config import Settings, get_settings
from src.scheduler.store import ScheduleStore
from src.scheduler.worker import JobDispatcher, set_dispatcher

JOBSTORE_TABLE = "scheduled_jobs"

_scheduler: Optional[BackgroundScheduler] = None
_store: Optional[ScheduleStore] = None


def create_scheduler(settings: Optional[Settings] = None) -> BackgroundScheduler:
    settings = settings or get_settings()
    scheduler = BackgroundScheduler(
        jobstores={
            "default": SQLAlchemyJobStore(
                url=settings.sync_database_url, tablename=JOBSTORE_TABLE
            )
        },
        executors={"default": ThreadPoolExecutor(settings.worker_concurrency)},
        job_defaults={
            "coalesce": True,  # Combine missed runs into one
            "max_instances": 1,
            "misfire_grace_time": settings.misfire_grace_time,
        },
        timezone=settings.scheduler_timezone,
    )
    scheduler.add_listener(_log_job_event, EVENT_JOB_EXECUTED | EVENT_JOB_ERROR)
    logger.info(f"Scheduler configured with {settings.worker_concurrency} workers")
    return scheduler


def _log_job_event(event: JobExecutionEvent) -> None:
    if event.exception is not None:
        logger.error(f"Job {event.job_id} failed: {event.exception}")
    else:
        logger.info(f"Job {event.job_id} completed")


def start_worker(
    settings: Optional[Settings] = None, paused: bool = False
) -> ScheduleStore:
    """Start the scheduler and install the process-wide store and dispatcher.

    Args:
        paused: Start without running jobs (producers only, e.g. CLI commands).
    """
    global _scheduler, _store
    if _store is not None:
        return _store

    settings = settings or get_settings()
    scheduler = create_scheduler(settings)
    store = ScheduleStore(
        scheduler,
        tz=settings.scheduler_timezone,
        retry_base_delay=settings.retry_base_delay,
        retry_max_delay=settings.retry_max_delay,
    )
    set_dispatcher(JobDispatcher(store, max_attempts=settings.job_max_attempts))
    scheduler.start(paused=paused)

    _scheduler, _store = scheduler, store
    logger.info("Notification worker started")
    return store


def shutdown_worker(wait: bool = True) -> None:
    global _scheduler, _store
    if _scheduler is not None:
        _scheduler.shutdown(wait=wait)
        logger.info("Notification worker stopped")
    _scheduler, _store = None, None
    set_dispatcher(None)


def get_schedule_store() -> ScheduleStore:
    if _store is None:
        raise RuntimeError("Job worker is not running")
    return _store
