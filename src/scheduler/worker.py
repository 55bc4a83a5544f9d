from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional

from loguru import logger

from src.scheduler.store import JobName, ScheduleStore

Handler = Callable[[Dict[str, Any]], int]


@dataclass
class JobOutcome:
    name: JobName
    payload: Dict[str, Any]
    attempt: int
    result: Optional[int] = None
    error: Optional[BaseException] = None


Listener = Callable[[JobOutcome], None]


@dataclass
class _Listeners:
    completed: List[Listener] = field(default_factory=list)
    failed: List[Listener] = field(default_factory=list)


class JobDispatcher:
    """Routes queued jobs to their handler by job name.

    A failing handler is retried through the store with backoff until
    ``max_attempts`` runs have failed; the exception is re-raised every time so
    the scheduler records the job error.
    """

    def __init__(
        self,
        store: ScheduleStore,
        handlers: Optional[Mapping[JobName, Handler]] = None,
        max_attempts: int = 3,
    ):
        if handlers is None:
            from src.scheduler.jobs import JOB_HANDLERS

            handlers = JOB_HANDLERS

        missing = set(JobName) - set(handlers)
        if missing:
            raise ValueError(f"No handler for jobs: {sorted(name.value for name in missing)}")

        self.store = store
        self.handlers = dict(handlers)
        self.max_attempts = max_attempts
        self._listeners = _Listeners()

    def on_completed(self, listener: Listener) -> None:
        self._listeners.completed.append(listener)

    def on_failed(self, listener: Listener) -> None:
        self._listeners.failed.append(listener)

    def _emit(self, listeners: List[Listener], outcome: JobOutcome) -> None:
        for listener in listeners:
            try:
                listener(outcome)
            except Exception as e:
                logger.error(f"Job listener {listener!r} raised: {e}")

    def process(
        self, name: str, payload: Optional[Dict[str, Any]] = None, attempt: int = 0
    ) -> Optional[int]:
        try:
            job_name = JobName(name)
        except ValueError:
            logger.warning(f"Unknown job: {name}, dropping")
            return None

        payload = dict(payload or {})
        logger.info(f"Processing: {job_name.value} (attempt {attempt + 1})")

        try:
            result = self.handlers[job_name](payload)
        except Exception as e:
            logger.exception(f"Job {job_name.value} failed: {e}")
            outcome = JobOutcome(job_name, payload, attempt, error=e)
            if attempt + 1 < self.max_attempts:
                try:
                    self.store.schedule_retry(job_name, payload, attempt + 1)
                except Exception as retry_error:
                    logger.error(f"Could not schedule retry for {job_name.value}: {retry_error}")
                    self._emit(self._listeners.failed, outcome)
            else:
                logger.error(f"Job {job_name.value} gave up after {attempt + 1} attempts")
                self._emit(self._listeners.failed, outcome)
            raise

        self._emit(self._listeners.completed, JobOutcome(job_name, payload, attempt, result=result))
        return result


_dispatcher: Optional[JobDispatcher] = None


def set_dispatcher(dispatcher: Optional[JobDispatcher]) -> None:
    global _dispatcher
    _dispatcher = dispatcher


def get_dispatcher() -> JobDispatcher:
    if _dispatcher is None:
        raise RuntimeError("Job worker is not running")
    return _dispatcher


def execute_job(name: str, payload: Optional[Dict[str, Any]] = None, attempt: int = 0) -> Optional[int]:
    """Entry point persisted with every job; runs inside the scheduler's worker pool."""
    return get_dispatcher().process(name, payload, attempt)
