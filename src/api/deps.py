from typing import Optional

from src.scheduler.runner import get_schedule_store
from src.scheduler.store import ScheduleStore


def optional_schedule_store() -> Optional[ScheduleStore]:
    """The running job store, or None when the worker is not started in this process."""
    try:
        return get_schedule_store()
    except RuntimeError:
        return None
