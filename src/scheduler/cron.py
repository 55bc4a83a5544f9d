"""Cron expressions for the progress alert schedule."""
from __future__ import annotations

import re
from typing import Any, Mapping, Tuple, Union

from src.content.schemas import ProgressAlertSchedule
from src.errors import InvalidScheduleConfig

DEFAULT_TIME = (9, 0)

# Standard cron numbering: sunday=0 ... saturday=6
WEEKDAY_NUMBERS = {
    "sunday": 0,
    "monday": 1,
    "tuesday": 2,
    "wednesday": 3,
    "thursday": 4,
    "friday": 5,
    "saturday": 6,
}

_TIME_PATTERN = re.compile(r"^\s*(\d{1,2}):(\d{2})\s*$")


def _value(field: Any) -> Any:
    return getattr(field, "value", field)


def parse_time(time: Any) -> Tuple[int, int]:
    """Parse "HH:MM" into (hour, minute), falling back to 09:00."""
    if not isinstance(time, str):
        return DEFAULT_TIME
    match = _TIME_PATTERN.match(time)
    if not match:
        return DEFAULT_TIME
    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        return DEFAULT_TIME
    return hour, minute


def build_cron_expression(
    schedule: Union[ProgressAlertSchedule, Mapping[str, Any]],
) -> str:
    """Map a progress alert schedule to a five-field cron expression.

    weekly   -> "<minute> <hour> * * <weekday>"
    biweekly -> "<minute> <hour> 1,15 * *" (1st and 15th of every month)

    Raises:
        InvalidScheduleConfig: unsupported frequency, or weekly without a valid day.
    """
    if isinstance(schedule, Mapping):
        frequency = schedule.get("frequency")
        day = schedule.get("day")
        time = schedule.get("time")
    else:
        frequency, day, time = schedule.frequency, schedule.day, schedule.time

    frequency = _value(frequency)
    hour, minute = parse_time(time)

    if frequency == "weekly":
        day = _value(day)
        weekday = WEEKDAY_NUMBERS.get(str(day).lower()) if day else None
        if weekday is None:
            raise InvalidScheduleConfig(f"Unsupported weekday for weekly schedule: {day!r}")
        return f"{minute} {hour} * * {weekday}"

    if frequency == "biweekly":
        return f"{minute} {hour} 1,15 * *"

    raise InvalidScheduleConfig(f"Unsupported progress alert frequency: {frequency!r}")
