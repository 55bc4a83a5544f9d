from __future__ import annotations

import enum
from typing import List, Optional

from pydantic import BaseModel, Field, model_validator


class ProgressAlertFrequency(str, enum.Enum):
    weekly = "weekly"
    biweekly = "biweekly"


class Weekday(str, enum.Enum):
    sunday = "sunday"
    monday = "monday"
    tuesday = "tuesday"
    wednesday = "wednesday"
    thursday = "thursday"
    friday = "friday"
    saturday = "saturday"


class ProgressAlertSchedule(BaseModel):
    frequency: ProgressAlertFrequency = ProgressAlertFrequency.weekly
    day: Optional[Weekday] = None
    time: Optional[str] = "09:00"  # HH:MM

    @model_validator(mode="after")
    def require_day_for_weekly(self) -> "ProgressAlertSchedule":
        if self.frequency == ProgressAlertFrequency.weekly and self.day is None:
            raise ValueError("day is required for weekly progress alerts")
        return self


class NotificationStrategy(BaseModel):
    campaign_expired_alert: bool = False
    low_progress_warning: bool = False
    milestone_alert: bool = False
    milestone_alert_message: str = ""
    progress_alert: bool = False
    progress_alert_message: str = "Your campaign is at {progress}% of its goal"
    progress_alert_schedule: ProgressAlertSchedule = Field(
        default_factory=lambda: ProgressAlertSchedule(day=Weekday.monday)
    )
    campaign_id: Optional[int] = None
    organization_ids: List[int] = Field(default_factory=list)


class ContentUpsertRequest(BaseModel):
    app_name: Optional[str] = None
    organization_name: Optional[str] = None
    our_mission: Optional[str] = None
    notification_strategy: Optional[NotificationStrategy] = None


class ContentResponse(BaseModel):
    id: int
    app_name: Optional[str]
    organization_name: Optional[str]
    our_mission: Optional[str]
    notification_strategy: Optional[NotificationStrategy]
