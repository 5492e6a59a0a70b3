import datetime as dt
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.models.notification import NotificationType


class NotificationItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    description: str
    type: NotificationType
    read: bool
    data: Optional[Dict[str, Any]] = None
    created_at: dt.datetime


class UnreadCountResponse(BaseModel):
    unread: int


def _check_hhmm(value: str) -> str:
    parts = value.split(":")
    if len(parts) != 2 or not all(p.isdigit() for p in parts):
        raise ValueError("time must be HH:MM")
    h, m = int(parts[0]), int(parts[1])
    if not (0 <= h < 24 and 0 <= m < 60):
        raise ValueError("time must be HH:MM")
    return f"{h:02d}:{m:02d}"


class PreferencesResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    enabled: bool
    daily_reminder: bool
    daily_reminder_time: str
    workout_reminders: bool
    workout_reminder_times: List[str]
    water_reminders: bool
    water_reminder_interval: int
    reading_reminder: bool
    reading_reminder_time: str
    photo_reminder: bool
    photo_reminder_time: str
    streak_alerts: bool
    achievement_alerts: bool


class PreferencesUpdateRequest(BaseModel):
    enabled: Optional[bool] = None
    daily_reminder: Optional[bool] = None
    daily_reminder_time: Optional[str] = None
    workout_reminders: Optional[bool] = None
    workout_reminder_times: Optional[List[str]] = Field(default=None, max_length=2)
    water_reminders: Optional[bool] = None
    water_reminder_interval: Optional[int] = Field(default=None, ge=1, le=14)
    reading_reminder: Optional[bool] = None
    reading_reminder_time: Optional[str] = None
    photo_reminder: Optional[bool] = None
    photo_reminder_time: Optional[str] = None
    streak_alerts: Optional[bool] = None
    achievement_alerts: Optional[bool] = None

    @field_validator("daily_reminder_time", "reading_reminder_time", "photo_reminder_time")
    @classmethod
    def _time(cls, v: Optional[str]) -> Optional[str]:
        return None if v is None else _check_hhmm(v)

    @field_validator("workout_reminder_times")
    @classmethod
    def _times(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        return None if v is None else [_check_hhmm(t) for t in v]
