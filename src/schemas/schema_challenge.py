import datetime as dt
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from src.services.calendar import DayStatus


class ChallengeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    start_date: dt.date
    end_date: dt.date
    is_active: bool
    current_day: Optional[int] = None


class RestartRequest(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=120)


class DayNumberResponse(BaseModel):
    challenge_id: int
    day_number: int
    total_days: int
    date: dt.date
    timezone: str


class CalendarDayOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    day_number: int
    date: dt.date
    status: DayStatus
    tasks_completed: int
    total_tasks: int
    hidden: bool


class CalendarStatsOut(BaseModel):
    total_days: int
    completed_days: int
    partial_days: int
    incomplete_days: int
    future_days: int
    current_streak: int
    longest_streak: int
    completion_percentage: int


class CalendarResponse(BaseModel):
    challenge_id: int
    current_day: int
    days: List[CalendarDayOut]
    stats: CalendarStatsOut


class StreakRunOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    start_date: dt.date
    end_date: dt.date
    length: int
    is_active: bool


class MilestonesOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    reached: List[int]
    next: Optional[int] = None
    upcoming: List[int]


class StreakResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    current_streak: int
    longest_streak: int
    streak_start_date: Optional[dt.date] = None
    streak_end_date: Optional[dt.date] = None
    longest_streak_start: Optional[dt.date] = None
    longest_streak_end: Optional[dt.date] = None
    total_completed_days: int
    total_days: int
    completion_rate: float
    is_active_streak: bool
    last_completed_date: Optional[dt.date] = None


class StreakDetailResponse(BaseModel):
    streak: StreakResponse
    history: List[StreakRunOut]
    milestones: MilestonesOut
