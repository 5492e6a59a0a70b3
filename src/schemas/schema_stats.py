import datetime as dt
from typing import List, Optional

from pydantic import BaseModel, ConfigDict


class TaskStatisticsOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    task_id: str
    task_name: str
    completion_rate: float
    total_completed: int
    total_days: int
    current_streak: int
    longest_streak: int


class WeeklyStatsOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    week_start_date: dt.date
    week_end_date: dt.date
    days_completed: int
    total_days: int
    completion_rate: float
    perfect_days: int
    tasks_breakdown: List[TaskStatisticsOut]


class MonthlyStatsOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    month: str
    year: int
    month_start_date: dt.date
    month_end_date: dt.date
    days_completed: int
    total_days: int
    completion_rate: float
    weekly_breakdown: List[WeeklyStatsOut]
    best_week: Optional[WeeklyStatsOut] = None
    worst_week: Optional[WeeklyStatsOut] = None


class OverallStatsOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_days: int
    completed_days: int
    partial_days: int
    missed_days: int
    completion_rate: float
    average_tasks_per_day: float
    task_breakdown: List[TaskStatisticsOut]


class ProgressTrendOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    date: dt.date
    day_number: int
    tasks_completed: int
    completion_rate: float
