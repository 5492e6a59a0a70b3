"""
주간/월간 통계

- 주는 일요일 시작
- total_days = 기간 안에 존재하는 daily_progress 기록 수
- 과제별 스트릭은 streaks.compute_streak 을 과제 하나의 completed 플래그로 재사용
- 월간은 그 달과 겹치는 주(일~토)로 쪼개서 best/worst 주를 고름 (동률이면 앞 주)
"""
from __future__ import annotations

import calendar as _calendar
import datetime as dt
from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from src.models.challenge import Challenge
from src.services.daily_progress import list_progress
from src.services.streaks import compute_streak, task_entries
from src.services.task_definitions import TASK_DEFINITIONS, TOTAL_TASKS
from src.services.timezone import day_number_for_date, parse_date, today_in_timezone


@dataclass
class TaskStatistics:
    task_id: str
    task_name: str
    completion_rate: float
    total_completed: int
    total_days: int
    current_streak: int
    longest_streak: int


@dataclass
class WeeklyStats:
    week_start_date: dt.date
    week_end_date: dt.date
    days_completed: int
    total_days: int
    completion_rate: float
    perfect_days: int
    tasks_breakdown: List[TaskStatistics] = field(default_factory=list)


@dataclass
class MonthlyStats:
    month: str
    year: int
    month_start_date: dt.date
    month_end_date: dt.date
    days_completed: int
    total_days: int
    completion_rate: float
    weekly_breakdown: List[WeeklyStats] = field(default_factory=list)
    best_week: Optional[WeeklyStats] = None
    worst_week: Optional[WeeklyStats] = None


@dataclass
class OverallStats:
    total_days: int
    completed_days: int
    partial_days: int
    missed_days: int
    completion_rate: float
    average_tasks_per_day: float
    task_breakdown: List[TaskStatistics] = field(default_factory=list)


@dataclass
class ProgressTrend:
    date: dt.date
    day_number: int
    tasks_completed: int
    completion_rate: float


# --------------------- 기간 계산 ---------------------
def week_bounds(today: dt.date, offset: int = 0) -> Tuple[dt.date, dt.date]:
    # weekday(): 월=0 ... 일=6 → 일요일까지 거슬러 올라갈 일수
    start = today - dt.timedelta(days=(today.weekday() + 1) % 7) - dt.timedelta(weeks=offset)
    return start, start + dt.timedelta(days=6)


def month_bounds(today: dt.date, offset: int = 0) -> Tuple[dt.date, dt.date]:
    index = today.year * 12 + (today.month - 1) - offset
    year, month = divmod(index, 12)
    month += 1
    last_day = _calendar.monthrange(year, month)[1]
    return dt.date(year, month, 1), dt.date(year, month, last_day)


def _rate(part: int, whole: int) -> float:
    return round(part / whole * 100, 1) if whole else 0.0


def _in_range(records: Sequence[Any], start: dt.date, end: dt.date) -> List[Any]:
    return [r for r in records if start <= parse_date(r.date) <= end]


# --------------------- 순수 집계 ---------------------
def task_breakdown(records: Sequence[Any], as_of: dt.date) -> List[TaskStatistics]:
    total = len(records)
    out = []
    for task in TASK_DEFINITIONS:
        streak = compute_streak(task_entries(records, task.id), as_of)
        out.append(
            TaskStatistics(
                task_id=task.id,
                task_name=task.title,
                completion_rate=_rate(streak.total_completed_days, total),
                total_completed=streak.total_completed_days,
                total_days=total,
                current_streak=streak.current_streak,
                longest_streak=streak.longest_streak,
            )
        )
    return out


def weekly_rollup(records: Sequence[Any], start: dt.date, end: dt.date, today: dt.date) -> WeeklyStats:
    in_week = _in_range(records, start, end)
    completed = sum(1 for r in in_week if r.is_complete)
    return WeeklyStats(
        week_start_date=start,
        week_end_date=end,
        days_completed=completed,
        total_days=len(in_week),
        completion_rate=_rate(completed, len(in_week)),
        perfect_days=completed,
        # 지난 주는 그 주 마지막 날 기준으로 스트릭 활성 여부 판단
        tasks_breakdown=task_breakdown(in_week, min(today, end)),
    )


def monthly_rollup(records: Sequence[Any], start: dt.date, end: dt.date, today: dt.date) -> MonthlyStats:
    in_month = _in_range(records, start, end)
    completed = sum(1 for r in in_month if r.is_complete)

    weeks: List[WeeklyStats] = []
    week_start, _ = week_bounds(start)
    while week_start <= end:
        week = weekly_rollup(records, week_start, week_start + dt.timedelta(days=6), today)
        if week.total_days > 0:
            weeks.append(week)
        week_start += dt.timedelta(days=7)

    best: Optional[WeeklyStats] = None
    worst: Optional[WeeklyStats] = None
    for week in weeks:
        if best is None or week.completion_rate > best.completion_rate:
            best = week
        if worst is None or week.completion_rate < worst.completion_rate:
            worst = week

    return MonthlyStats(
        month=start.strftime("%B"),
        year=start.year,
        month_start_date=start,
        month_end_date=end,
        days_completed=completed,
        total_days=len(in_month),
        completion_rate=_rate(completed, len(in_month)),
        weekly_breakdown=weeks,
        best_week=best,
        worst_week=worst,
    )


def overall_stats(records: Sequence[Any], today: dt.date) -> OverallStats:
    total = len(records)
    completed = sum(1 for r in records if r.is_complete)
    partial = sum(1 for r in records if not r.is_complete and (r.tasks_completed or 0) > 0)
    missed = sum(1 for r in records if (r.tasks_completed or 0) == 0)
    total_tasks = sum(r.tasks_completed or 0 for r in records)

    return OverallStats(
        total_days=total,
        completed_days=completed,
        partial_days=partial,
        missed_days=missed,
        completion_rate=_rate(completed, total),
        average_tasks_per_day=round(total_tasks / total, 1) if total else 0.0,
        task_breakdown=task_breakdown(sorted(records, key=lambda r: parse_date(r.date)), today),
    )


def progress_trends(records: Sequence[Any], start_date: dt.date, limit: int = 30) -> List[ProgressTrend]:
    """최근 limit 개 기록, 날짜 오름차순"""
    ordered = sorted(records, key=lambda r: parse_date(r.date))[-limit:] if limit > 0 else []
    return [
        ProgressTrend(
            date=parse_date(r.date),
            day_number=day_number_for_date(start_date, parse_date(r.date)),
            tasks_completed=r.tasks_completed or 0,
            completion_rate=100.0 if r.is_complete else _rate(r.tasks_completed or 0, TOTAL_TASKS),
        )
        for r in ordered
    ]


# --------------------- DB 조회 포함 ---------------------
def get_weekly_stats(
    db: Session,
    challenge: Challenge,
    tz_name: str,
    week_offset: int = 0,
    now: Optional[dt.datetime] = None,
) -> WeeklyStats:
    today = today_in_timezone(tz_name, now)
    start, end = week_bounds(today, week_offset)
    records = list_progress(db, challenge.id, start, end)
    return weekly_rollup(records, start, end, today)


def get_monthly_stats(
    db: Session,
    challenge: Challenge,
    tz_name: str,
    month_offset: int = 0,
    now: Optional[dt.datetime] = None,
) -> MonthlyStats:
    today = today_in_timezone(tz_name, now)
    start, end = month_bounds(today, month_offset)
    # 주 단위 분해 때문에 앞뒤로 걸친 주까지 같이 읽음
    range_start, _ = week_bounds(start)
    _, range_end = week_bounds(end)
    records = list_progress(db, challenge.id, range_start, range_end)
    return monthly_rollup(records, start, end, today)


def get_overall_stats(
    db: Session,
    challenge: Challenge,
    tz_name: str,
    now: Optional[dt.datetime] = None,
) -> OverallStats:
    records = list_progress(db, challenge.id)
    return overall_stats(records, today_in_timezone(tz_name, now))


def get_progress_trends(db: Session, challenge: Challenge, days: int = 30) -> List[ProgressTrend]:
    records = list_progress(db, challenge.id)
    return progress_trends(records, challenge.start_date, days)
