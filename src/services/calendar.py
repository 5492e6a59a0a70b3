"""
75일 달력 생성 (순수 함수)

상태 우선순위 (먼저 맞는 것):
  1. 오늘 일차            → TODAY
  2. 오늘 이후            → FUTURE (hidden)
  3. 지난 날 & 기록 없음   → INCOMPLETE
  4. tasks_completed == 전체 → COMPLETE
  5. 0 < tasks_completed    → PARTIAL
  6. 기록은 있는데 0개      → INCOMPLETE (명시적 skip 플래그가 없어서 구분 불가)
"""
from __future__ import annotations

import datetime as dt
import enum
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional

from src.services.streaks import compute_streak
from src.services.task_definitions import TOTAL_TASKS
from src.services.timezone import (
    CHALLENGE_LENGTH_DAYS,
    current_day_number,
    date_for_day_number,
    day_number_for_date,
    parse_date,
)


class DayStatus(str, enum.Enum):
    complete = "complete"
    incomplete = "incomplete"
    partial = "partial"
    future = "future"
    today = "today"


@dataclass(frozen=True)
class DayProgressInfo:
    completed: bool
    tasks_completed: int
    total_tasks: int = TOTAL_TASKS


@dataclass(frozen=True)
class CalendarDay:
    day_number: int
    date: dt.date
    status: DayStatus
    tasks_completed: int
    total_tasks: int
    hidden: bool = False


def derive_status(day_number: int, current_day: int, info: Optional[DayProgressInfo]) -> DayStatus:
    if day_number == current_day:
        return DayStatus.today
    if day_number > current_day:
        return DayStatus.future
    if info is None:
        return DayStatus.incomplete
    if info.completed or info.tasks_completed >= info.total_tasks:
        return DayStatus.complete
    if info.tasks_completed > 0:
        return DayStatus.partial
    return DayStatus.incomplete


def progress_map(records: Iterable[Any], start_date: dt.date) -> Dict[int, DayProgressInfo]:
    """DailyProgress 목록 → {일차: DayProgressInfo} (챌린지 범위 밖 날짜는 버림)"""
    out: Dict[int, DayProgressInfo] = {}
    for r in records:
        day_number = day_number_for_date(start_date, parse_date(r.date))
        if 1 <= day_number <= CHALLENGE_LENGTH_DAYS:
            out[day_number] = DayProgressInfo(
                completed=bool(r.is_complete),
                tasks_completed=int(r.tasks_completed or 0),
            )
    return out


def generate_calendar(
    start_date: dt.date,
    progress: Optional[Mapping[int, DayProgressInfo]],
    tz_name: Optional[str],
    now: Optional[dt.datetime] = None,
    total_days: int = CHALLENGE_LENGTH_DAYS,
) -> List[CalendarDay]:
    progress = progress or {}
    current_day = current_day_number(start_date, tz_name, now, total_days)

    days: List[CalendarDay] = []
    for day_number in range(1, total_days + 1):
        info = progress.get(day_number)
        status = derive_status(day_number, current_day, info)
        days.append(
            CalendarDay(
                day_number=day_number,
                date=date_for_day_number(start_date, day_number),
                status=status,
                tasks_completed=info.tasks_completed if info else 0,
                total_tasks=info.total_tasks if info else TOTAL_TASKS,
                hidden=day_number > current_day,
            )
        )
    return days


def calendar_stats(days: List[CalendarDay], today: dt.date) -> Dict[str, Any]:
    counts = {status: 0 for status in DayStatus}
    for d in days:
        counts[d.status] += 1

    elapsed = [d for d in days if d.status != DayStatus.future]
    # TODAY 칸은 아직 진행 중이라 완료 여부를 tasks 로 판단
    entries = [
        (d.date, d.status == DayStatus.complete or d.tasks_completed >= d.total_tasks)
        for d in elapsed
    ]
    streak = compute_streak(entries, today)
    completed = sum(1 for _, done in entries if done)

    return {
        "total_days": len(days),
        "completed_days": counts[DayStatus.complete],
        "partial_days": counts[DayStatus.partial],
        "incomplete_days": counts[DayStatus.incomplete],
        "future_days": counts[DayStatus.future],
        "current_streak": streak.current_streak,
        "longest_streak": streak.longest_streak,
        "completion_percentage": round(completed / len(elapsed) * 100) if elapsed else 0,
    }
