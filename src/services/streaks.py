"""
스트릭 계산 (순수 함수, DB 접근 없음)

규칙
- 날짜 오름차순으로 한 번만 훑음
- 미완료 기록 OR 이전 기록과 날짜 차이 > 1 (기록 자체가 없는 날) → 연속 끊김
- 최장 스트릭 동률이면 먼저 나온 구간 유지 (strict >)
- 현재 스트릭: 마지막 완료일이 끝인 구간, 단 마지막 완료일이 오늘 또는 어제일 때만 유효
"""
from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from typing import Any, Iterable, List, Optional, Sequence, Tuple

from src.services.timezone import parse_date

MILESTONES: Tuple[int, ...] = (7, 14, 21, 30, 40, 50, 60, 70, 75)

# (date, completed)
StreakEntry = Tuple[dt.date, bool]


@dataclass
class StreakData:
    current_streak: int = 0
    longest_streak: int = 0
    streak_start_date: Optional[dt.date] = None
    streak_end_date: Optional[dt.date] = None
    longest_streak_start: Optional[dt.date] = None
    longest_streak_end: Optional[dt.date] = None
    total_completed_days: int = 0
    total_days: int = 0
    completion_rate: float = 0.0
    is_active_streak: bool = False
    last_completed_date: Optional[dt.date] = None


@dataclass
class StreakRun:
    start_date: dt.date
    end_date: dt.date
    length: int
    is_active: bool = False


@dataclass
class Milestones:
    reached: List[int]
    next: Optional[int]
    upcoming: List[int]


def _record_date(record: Any) -> dt.date:
    if isinstance(record, dict):
        return parse_date(record["date"])
    return parse_date(record.date)


def _record_complete(record: Any) -> bool:
    if isinstance(record, dict):
        return bool(record.get("is_complete"))
    return bool(record.is_complete)


def day_entries(records: Iterable[Any]) -> List[StreakEntry]:
    """DailyProgress (또는 dict) → (date, is_complete)"""
    return [(_record_date(r), _record_complete(r)) for r in records]


def task_entries(records: Iterable[Any], task_id: str) -> List[StreakEntry]:
    """하루 전체가 아니라 과제 하나의 completed 플래그만 본 entry"""
    entries = []
    for r in records:
        tasks = r.get("tasks") if isinstance(r, dict) else r.tasks
        entry = (tasks or {}).get(task_id) or {}
        entries.append((_record_date(r), bool(entry.get("completed"))))
    return entries


def _sorted(entries: Iterable[StreakEntry]) -> List[StreakEntry]:
    # sorted 는 stable → 같은 날짜가 섞여 들어와도 입력 순서 유지
    return sorted(entries, key=lambda e: e[0])


def _is_active(last_completed: Optional[dt.date], today: dt.date) -> bool:
    if last_completed is None:
        return False
    return (today - last_completed).days <= 1


def compute_streak(entries: Sequence[StreakEntry], today: dt.date) -> StreakData:
    ordered = _sorted(entries)
    if not ordered:
        return StreakData()

    run = 0
    run_start: Optional[dt.date] = None
    prev_date: Optional[dt.date] = None

    longest = 0
    longest_start: Optional[dt.date] = None
    longest_end: Optional[dt.date] = None

    total_completed = 0
    last_completed: Optional[dt.date] = None
    run_at_last_completed = 0
    start_at_last_completed: Optional[dt.date] = None

    for day, completed in ordered:
        if prev_date is not None and (day - prev_date).days > 1:
            # 기록이 빠진 날 = 미완료
            run = 0
            run_start = None

        if completed:
            if run == 0:
                run_start = day
            run += 1
            total_completed += 1
            last_completed = day
            run_at_last_completed = run
            start_at_last_completed = run_start
            if run > longest:
                longest = run
                longest_start = run_start
                longest_end = day
        else:
            run = 0
            run_start = None

        prev_date = day

    active = _is_active(last_completed, today)
    total_days = len(ordered)

    return StreakData(
        current_streak=run_at_last_completed if active else 0,
        longest_streak=longest,
        streak_start_date=start_at_last_completed if active else None,
        streak_end_date=last_completed,
        longest_streak_start=longest_start,
        longest_streak_end=longest_end,
        total_completed_days=total_completed,
        total_days=total_days,
        completion_rate=round(total_completed / total_days * 100, 1) if total_days else 0.0,
        is_active_streak=active,
        last_completed_date=last_completed,
    )


def streak_history(entries: Sequence[StreakEntry], today: dt.date) -> List[StreakRun]:
    """완료 구간 전체 목록 (compute_streak 과 같은 끊김 규칙)"""
    runs: List[StreakRun] = []
    current: Optional[StreakRun] = None
    prev_date: Optional[dt.date] = None

    for day, completed in _sorted(entries):
        gap = prev_date is not None and (day - prev_date).days > 1
        if current is not None and (gap or not completed):
            runs.append(current)
            current = None
        if completed:
            if current is None:
                current = StreakRun(start_date=day, end_date=day, length=1)
            else:
                current.end_date = day
                current.length += 1
        prev_date = day

    if current is not None:
        runs.append(current)

    if runs and _is_active(runs[-1].end_date, today):
        runs[-1].is_active = True
    return runs


def milestones(total_completed_days: int) -> Milestones:
    reached = [m for m in MILESTONES if total_completed_days >= m]
    upcoming = [m for m in MILESTONES if total_completed_days < m]
    return Milestones(reached=reached, next=upcoming[0] if upcoming else None, upcoming=upcoming)
