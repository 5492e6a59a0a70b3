"""
운동 타이머 / 걷기 기록

- duration 은 초 단위, 45분(2700초) 이상이면 과제 자동 완료
  운동: task_id 를 안 주면 그날 아직 안 끝난 운동 과제 (indoor → outdoor 순)
  걷기: 야외 걷기만 workout-outdoor 완료 (실내 걷기는 기록만)
- 과제에는 분 단위 duration 과 요약 메모를 같이 남김
"""
from __future__ import annotations

import datetime as dt
import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.orm import Session

from src.models.challenge import Challenge
from src.models.daily_progress import DailyProgress
from src.models.workout_history import WalkHistory, WorkoutHistory
from src.services.daily_progress import auto_update_task, get_progress
from src.services.errors import InvalidEntryError
from src.services.task_definitions import get_task
from src.services.timezone import utc_now

logger = logging.getLogger(__name__)

WORKOUT_TASK_IDS = ("workout-indoor", "workout-outdoor")
OUTDOOR_TASK_ID = "workout-outdoor"
AUTO_COMPLETE_SECONDS = get_task("workout-indoor").required_duration * 60

DISTANCE_UNITS = ("miles", "km")
WALK_TYPES = ("outdoor", "indoor")
KM_TO_MILES = 0.621371
MILES_TO_KM = 1.60934


def _check_duration(duration) -> int:
    if isinstance(duration, bool) or not isinstance(duration, int) or duration <= 0:
        raise InvalidEntryError("duration must be a positive number of seconds")
    return duration


def _naive(value: dt.datetime) -> dt.datetime:
    if value.tzinfo is not None:
        value = value.astimezone(dt.timezone.utc).replace(tzinfo=None)
    return value.replace(microsecond=0)


def _pick_workout_task(progress: Optional[DailyProgress]) -> Optional[str]:
    for task_id in WORKOUT_TASK_IDS:
        if progress is None or not progress.task_completed(task_id):
            return task_id
    return None


# --------------------- 운동 ---------------------
def save_workout(
    db: Session,
    challenge: Challenge,
    day: dt.date,
    duration: int,
    *,
    task_id: Optional[str] = None,
    notes: Optional[str] = None,
    now: Optional[dt.datetime] = None,
) -> Tuple[WorkoutHistory, Optional[DailyProgress]]:
    """return: (기록, 과제를 자동 완료했으면 그 daily_progress)"""
    now = now or utc_now()
    _check_duration(duration)
    if task_id is not None and task_id not in WORKOUT_TASK_IDS:
        raise InvalidEntryError(f"not a workout task: {task_id}")

    target = None
    if duration >= AUTO_COMPLETE_SECONDS:
        target = task_id or _pick_workout_task(get_progress(db, challenge.id, day))

    row = WorkoutHistory(
        user_id=challenge.user_id,
        challenge_id=challenge.id,
        date=day,
        duration=duration,
        task_id=target,
        notes=notes,
        completed_at=_naive(now),
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    logger.info("[workouts] saved challenge=%s date=%s duration=%ds task=%s", challenge.id, day, duration, target)

    if target is None:
        return row, None
    minutes = duration // 60
    progress = auto_update_task(
        db, challenge, day, target, True,
        duration=minutes,
        notes=notes or f"Completed {minutes} minute workout",
        now=now,
    )
    return row, progress


def list_workouts(
    db: Session,
    challenge_id: int,
    start: Optional[dt.date] = None,
    end: Optional[dt.date] = None,
) -> List[WorkoutHistory]:
    stmt = select(WorkoutHistory).where(WorkoutHistory.challenge_id == challenge_id)
    if start is not None:
        stmt = stmt.where(WorkoutHistory.date >= start)
    if end is not None:
        stmt = stmt.where(WorkoutHistory.date <= end)
    return db.execute(stmt.order_by(WorkoutHistory.completed_at.desc(), WorkoutHistory.id.desc())).scalars().all()


def workout_stats(db: Session, challenge_id: int, end: dt.date, days: int = 7) -> Dict[str, int]:
    workouts = list_workouts(db, challenge_id, end - dt.timedelta(days=days), end)
    count = len(workouts)
    total = sum(w.duration for w in workouts)
    return {
        "count": count,
        "total_duration": total,
        "avg_duration": total // count if count else 0,
    }


# --------------------- 걷기 ---------------------
def convert_distance(distance: float, from_unit: str, to_unit: str) -> float:
    if from_unit == to_unit:
        return distance
    if from_unit == "miles" and to_unit == "km":
        return distance * MILES_TO_KM
    return distance * KM_TO_MILES


def format_pace(minutes_per_unit: float) -> str:
    """6.5 → "6:30" """
    minutes = int(minutes_per_unit)
    seconds = round((minutes_per_unit - minutes) * 60)
    if seconds == 60:
        minutes, seconds = minutes + 1, 0
    return f"{minutes}:{seconds:02d}"


def save_walk(
    db: Session,
    challenge: Challenge,
    day: dt.date,
    duration: int,
    distance: float,
    distance_unit: str = "miles",
    walk_type: str = "outdoor",
    *,
    notes: Optional[str] = None,
    now: Optional[dt.datetime] = None,
) -> Tuple[WalkHistory, Optional[DailyProgress]]:
    now = now or utc_now()
    _check_duration(duration)
    if isinstance(distance, bool) or not isinstance(distance, (int, float)) or distance < 0:
        raise InvalidEntryError("distance must be zero or more")
    if distance_unit not in DISTANCE_UNITS:
        raise InvalidEntryError(f"unknown distance unit: {distance_unit}")
    if walk_type not in WALK_TYPES:
        raise InvalidEntryError(f"unknown walk type: {walk_type}")

    completes = walk_type == "outdoor" and duration >= AUTO_COMPLETE_SECONDS
    row = WalkHistory(
        user_id=challenge.user_id,
        challenge_id=challenge.id,
        date=day,
        duration=duration,
        distance=float(distance),
        distance_unit=distance_unit,
        walk_type=walk_type,
        task_id=OUTDOOR_TASK_ID if completes else None,
        notes=notes,
        completed_at=_naive(now),
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    logger.info(
        "[walks] saved challenge=%s date=%s type=%s duration=%ds distance=%s%s",
        challenge.id, day, walk_type, duration, distance, distance_unit,
    )

    if not completes:
        return row, None
    minutes = duration // 60
    progress = auto_update_task(
        db, challenge, day, OUTDOOR_TASK_ID, True,
        duration=minutes,
        notes=notes or f"Outdoor walk: {distance} {distance_unit} in {minutes} minutes",
        now=now,
    )
    return row, progress


def list_walks(
    db: Session,
    challenge_id: int,
    start: Optional[dt.date] = None,
    end: Optional[dt.date] = None,
) -> List[WalkHistory]:
    stmt = select(WalkHistory).where(WalkHistory.challenge_id == challenge_id)
    if start is not None:
        stmt = stmt.where(WalkHistory.date >= start)
    if end is not None:
        stmt = stmt.where(WalkHistory.date <= end)
    return db.execute(stmt.order_by(WalkHistory.completed_at.desc(), WalkHistory.id.desc())).scalars().all()


def has_outdoor_walk(db: Session, challenge_id: int, day: dt.date) -> bool:
    return any(w.walk_type == "outdoor" for w in list_walks(db, challenge_id, day, day))


def walk_stats(db: Session, challenge_id: int, end: dt.date, days: int = 7) -> Dict[str, Any]:
    """거리 합계는 마일, 페이스는 분/마일"""
    walks = list_walks(db, challenge_id, end - dt.timedelta(days=days), end)
    total_duration = sum(w.duration for w in walks)
    total_distance = sum(convert_distance(w.distance, w.distance_unit, "miles") for w in walks)
    avg_pace = total_duration / 60 / total_distance if total_distance > 0 else 0.0
    return {
        "count": len(walks),
        "total_distance": round(total_distance, 2),
        "total_duration": total_duration,
        "avg_pace": round(avg_pace, 2),
        "avg_pace_label": format_pace(avg_pace),
    }
