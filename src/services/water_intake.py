"""
물 섭취 기록 (하루 1개, oz 기준)

- 추가: amount 누적 + intake_log 에 입력 원본 기록
- 빼기(되돌리기): 0 아래로는 안 내려감, intake_log 는 그대로
- amount 가 goal 을 넘으면 water-intake 과제 자동 완료, 다시 goal 아래로 내려가면 자동 해제
  과제 쓰기는 daily_progress.apply_task_updates 경로 (recount 포함)
"""
from __future__ import annotations

import datetime as dt
import logging
from typing import List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from src.models.challenge import Challenge
from src.models.daily_progress import DailyProgress
from src.models.water_intake import WaterIntake
from src.services.daily_progress import auto_update_task
from src.services.errors import InvalidEntryError, ProgressWriteError
from src.services.timezone import utc_now

logger = logging.getLogger(__name__)

WATER_TASK_ID = "water-intake"
DEFAULT_GOAL_OZ = 128.0  # 1 gallon
MAX_RETRY = 3

# 1 단위 = ? oz
OUNCES_PER_UNIT = {
    "oz": 1.0,
    "cups": 8.0,
    "ml": 0.033814,
    "liters": 33.814,
}


def to_ounces(amount, unit: str = "oz") -> float:
    if isinstance(amount, bool) or not isinstance(amount, (int, float)):
        raise InvalidEntryError("amount must be a number")
    if amount <= 0:
        raise InvalidEntryError("amount must be positive")
    factor = OUNCES_PER_UNIT.get(unit) if isinstance(unit, str) else None
    if factor is None:
        raise InvalidEntryError(f"unknown unit: {unit}")
    return round(amount * factor, 2)


def get_intake(db: Session, challenge_id: int, day: dt.date) -> Optional[WaterIntake]:
    return (
        db.execute(
            select(WaterIntake).where(
                WaterIntake.challenge_id == challenge_id,
                WaterIntake.date == day,
            )
        )
        .scalars()
        .first()
    )


def get_or_create_intake(db: Session, challenge: Challenge, day: dt.date) -> WaterIntake:
    """없으면 amount 0 / goal 128oz 로 생성 (동시 생성은 유니크 충돌 후 다시 조회)"""
    for _ in range(MAX_RETRY):
        row = get_intake(db, challenge.id, day)
        if row is not None:
            return row

        row = WaterIntake(
            user_id=challenge.user_id,
            challenge_id=challenge.id,
            date=day,
            amount=0,
            goal=DEFAULT_GOAL_OZ,
            unit="oz",
            intake_log=[],
        )
        db.add(row)
        try:
            db.commit()
            db.refresh(row)
            return row
        except IntegrityError:
            db.rollback()
            logger.info("[water] concurrent insert challenge=%s date=%s -> retry", challenge.id, day)

    raise ProgressWriteError(f"water_intake create failed after {MAX_RETRY} attempts")


def list_intake(db: Session, challenge_id: int, end: dt.date, days: int = 7) -> List[WaterIntake]:
    """end 포함 최근 days 일, 최신순"""
    start = end - dt.timedelta(days=days)
    return (
        db.execute(
            select(WaterIntake)
            .where(
                WaterIntake.challenge_id == challenge_id,
                WaterIntake.date >= start,
                WaterIntake.date <= end,
            )
            .order_by(WaterIntake.date.desc())
        )
        .scalars()
        .all()
    )


def _sync_task(
    db: Session,
    challenge: Challenge,
    day: dt.date,
    was_met: bool,
    row: WaterIntake,
    now: dt.datetime,
) -> Optional[DailyProgress]:
    if row.goal_met and not was_met:
        return auto_update_task(db, challenge, day, WATER_TASK_ID, True, now=now)
    if was_met and not row.goal_met:
        return auto_update_task(db, challenge, day, WATER_TASK_ID, False, now=now)
    return None


def add_intake(
    db: Session,
    challenge: Challenge,
    day: dt.date,
    amount,
    unit: str = "oz",
    now: Optional[dt.datetime] = None,
) -> Tuple[WaterIntake, Optional[DailyProgress]]:
    """return: (기록, 과제 상태가 바뀌었으면 그 daily_progress)"""
    now = now or utc_now()
    ounces = to_ounces(amount, unit)
    row = get_or_create_intake(db, challenge, day)

    row.amount = round((row.amount or 0) + ounces, 2)
    row.intake_log = list(row.intake_log or []) + [
        {"timestamp": now.isoformat(), "amount": amount, "unit": unit}
    ]
    db.commit()
    db.refresh(row)
    logger.info("[water] +%.2foz challenge=%s date=%s total=%.2f", ounces, challenge.id, day, row.amount)

    # 목표 넘긴 뒤 추가 입력이면 다시 완료로 맞춤 (수동으로 해제했어도)
    if row.goal_met:
        return row, auto_update_task(db, challenge, day, WATER_TASK_ID, True, now=now)
    return row, None


def remove_intake(
    db: Session,
    challenge: Challenge,
    day: dt.date,
    amount,
    unit: str = "oz",
    now: Optional[dt.datetime] = None,
) -> Tuple[WaterIntake, Optional[DailyProgress]]:
    now = now or utc_now()
    ounces = to_ounces(amount, unit)
    row = get_or_create_intake(db, challenge, day)
    was_met = row.goal_met

    row.amount = max(0.0, round((row.amount or 0) - ounces, 2))
    db.commit()
    db.refresh(row)

    return row, _sync_task(db, challenge, day, was_met, row, now)


def update_goal(
    db: Session,
    challenge: Challenge,
    day: dt.date,
    goal,
    unit: str = "oz",
    now: Optional[dt.datetime] = None,
) -> Tuple[WaterIntake, Optional[DailyProgress]]:
    """목표를 바꿔서 달성 여부가 바뀌면 과제도 같이 맞춤"""
    now = now or utc_now()
    goal_oz = to_ounces(goal, unit)
    row = get_or_create_intake(db, challenge, day)
    was_met = row.goal_met

    row.goal = goal_oz
    db.commit()
    db.refresh(row)

    return row, _sync_task(db, challenge, day, was_met, row, now)
