# daily_progress 읽기/쓰기 (read-modify-write, 버전 토큰 없음 → last write wins)
from __future__ import annotations

import datetime as dt
import logging
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from src.models.challenge import Challenge
from src.models.daily_progress import DailyProgress
from src.services.errors import ProgressWriteError, UnknownTaskError
from src.services.task_definitions import TASK_IDS, is_known_task
from src.services.timezone import utc_now

logger = logging.getLogger(__name__)

MAX_RETRY = 3

# tasks 서브 레코드에서 보존/갱신하는 선택 필드
_DETAIL_FIELDS = ("duration", "notes", "photoUrl")


def get_progress(db: Session, challenge_id: int, day: dt.date) -> Optional[DailyProgress]:
    """없으면 None (에러 아님: 아직 아무 과제도 안 건드린 날)"""
    return (
        db.execute(
            select(DailyProgress).where(
                DailyProgress.challenge_id == challenge_id,
                DailyProgress.date == day,
            )
        )
        .scalars()
        .first()
    )


def list_progress(
    db: Session,
    challenge_id: int,
    start: Optional[dt.date] = None,
    end: Optional[dt.date] = None,
) -> List[DailyProgress]:
    stmt = select(DailyProgress).where(DailyProgress.challenge_id == challenge_id)
    if start is not None:
        stmt = stmt.where(DailyProgress.date >= start)
    if end is not None:
        stmt = stmt.where(DailyProgress.date <= end)
    return db.execute(stmt.order_by(DailyProgress.date.asc())).scalars().all()


def empty_tasks() -> Dict[str, Dict[str, Any]]:
    return {task_id: {"completed": False, "completedAt": None} for task_id in TASK_IDS}


def task_state(progress: Optional[DailyProgress], task_id: str) -> Dict[str, Any]:
    if progress is None:
        return {"completed": False, "completedAt": None}
    return dict((progress.tasks or {}).get(task_id) or {"completed": False, "completedAt": None})


def _merge_task(
    tasks: Dict[str, Any],
    task_id: str,
    updates: Mapping[str, Any],
    now: dt.datetime,
) -> None:
    if not is_known_task(task_id):
        raise UnknownTaskError(task_id)

    entry = dict(tasks.get(task_id) or {"completed": False, "completedAt": None})
    if "completed" in updates and updates["completed"] is not None:
        completed = bool(updates["completed"])
        if completed and not entry.get("completed"):
            entry["completedAt"] = now.isoformat()
        elif not completed:
            entry["completedAt"] = None
        entry["completed"] = completed

    for key in _DETAIL_FIELDS:
        if key in updates and updates[key] is not None:
            entry[key] = updates[key]

    tasks[task_id] = entry


def apply_task_updates(
    db: Session,
    challenge: Challenge,
    day: dt.date,
    task_updates: Mapping[str, Mapping[str, Any]],
    *,
    notes: Optional[str] = None,
    now: Optional[dt.datetime] = None,
) -> DailyProgress:
    """
    load-or-create → 지정한 과제 서브 레코드만 갱신 → recount → commit

    - task_updates: {task_id: {"completed"?, "duration"?, "notes"?, "photoUrl"?}}
    - 같은 (challenge, date) 를 동시에 insert 하면 유니크 충돌 → 다시 읽어서 재시도
    """
    now = now or utc_now()
    for task_id in task_updates:
        if not is_known_task(task_id):
            raise UnknownTaskError(task_id)

    for _ in range(MAX_RETRY):
        row = get_progress(db, challenge.id, day)
        if row is None:
            row = DailyProgress(
                user_id=challenge.user_id,
                challenge_id=challenge.id,
                date=day,
                tasks={},
                tasks_completed=0,
                is_complete=False,
            )
            db.add(row)

        # JSON 컬럼은 새 dict 를 대입해야 변경 감지됨
        tasks = dict(row.tasks or {})
        for task_id, updates in task_updates.items():
            _merge_task(tasks, task_id, updates, now)
        row.tasks = tasks
        if notes is not None:
            row.notes = notes
        row.recount()

        try:
            db.commit()
            db.refresh(row)
            return row
        except IntegrityError:
            db.rollback()
            logger.info("[progress] concurrent insert challenge=%s date=%s -> retry", challenge.id, day)
            continue

    raise ProgressWriteError(f"daily_progress write failed after {MAX_RETRY} attempts")


def set_task_completed(
    db: Session,
    challenge: Challenge,
    day: dt.date,
    task_id: str,
    completed: bool,
    now: Optional[dt.datetime] = None,
) -> DailyProgress:
    return apply_task_updates(db, challenge, day, {task_id: {"completed": completed}}, now=now)


def complete_task(
    db: Session,
    challenge: Challenge,
    day: dt.date,
    task_id: str,
    *,
    duration: Optional[int] = None,
    notes: Optional[str] = None,
    photo_url: Optional[str] = None,
    now: Optional[dt.datetime] = None,
) -> DailyProgress:
    """타이머/사진 업로드 등에서 자동 완료할 때"""
    updates = {"completed": True, "duration": duration, "notes": notes, "photoUrl": photo_url}
    return apply_task_updates(db, challenge, day, {task_id: updates}, now=now)


def set_day_notes(
    db: Session,
    challenge: Challenge,
    day: dt.date,
    notes: str,
    now: Optional[dt.datetime] = None,
) -> DailyProgress:
    return apply_task_updates(db, challenge, day, {}, notes=notes, now=now)


def auto_update_task(
    db: Session,
    challenge: Challenge,
    day: dt.date,
    task_id: str,
    completed: bool,
    *,
    duration: Optional[int] = None,
    notes: Optional[str] = None,
    now: Optional[dt.datetime] = None,
) -> Optional[DailyProgress]:
    """
    물/운동/걷기 기록에 딸린 과제 자동 완료/해제
    - 기록 자체는 이미 저장된 상태라 과제 쓰기 실패는 경고 로그만 남기고 None
    """
    updates = {"completed": completed, "duration": duration, "notes": notes}
    try:
        return apply_task_updates(db, challenge, day, {task_id: updates}, now=now)
    except (ProgressWriteError, SQLAlchemyError) as e:
        db.rollback()
        logger.warning(
            "[progress] auto %s failed challenge=%s date=%s task=%s err=%s",
            "complete" if completed else "uncomplete", challenge.id, day, task_id, e,
        )
        return None
