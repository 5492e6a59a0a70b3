# src/routers/progress.py
from __future__ import annotations

import dataclasses
import datetime as dt
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from src.auth.dependencies import get_active_challenge_or_404, get_current_user
from src.db.database import get_db
from src.models.challenge import Challenge
from src.models.daily_progress import DailyProgress
from src.models.users import UserProfile
from src.schemas.schema_progress import (
    BatchUpdateRequest,
    DayNotesRequest,
    DayProgressResponse,
    TaskDefinitionOut,
    TaskDetailRequest,
    TaskStateOut,
    ToggleRequest,
    ToggleResponse,
)
from src.services.daily_progress import (
    apply_task_updates,
    get_progress,
    list_progress,
    set_day_notes,
    set_task_completed,
    task_state,
)
from src.services.errors import (
    DayOutOfRangeError,
    MutationInFlightError,
    ProgressWriteError,
    TrackerError,
    UnknownTaskError,
)
from src.services.inflight import PendingMutation, task_toggle_guard, toggle_key
from src.services.notifications import notify_day_complete
from src.services.streak_alerts import check_streak
from src.services.task_definitions import TASK_DEFINITIONS, is_known_task
from src.services.timezone import day_number_for_date, ensure_day_in_challenge, parse_date, today_in_timezone

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/progress", tags=["진행기록"])

WRITE_FAILED = "Failed to save your progress. Please try again."


# --------------------- 내부 유틸 ---------------------
def resolve_day(value: str, challenge: Challenge, tz_name: str, writable: bool = False) -> dt.date:
    """"today" 또는 YYYY-MM-DD → 챌린지 범위 안의 날짜"""
    today = today_in_timezone(tz_name)
    if value == "today":
        day = today
    else:
        try:
            day = parse_date(value)
        except ValueError:
            raise HTTPException(status.HTTP_400_BAD_REQUEST, "date must be YYYY-MM-DD or 'today'")

    try:
        ensure_day_in_challenge(challenge.start_date, day, today if writable else None)
    except DayOutOfRangeError as e:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, str(e))
    return day


def day_payload(challenge: Challenge, day: dt.date, progress: Optional[DailyProgress]) -> DayProgressResponse:
    """기록이 없는 날은 빈 상태 (에러 아님)"""
    tasks = []
    for definition in TASK_DEFINITIONS:
        state = task_state(progress, definition.id)
        tasks.append(
            TaskStateOut(
                **dataclasses.asdict(definition),
                completed=bool(state.get("completed")),
                completed_at=state.get("completedAt"),
                duration=state.get("duration"),
                notes=state.get("notes"),
                photo_url=state.get("photoUrl"),
            )
        )

    return DayProgressResponse(
        challenge_id=challenge.id,
        date=day,
        day_number=day_number_for_date(challenge.start_date, day),
        tasks=tasks,
        tasks_completed=progress.tasks_completed if progress else 0,
        total_tasks=len(TASK_DEFINITIONS),
        is_complete=bool(progress.is_complete) if progress else False,
        notes=progress.notes if progress else None,
    )


def after_write(db: Session, user: UserProfile, challenge: Challenge, day: dt.date, was_complete: bool, row: DailyProgress) -> None:
    """하루가 방금 완료됐으면 앱 알림 + 스트릭 점검 (실패해도 저장은 유지)"""
    if was_complete or not row.is_complete:
        return
    try:
        notify_day_complete(db, user.id, day_number_for_date(challenge.start_date, day))
        check_streak(db, user, challenge)
    except (SQLAlchemyError, TrackerError) as e:
        db.rollback()
        logger.warning("[progress] post-completion hooks failed challenge=%s date=%s err=%s", challenge.id, day, e)


def _write_failed(e: Exception, challenge: Challenge, day: dt.date) -> HTTPException:
    logger.warning("[progress] write failed challenge=%s date=%s err=%s", challenge.id, day, e)
    return HTTPException(status.HTTP_503_SERVICE_UNAVAILABLE, WRITE_FAILED)


# --------------------- 조회 ---------------------
@router.get("/tasks", response_model=List[TaskDefinitionOut])
def get_task_definitions():
    return [TaskDefinitionOut(**dataclasses.asdict(t)) for t in TASK_DEFINITIONS]


@router.get("", response_model=List[DayProgressResponse])
def get_range(
    start: Optional[dt.date] = Query(default=None),
    end: Optional[dt.date] = Query(default=None),
    challenge: Challenge = Depends(get_active_challenge_or_404),
    db: Session = Depends(get_db),
):
    """
    [프론트용 요약]

    GET /progress?start=2024-01-01&end=2024-01-07
    - 기록이 있는 날만 날짜 오름차순 (없는 날은 빠짐)
    - start/end 생략하면 챌린지 전체
    """
    if start and end and start > end:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "start must be before end")
    rows = list_progress(db, challenge.id, start, end)
    return [day_payload(challenge, r.date, r) for r in rows]


@router.get("/{day}", response_model=DayProgressResponse)
def get_day(
    day: str,
    current_user: UserProfile = Depends(get_current_user),
    challenge: Challenge = Depends(get_active_challenge_or_404),
    db: Session = Depends(get_db),
):
    target = resolve_day(day, challenge, current_user.timezone)
    return day_payload(challenge, target, get_progress(db, challenge.id, target))


# --------------------- 쓰기 ---------------------
@router.post("/{day}/tasks/{task_id}/toggle", response_model=ToggleResponse)
def toggle_task(
    day: str,
    task_id: str,
    body: ToggleRequest,
    current_user: UserProfile = Depends(get_current_user),
    challenge: Challenge = Depends(get_active_challenge_or_404),
    db: Session = Depends(get_db),
):
    """
    [프론트용 요약]

    POST /progress/{date|today}/tasks/{task_id}/toggle
    - Request JSON: {"completed": true}
    - 같은 과제 토글이 아직 처리 중이면 409 (두 번째 요청은 버려짐, 대기/병합 X)
    - 저장 실패 → 503, detail.task 에 토글 전 상태가 들어있음 → 화면을 그 값으로 되돌리면 됨
    - 같은 값으로 여러 번 보내도 결과 동일 (completedAt 은 처음 완료 시각 유지)
    """
    if not is_known_task(task_id):
        raise HTTPException(status.HTTP_404_NOT_FOUND, f"Unknown task: {task_id}")
    target = resolve_day(day, challenge, current_user.timezone, writable=True)

    try:
        with task_toggle_guard.hold(toggle_key(current_user.id, target, task_id)):
            existing = get_progress(db, challenge.id, target)
            was_complete = bool(existing.is_complete) if existing else False
            previous = task_state(existing, task_id)
            mutation = PendingMutation(
                key=(current_user.id, target, task_id),
                previous=previous,
                optimistic={**previous, "completed": body.completed},
            )

            try:
                row = set_task_completed(db, challenge, target, task_id, body.completed)
            except (ProgressWriteError, SQLAlchemyError) as e:
                db.rollback()
                mutation.roll_back(str(e))
                logger.warning(
                    "[progress] toggle rolled back challenge=%s date=%s task=%s err=%s",
                    challenge.id, target, task_id, e,
                )
                raise HTTPException(
                    status.HTTP_503_SERVICE_UNAVAILABLE,
                    {
                        "message": WRITE_FAILED,
                        "task_id": task_id,
                        "status": mutation.state.value,
                        "task": mutation.current,
                    },
                )

            mutation.confirm(task_state(row, task_id))
    except MutationInFlightError:
        raise HTTPException(status.HTTP_409_CONFLICT, "This task is already being updated")

    after_write(db, current_user, challenge, target, was_complete, row)
    return ToggleResponse(
        task_id=task_id,
        status=mutation.state.value,
        task=mutation.current,
        progress=day_payload(challenge, target, row),
    )


@router.patch("/{day}/tasks/{task_id}", response_model=DayProgressResponse)
def update_task_details(
    day: str,
    task_id: str,
    body: TaskDetailRequest,
    current_user: UserProfile = Depends(get_current_user),
    challenge: Challenge = Depends(get_active_challenge_or_404),
    db: Session = Depends(get_db),
):
    """운동 시간/메모/사진 URL 등 세부 정보 (completed 도 같이 보낼 수 있음)"""
    if not is_known_task(task_id):
        raise HTTPException(status.HTTP_404_NOT_FOUND, f"Unknown task: {task_id}")
    target = resolve_day(day, challenge, current_user.timezone, writable=True)

    existing = get_progress(db, challenge.id, target)
    was_complete = bool(existing.is_complete) if existing else False
    try:
        row = apply_task_updates(db, challenge, target, {task_id: body.as_update()})
    except (ProgressWriteError, SQLAlchemyError) as e:
        db.rollback()
        raise _write_failed(e, challenge, target)

    after_write(db, current_user, challenge, target, was_complete, row)
    return day_payload(challenge, target, row)


@router.post("/{day}/batch", response_model=DayProgressResponse)
def batch_update(
    day: str,
    body: BatchUpdateRequest,
    current_user: UserProfile = Depends(get_current_user),
    challenge: Challenge = Depends(get_active_challenge_or_404),
    db: Session = Depends(get_db),
):
    """
    [프론트용 요약]

    POST /progress/{date|today}/batch
    - Request JSON: {"tasks": {"water-intake": {"completed": true}, "workout-indoor": {"duration": 50}}}
    - 한 번에 저장 (전부 성공 또는 전부 실패)
    - 모르는 task id 가 하나라도 있으면 400
    """
    target = resolve_day(day, challenge, current_user.timezone, writable=True)

    existing = get_progress(db, challenge.id, target)
    was_complete = bool(existing.is_complete) if existing else False
    try:
        row = apply_task_updates(
            db, challenge, target, {task_id: req.as_update() for task_id, req in body.tasks.items()}
        )
    except UnknownTaskError as e:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, str(e))
    except (ProgressWriteError, SQLAlchemyError) as e:
        db.rollback()
        raise _write_failed(e, challenge, target)

    after_write(db, current_user, challenge, target, was_complete, row)
    return day_payload(challenge, target, row)


@router.put("/{day}/notes", response_model=DayProgressResponse)
def update_day_notes(
    day: str,
    body: DayNotesRequest,
    current_user: UserProfile = Depends(get_current_user),
    challenge: Challenge = Depends(get_active_challenge_or_404),
    db: Session = Depends(get_db),
):
    target = resolve_day(day, challenge, current_user.timezone, writable=True)
    try:
        row = set_day_notes(db, challenge, target, body.notes)
    except (ProgressWriteError, SQLAlchemyError) as e:
        db.rollback()
        raise _write_failed(e, challenge, target)
    return day_payload(challenge, target, row)
