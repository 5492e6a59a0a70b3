# 운동 타이머 기록 (45분 이상이면 운동 과제 자동 완료)
import datetime as dt
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from src.auth.dependencies import get_active_challenge_or_404, get_current_user
from src.db.database import get_db
from src.models.challenge import Challenge
from src.models.users import UserProfile
from src.routers.progress import WRITE_FAILED, after_write, day_payload, resolve_day
from src.schemas.schema_workout import WorkoutCreateRequest, WorkoutOut, WorkoutSaveResponse, WorkoutStatsOut
from src.services.daily_progress import get_progress
from src.services.errors import InvalidEntryError
from src.services.timezone import today_in_timezone
from src.services.workout_history import list_workouts, save_workout, workout_stats

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/workouts", tags=["운동"])


@router.post("", response_model=WorkoutSaveResponse, status_code=status.HTTP_201_CREATED)
def create(
    body: WorkoutCreateRequest,
    current_user: UserProfile = Depends(get_current_user),
    challenge: Challenge = Depends(get_active_challenge_or_404),
    db: Session = Depends(get_db),
):
    """
    [프론트용 요약]

    POST /workouts
    - Request JSON: {"date": "today", "duration": 2760, "notes": "legs"}   duration 은 초
    - 2700초(45분) 이상이면 과제 자동 완료
        task_id 를 주면 그 과제, 안 주면 그날 아직 안 끝난 운동 과제 (indoor 먼저)
    - task_completed: 자동 완료된 과제 id (없으면 null)
    """
    target = resolve_day(body.date, challenge, current_user.timezone, writable=True)
    existing = get_progress(db, challenge.id, target)
    was_complete = bool(existing.is_complete) if existing else False

    try:
        row, progress = save_workout(db, challenge, target, body.duration, task_id=body.task_id, notes=body.notes)
    except InvalidEntryError as e:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, str(e))
    except SQLAlchemyError as e:
        db.rollback()
        logger.warning("[workouts] save failed challenge=%s date=%s err=%s", challenge.id, target, e)
        raise HTTPException(status.HTTP_503_SERVICE_UNAVAILABLE, WRITE_FAILED)

    out = WorkoutOut.model_validate(row)
    if progress is not None:
        after_write(db, current_user, challenge, target, was_complete, progress)
    else:
        progress = get_progress(db, challenge.id, target)
    return WorkoutSaveResponse(
        workout=out,
        task_completed=out.task_id,
        progress=day_payload(challenge, target, progress),
    )


@router.get("", response_model=List[WorkoutOut])
def history(
    start: Optional[dt.date] = Query(default=None),
    end: Optional[dt.date] = Query(default=None),
    challenge: Challenge = Depends(get_active_challenge_or_404),
    db: Session = Depends(get_db),
):
    return [WorkoutOut.model_validate(w) for w in list_workouts(db, challenge.id, start, end)]


@router.get("/stats", response_model=WorkoutStatsOut)
def stats(
    days: int = Query(default=7, ge=1, le=75),
    current_user: UserProfile = Depends(get_current_user),
    challenge: Challenge = Depends(get_active_challenge_or_404),
    db: Session = Depends(get_db),
):
    end = today_in_timezone(current_user.timezone)
    return WorkoutStatsOut.model_validate(workout_stats(db, challenge.id, end, days))
