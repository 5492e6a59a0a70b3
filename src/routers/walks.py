# 걷기 기록 (야외 45분 이상이면 workout-outdoor 자동 완료)
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
from src.schemas.schema_workout import WalkCreateRequest, WalkOut, WalkSaveResponse, WalkStatsOut
from src.services.daily_progress import get_progress
from src.services.errors import InvalidEntryError
from src.services.timezone import today_in_timezone
from src.services.workout_history import has_outdoor_walk, list_walks, save_walk, walk_stats

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/walks", tags=["걷기"])


@router.post("", response_model=WalkSaveResponse, status_code=status.HTTP_201_CREATED)
def create(
    body: WalkCreateRequest,
    current_user: UserProfile = Depends(get_current_user),
    challenge: Challenge = Depends(get_active_challenge_or_404),
    db: Session = Depends(get_db),
):
    """
    [프론트용 요약]

    POST /walks
    - Request JSON: {"date": "today", "duration": 2800, "distance": 2.4, "distance_unit": "miles", "walk_type": "outdoor"}
    - outdoor + 2700초 이상이면 workout-outdoor 자동 완료 (indoor 는 기록만)
    """
    target = resolve_day(body.date, challenge, current_user.timezone, writable=True)
    existing = get_progress(db, challenge.id, target)
    was_complete = bool(existing.is_complete) if existing else False

    try:
        row, progress = save_walk(
            db, challenge, target, body.duration, body.distance, body.distance_unit, body.walk_type,
            notes=body.notes,
        )
    except InvalidEntryError as e:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, str(e))
    except SQLAlchemyError as e:
        db.rollback()
        logger.warning("[walks] save failed challenge=%s date=%s err=%s", challenge.id, target, e)
        raise HTTPException(status.HTTP_503_SERVICE_UNAVAILABLE, WRITE_FAILED)

    out = WalkOut.model_validate(row)
    if progress is not None:
        after_write(db, current_user, challenge, target, was_complete, progress)
    else:
        progress = get_progress(db, challenge.id, target)
    return WalkSaveResponse(walk=out, task_completed=out.task_id, progress=day_payload(challenge, target, progress))


@router.get("", response_model=List[WalkOut])
def history(
    start: Optional[dt.date] = Query(default=None),
    end: Optional[dt.date] = Query(default=None),
    challenge: Challenge = Depends(get_active_challenge_or_404),
    db: Session = Depends(get_db),
):
    return [WalkOut.model_validate(w) for w in list_walks(db, challenge.id, start, end)]


@router.get("/stats", response_model=WalkStatsOut)
def stats(
    days: int = Query(default=7, ge=1, le=75),
    current_user: UserProfile = Depends(get_current_user),
    challenge: Challenge = Depends(get_active_challenge_or_404),
    db: Session = Depends(get_db),
):
    end = today_in_timezone(current_user.timezone)
    return WalkStatsOut.model_validate(walk_stats(db, challenge.id, end, days))


@router.get("/{day}/outdoor")
def outdoor_done(
    day: str,
    current_user: UserProfile = Depends(get_current_user),
    challenge: Challenge = Depends(get_active_challenge_or_404),
    db: Session = Depends(get_db),
):
    target = resolve_day(day, challenge, current_user.timezone)
    return {"date": target, "outdoor_walk": has_outdoor_walk(db, challenge.id, target)}
