# 물 섭취 기록 (목표 달성 시 water-intake 과제 자동 완료)
import logging
from typing import Callable, List

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from src.auth.dependencies import get_active_challenge_or_404, get_current_user
from src.db.database import get_db
from src.models.challenge import Challenge
from src.models.users import UserProfile
from src.routers.progress import WRITE_FAILED, after_write, day_payload, resolve_day
from src.schemas.schema_water import WaterAmountRequest, WaterGoalRequest, WaterIntakeOut, WaterUpdateResponse
from src.services.daily_progress import get_progress
from src.services.errors import InvalidEntryError, ProgressWriteError
from src.services.timezone import today_in_timezone
from src.services.water_intake import (
    DEFAULT_GOAL_OZ,
    add_intake,
    get_intake,
    list_intake,
    remove_intake,
    update_goal,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/water", tags=["물"])


def _write(
    db: Session,
    user: UserProfile,
    challenge: Challenge,
    day: str,
    action: Callable,
    value: float,
    unit: str,
) -> WaterUpdateResponse:
    target = resolve_day(day, challenge, user.timezone, writable=True)
    existing = get_progress(db, challenge.id, target)
    was_complete = bool(existing.is_complete) if existing else False

    try:
        intake, progress = action(db, challenge, target, value, unit)
    except InvalidEntryError as e:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, str(e))
    except (ProgressWriteError, SQLAlchemyError) as e:
        db.rollback()
        logger.warning("[water] write failed challenge=%s date=%s err=%s", challenge.id, target, e)
        raise HTTPException(status.HTTP_503_SERVICE_UNAVAILABLE, WRITE_FAILED)

    out = WaterIntakeOut.model_validate(intake)
    if progress is not None:
        after_write(db, user, challenge, target, was_complete, progress)
    else:
        progress = get_progress(db, challenge.id, target)
    return WaterUpdateResponse(intake=out, progress=day_payload(challenge, target, progress))


@router.get("/history", response_model=List[WaterIntakeOut])
def history(
    days: int = Query(default=7, ge=1, le=75),
    current_user: UserProfile = Depends(get_current_user),
    challenge: Challenge = Depends(get_active_challenge_or_404),
    db: Session = Depends(get_db),
):
    end = today_in_timezone(current_user.timezone)
    return [WaterIntakeOut.model_validate(r) for r in list_intake(db, challenge.id, end, days)]


@router.get("/{day}", response_model=WaterIntakeOut)
def get_day(
    day: str,
    current_user: UserProfile = Depends(get_current_user),
    challenge: Challenge = Depends(get_active_challenge_or_404),
    db: Session = Depends(get_db),
):
    """기록이 없는 날은 0oz / 목표 128oz 로 응답 (조회만으로 row 를 만들지 않음)"""
    target = resolve_day(day, challenge, current_user.timezone)
    row = get_intake(db, challenge.id, target)
    if row is not None:
        return WaterIntakeOut.model_validate(row)
    return WaterIntakeOut(
        challenge_id=challenge.id,
        date=target,
        amount=0,
        goal=DEFAULT_GOAL_OZ,
        unit="oz",
        intake_log=[],
        goal_met=False,
        remaining=DEFAULT_GOAL_OZ,
        percentage=0,
    )


@router.post("/{day}/add", response_model=WaterUpdateResponse)
def add(
    day: str,
    body: WaterAmountRequest,
    current_user: UserProfile = Depends(get_current_user),
    challenge: Challenge = Depends(get_active_challenge_or_404),
    db: Session = Depends(get_db),
):
    """
    [프론트용 요약]

    POST /water/{date|today}/add
    - Request JSON: {"amount": 16, "unit": "oz"}   unit: oz | cups | ml | liters
    - 저장은 oz 로 환산, 목표(기본 128oz) 넘으면 water-intake 과제 자동 완료
    - progress: 그날 체크리스트 상태 (과제 자동 완료 결과 확인용)
    """
    return _write(db, current_user, challenge, day, add_intake, body.amount, body.unit)


@router.post("/{day}/remove", response_model=WaterUpdateResponse)
def remove(
    day: str,
    body: WaterAmountRequest,
    current_user: UserProfile = Depends(get_current_user),
    challenge: Challenge = Depends(get_active_challenge_or_404),
    db: Session = Depends(get_db),
):
    """잘못 누른 것 되돌리기, 목표 아래로 내려가면 과제 자동 해제"""
    return _write(db, current_user, challenge, day, remove_intake, body.amount, body.unit)


@router.put("/{day}/goal", response_model=WaterUpdateResponse)
def set_goal(
    day: str,
    body: WaterGoalRequest,
    current_user: UserProfile = Depends(get_current_user),
    challenge: Challenge = Depends(get_active_challenge_or_404),
    db: Session = Depends(get_db),
):
    return _write(db, current_user, challenge, day, update_goal, body.goal, body.unit)
