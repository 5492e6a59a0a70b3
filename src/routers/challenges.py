# src/routers/challenges.py
from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from src.auth.dependencies import get_active_challenge_or_404, get_current_user
from src.db.database import get_db
from src.models.challenge import Challenge
from src.models.users import UserProfile
from src.schemas.schema_challenge import (
    CalendarDayOut,
    CalendarResponse,
    CalendarStatsOut,
    ChallengeResponse,
    DayNumberResponse,
    MilestonesOut,
    RestartRequest,
    StreakDetailResponse,
    StreakResponse,
    StreakRunOut,
)
from src.services.calendar import calendar_stats, generate_calendar, progress_map
from src.services.challenges import (
    DEFAULT_CHALLENGE_NAME,
    get_challenge,
    get_or_create_active_challenge,
    list_challenges,
    restart_challenge,
)
from src.services.daily_progress import list_progress
from src.services.errors import ActiveChallengeConflictError
from src.services.streaks import compute_streak, day_entries, milestones, streak_history
from src.services.timezone import (
    CHALLENGE_LENGTH_DAYS,
    current_day_number,
    today_in_timezone,
)

router = APIRouter(prefix="/challenges", tags=["챌린지"])


# --------------------- 내부 유틸 ---------------------
def to_response(challenge: Challenge, tz_name: str) -> ChallengeResponse:
    out = ChallengeResponse.model_validate(challenge)
    if challenge.is_active:
        out.current_day = current_day_number(challenge.start_date, tz_name)
    return out


def _owned_challenge(db: Session, user: UserProfile, challenge_id: Optional[int]) -> Challenge:
    if challenge_id is None:
        return get_active_challenge_or_404(user, db)
    challenge = get_challenge(db, user.id, challenge_id)
    if challenge is None:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Challenge not found")
    return challenge


# --------------------- 활성 챌린지 ---------------------
@router.get("/active", response_model=ChallengeResponse)
def get_active(
    current_user: UserProfile = Depends(get_current_user),
    challenge: Challenge = Depends(get_active_challenge_or_404),
):
    return to_response(challenge, current_user.timezone)


@router.post("/active", response_model=ChallengeResponse)
def ensure_active(
    current_user: UserProfile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    [프론트용 요약]

    POST /challenges/active
    - 활성 챌린지가 없으면 오늘(유저 타임존) 시작으로 만들고, 있으면 그대로 돌려줌
    - 여러 번/동시에 호출해도 활성 챌린지는 항상 1개
    """
    try:
        challenge = get_or_create_active_challenge(db, current_user)
    except ActiveChallengeConflictError:
        raise HTTPException(status.HTTP_409_CONFLICT, "Could not create challenge. Please try again.")
    return to_response(challenge, current_user.timezone)


@router.post("/restart", response_model=ChallengeResponse, status_code=status.HTTP_201_CREATED)
def restart(
    body: Optional[RestartRequest] = None,
    current_user: UserProfile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    [프론트용 요약]

    POST /challenges/restart
    - 지금 활성 챌린지는 비활성화 (기록은 history 에 남음), 오늘부터 1일차 새 챌린지
    - Request JSON (선택): {"name": "Round 2"}
    """
    name = body.name if body and body.name else DEFAULT_CHALLENGE_NAME
    try:
        challenge = restart_challenge(db, current_user, name=name)
    except ActiveChallengeConflictError:
        raise HTTPException(status.HTTP_409_CONFLICT, "Could not restart challenge. Please try again.")
    return to_response(challenge, current_user.timezone)


@router.get("/history", response_model=List[ChallengeResponse])
def history(
    current_user: UserProfile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return [to_response(c, current_user.timezone) for c in list_challenges(db, current_user.id)]


# --------------------- 일차 / 달력 / 스트릭 ---------------------
@router.get("/active/day", response_model=DayNumberResponse)
def get_day_number(
    current_user: UserProfile = Depends(get_current_user),
    challenge: Challenge = Depends(get_active_challenge_or_404),
):
    day_number = current_day_number(challenge.start_date, current_user.timezone)
    return DayNumberResponse(
        challenge_id=challenge.id,
        day_number=day_number,
        total_days=CHALLENGE_LENGTH_DAYS,
        date=today_in_timezone(current_user.timezone),
        timezone=current_user.timezone,
    )


@router.get("/calendar", response_model=CalendarResponse)
def get_calendar(
    challenge_id: Optional[int] = None,
    current_user: UserProfile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    [프론트용 요약]

    GET /challenges/calendar[?challenge_id=3]
    - 75칸 달력: day_number, date, status(today|future|complete|partial|incomplete), hidden
    - challenge_id 없으면 활성 챌린지
    - stats: 상태별 개수, 현재/최장 스트릭, 지난 날 기준 완료율(%)
    """
    challenge = _owned_challenge(db, current_user, challenge_id)
    records = list_progress(db, challenge.id)
    days = generate_calendar(challenge.start_date, progress_map(records, challenge.start_date), current_user.timezone)
    current_day = current_day_number(challenge.start_date, current_user.timezone)

    return CalendarResponse(
        challenge_id=challenge.id,
        current_day=current_day,
        days=[CalendarDayOut.model_validate(d) for d in days],
        stats=CalendarStatsOut(**calendar_stats(days, today_in_timezone(current_user.timezone))),
    )


@router.get("/streak", response_model=StreakDetailResponse)
def get_streak(
    challenge_id: Optional[int] = None,
    current_user: UserProfile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    challenge = _owned_challenge(db, current_user, challenge_id)
    today = today_in_timezone(current_user.timezone)
    entries = day_entries(list_progress(db, challenge.id, end=today))

    streak = compute_streak(entries, today)
    return StreakDetailResponse(
        streak=StreakResponse.model_validate(streak),
        history=[StreakRunOut.model_validate(r) for r in streak_history(entries, today)],
        milestones=MilestonesOut.model_validate(milestones(streak.total_completed_days)),
    )


@router.get("/{challenge_id}", response_model=ChallengeResponse)
def get_one(
    challenge_id: int,
    current_user: UserProfile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    challenge = _owned_challenge(db, current_user, challenge_id)
    return to_response(challenge, current_user.timezone)

