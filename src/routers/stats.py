from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from src.auth.dependencies import get_active_challenge_or_404, get_current_user
from src.db.database import get_db
from src.models.challenge import Challenge
from src.models.users import UserProfile
from src.schemas.schema_stats import MonthlyStatsOut, OverallStatsOut, ProgressTrendOut, WeeklyStatsOut
from src.services.statistics import get_monthly_stats, get_overall_stats, get_progress_trends, get_weekly_stats

router = APIRouter(prefix="/stats", tags=["통계"])


@router.get("/weekly", response_model=WeeklyStatsOut)
def weekly(
    offset: int = Query(default=0, ge=0, le=52, description="0 = 이번 주(일요일 시작), 1 = 지난 주"),
    current_user: UserProfile = Depends(get_current_user),
    challenge: Challenge = Depends(get_active_challenge_or_404),
    db: Session = Depends(get_db),
):
    return WeeklyStatsOut.model_validate(get_weekly_stats(db, challenge, current_user.timezone, offset))


@router.get("/monthly", response_model=MonthlyStatsOut)
def monthly(
    offset: int = Query(default=0, ge=0, le=12, description="0 = 이번 달"),
    current_user: UserProfile = Depends(get_current_user),
    challenge: Challenge = Depends(get_active_challenge_or_404),
    db: Session = Depends(get_db),
):
    """
    [프론트용 요약]

    GET /stats/monthly?offset=0
    - weekly_breakdown: 그 달과 겹치는 일~토 주 (기록 없는 주는 빠짐)
    - best_week / worst_week: 완료율 기준, 동률이면 앞 주
    """
    return MonthlyStatsOut.model_validate(get_monthly_stats(db, challenge, current_user.timezone, offset))


@router.get("/overall", response_model=OverallStatsOut)
def overall(
    current_user: UserProfile = Depends(get_current_user),
    challenge: Challenge = Depends(get_active_challenge_or_404),
    db: Session = Depends(get_db),
):
    return OverallStatsOut.model_validate(get_overall_stats(db, challenge, current_user.timezone))


@router.get("/trends", response_model=List[ProgressTrendOut])
def trends(
    days: int = Query(default=30, ge=1, le=75),
    challenge: Challenge = Depends(get_active_challenge_or_404),
    db: Session = Depends(get_db),
):
    return [ProgressTrendOut.model_validate(t) for t in get_progress_trends(db, challenge, days)]
