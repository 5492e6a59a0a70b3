from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from src.auth.dependencies import get_current_user
from src.db.database import get_db
from src.models.users import UserProfile
from src.schemas.schema_community import CommunityMemberOut, CommunitySummaryOut, LeaderboardResponse
from src.services.community import filter_and_sort, load_members, summarize

router = APIRouter(prefix="/community", tags=["커뮤니티"])


@router.get("/leaderboard", response_model=LeaderboardResponse)
def leaderboard(
    sort: str = Query(default="day", description="day | tasks | name | started"),
    filter: str = Query(default="all", description="all | completed | in-progress"),
    search: Optional[str] = Query(default=None, max_length=120),
    current_user: UserProfile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    [프론트용 요약]

    GET /community/leaderboard?sort=day&filter=all&search=sam
    - 활성 챌린지가 있는 유저만, 현재 일차/오늘 완료 개수는 각자 타임존 기준
    - summary 는 필터 적용 전 전체 기준 (활성 인원, 오늘 전부 완료한 인원, 평균 일차)
    - total_members: 필터 전 인원 ("Showing 3 of 10")
    """
    members = load_members(db, current_user.id)
    try:
        shown = filter_and_sort(members, sort_by=sort, filter_by=filter, search=search)
    except ValueError as e:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, str(e))

    return LeaderboardResponse(
        members=[CommunityMemberOut.model_validate(m) for m in shown],
        summary=CommunitySummaryOut.model_validate(summarize(members)),
        total_members=len(members),
    )
