# 프로필 관련 API 엔드포인트 (조회/수정/타임존)
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session

from src.auth.dependencies import get_current_user
from src.db.database import get_db
from src.models.users import UserProfile
from src.schemas.schema_profile import ProfileResponse, ProfileUpdateRequest, TimezoneUpdateRequest
from src.services.profiles import update_profile, update_timezone
from src.services.timezone import list_timezones

router = APIRouter(prefix="/profile", tags=["프로필"])


# 전체 프로필 보기
@router.get("/me", response_model=ProfileResponse)
def get_my_profile(current_user: UserProfile = Depends(get_current_user)):
    return ProfileResponse.model_validate(current_user)


# 이름/아바타 수정
@router.put("/me", response_model=ProfileResponse)
def update_my_profile(
    body: ProfileUpdateRequest,
    current_user: UserProfile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    profile = update_profile(db, current_user, display_name=body.display_name, avatar_url=body.avatar_url)
    return ProfileResponse.model_validate(profile)


@router.put("/me/timezone", response_model=ProfileResponse)
def update_my_timezone(
    body: TimezoneUpdateRequest,
    current_user: UserProfile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    [프론트용 요약]

    PUT /profile/me/timezone
    - Request JSON: {"timezone": "Asia/Seoul"}  (IANA 이름)
    - 이후 "오늘", 현재 일차, 리마인더 시각 전부 이 타임존 기준으로 계산됨
    - 이미 저장된 진행 기록의 날짜는 바뀌지 않음
    - 400: 모르는 타임존
    """
    try:
        profile = update_timezone(db, current_user, body.timezone)
    except ValueError as e:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, str(e))
    return ProfileResponse.model_validate(profile)


@router.get("/timezones", response_model=List[str])
def get_timezones():
    return list_timezones()


# 계정 삭제 (챌린지/진행기록/알림 전부 cascade)
@router.delete("/me", status_code=status.HTTP_204_NO_CONTENT)
def delete_my_account(
    current_user: UserProfile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    db.delete(current_user)
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
