from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from src.auth.dependencies import get_current_user
from src.db.database import get_db
from src.models.users import UserProfile
from src.schemas.schema_challenge import ChallengeResponse
from src.schemas.schema_profile import OnboardingRequest, OnboardingResponse, ProfileResponse
from src.services.errors import ActiveChallengeConflictError
from src.services.profiles import complete_onboarding
from src.services.timezone import current_day_number

router = APIRouter(prefix="/onboarding", tags=["온보딩"])


@router.post("", response_model=OnboardingResponse, status_code=status.HTTP_200_OK)
def onboard(
    body: OnboardingRequest,
    current_user: UserProfile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    [프론트용 요약]

    POST /onboarding
    - Request JSON:
        {
          "display_name": "Sam",
          "timezone": "America/New_York",
          "notifications_enabled": false
        }
    - 프로필 저장 + 오늘(유저 타임존 기준) 시작하는 챌린지 생성 + 환영 알림
    - 두 번 호출해도 활성 챌린지는 1개 (두 번째는 기존 챌린지를 그대로 돌려줌)
    - 400: 모르는 타임존
    """
    try:
        profile, challenge = complete_onboarding(
            db,
            current_user,
            display_name=body.display_name,
            timezone=body.timezone,
            notifications_enabled=body.notifications_enabled,
        )
    except ValueError as e:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, str(e))
    except ActiveChallengeConflictError:
        raise HTTPException(status.HTTP_409_CONFLICT, "Could not create challenge. Please try again.")

    out = ChallengeResponse.model_validate(challenge)
    out.current_day = current_day_number(challenge.start_date, profile.timezone)
    return OnboardingResponse(profile=ProfileResponse.model_validate(profile), challenge=out)
