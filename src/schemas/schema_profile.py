import datetime as dt
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from src.schemas.schema_challenge import ChallengeResponse


class ProfileResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    display_name: Optional[str] = None
    timezone: str
    onboarding_completed: bool
    avatar_url: Optional[str] = None
    created_at: Optional[dt.datetime] = None


class ProfileUpdateRequest(BaseModel):
    display_name: Optional[str] = Field(default=None, min_length=1, max_length=120)
    avatar_url: Optional[str] = Field(default=None, max_length=512)


class TimezoneUpdateRequest(BaseModel):
    timezone: str = Field(..., min_length=1)


class OnboardingRequest(BaseModel):
    display_name: str = Field(..., min_length=1, max_length=120)
    timezone: str = Field(..., min_length=1)
    notifications_enabled: bool = False


class OnboardingResponse(BaseModel):
    profile: ProfileResponse
    challenge: ChallengeResponse
