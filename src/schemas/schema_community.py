import datetime as dt
from typing import List, Optional

from pydantic import BaseModel, ConfigDict


class CommunityMemberOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: str
    display_name: str
    avatar_url: Optional[str] = None
    challenge_name: str
    current_day: int
    tasks_completed: int
    total_tasks: int
    started_at: dt.date
    is_current_user: bool


class CommunitySummaryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    active_members: int
    completed_today: int
    average_day: int


class LeaderboardResponse(BaseModel):
    members: List[CommunityMemberOut]
    summary: CommunitySummaryOut
    total_members: int
