import datetime as dt
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from src.schemas.schema_progress import DayProgressResponse


class WorkoutCreateRequest(BaseModel):
    date: str = "today"
    duration: int = Field(..., gt=0, le=24 * 60 * 60, description="초")
    task_id: Optional[Literal["workout-indoor", "workout-outdoor"]] = None
    notes: Optional[str] = Field(default=None, max_length=2000)


class WorkoutOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    challenge_id: int
    date: dt.date
    duration: int
    task_id: Optional[str] = None
    notes: Optional[str] = None
    completed_at: dt.datetime


class WorkoutSaveResponse(BaseModel):
    workout: WorkoutOut
    task_completed: Optional[str] = None
    progress: Optional[DayProgressResponse] = None


class WorkoutStatsOut(BaseModel):
    count: int
    total_duration: int
    avg_duration: int


class WalkCreateRequest(BaseModel):
    date: str = "today"
    duration: int = Field(..., gt=0, le=24 * 60 * 60, description="초")
    distance: float = Field(default=0, ge=0, le=1000)
    distance_unit: Literal["miles", "km"] = "miles"
    walk_type: Literal["outdoor", "indoor"] = "outdoor"
    notes: Optional[str] = Field(default=None, max_length=2000)


class WalkOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    challenge_id: int
    date: dt.date
    duration: int
    distance: float
    distance_unit: str
    walk_type: str
    task_id: Optional[str] = None
    notes: Optional[str] = None
    completed_at: dt.datetime


class WalkSaveResponse(BaseModel):
    walk: WalkOut
    task_completed: Optional[str] = None
    progress: Optional[DayProgressResponse] = None


class WalkStatsOut(BaseModel):
    count: int
    total_distance: float
    total_duration: int
    avg_pace: float
    avg_pace_label: str
