import datetime as dt
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from src.schemas.schema_progress import DayProgressResponse

WaterUnit = Literal["oz", "cups", "ml", "liters"]


class WaterAmountRequest(BaseModel):
    amount: float = Field(..., gt=0, le=10000)
    unit: WaterUnit = "oz"


class WaterGoalRequest(BaseModel):
    goal: float = Field(..., gt=0, le=10000)
    unit: WaterUnit = "oz"


class WaterIntakeOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    challenge_id: int
    date: dt.date
    amount: float
    goal: float
    unit: str
    intake_log: List[Dict[str, Any]] = []
    goal_met: bool
    remaining: float
    percentage: float


class WaterUpdateResponse(BaseModel):
    intake: WaterIntakeOut
    progress: Optional[DayProgressResponse] = None
