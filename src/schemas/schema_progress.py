import datetime as dt
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from src.services.task_definitions import TaskCategory


class TaskDefinitionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    description: str
    category: TaskCategory
    icon_name: str
    requires_duration: bool
    required_duration: Optional[int] = None
    requires_photo: bool
    requires_notes: bool


class TaskStateOut(TaskDefinitionOut):
    completed: bool = False
    completed_at: Optional[str] = None
    duration: Optional[int] = None
    notes: Optional[str] = None
    photo_url: Optional[str] = None


class DayProgressResponse(BaseModel):
    challenge_id: int
    date: dt.date
    day_number: int
    tasks: List[TaskStateOut]
    tasks_completed: int
    total_tasks: int
    is_complete: bool
    notes: Optional[str] = None


class ToggleRequest(BaseModel):
    completed: bool


class ToggleResponse(BaseModel):
    task_id: str
    status: str
    task: Dict[str, Any]
    progress: DayProgressResponse


class TaskDetailRequest(BaseModel):
    completed: Optional[bool] = None
    duration: Optional[int] = Field(default=None, ge=0, le=24 * 60)
    notes: Optional[str] = Field(default=None, max_length=2000)
    photo_url: Optional[str] = Field(default=None, max_length=1024)

    def as_update(self) -> Dict[str, Any]:
        return {
            "completed": self.completed,
            "duration": self.duration,
            "notes": self.notes,
            "photoUrl": self.photo_url,
        }


class DayNotesRequest(BaseModel):
    notes: str = Field(..., max_length=10000)


class BatchUpdateRequest(BaseModel):
    tasks: Dict[str, TaskDetailRequest] = Field(..., min_length=1)
