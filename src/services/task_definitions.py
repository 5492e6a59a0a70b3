# 75 Hard 의 고정 과제 6개 (유저별로 바꿀 수 없음)
from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple


class TaskCategory(str, enum.Enum):
    workout_indoor = "workout_indoor"
    workout_outdoor = "workout_outdoor"
    diet = "diet"
    water = "water"
    reading = "reading"
    progress_photo = "progress_photo"


@dataclass(frozen=True)
class TaskDefinition:
    id: str
    title: str
    description: str
    category: TaskCategory
    icon_name: str
    requires_duration: bool = False
    required_duration: Optional[int] = None  # 분
    requires_photo: bool = False
    requires_notes: bool = False


TASK_DEFINITIONS: Tuple[TaskDefinition, ...] = (
    TaskDefinition(
        id="workout-indoor",
        title="Indoor Workout",
        description="Complete a 45-minute indoor workout",
        category=TaskCategory.workout_indoor,
        icon_name="Dumbbell",
        requires_duration=True,
        required_duration=45,
        requires_notes=True,
    ),
    TaskDefinition(
        id="workout-outdoor",
        title="Outdoor Workout",
        description="Complete a 45-minute outdoor workout",
        category=TaskCategory.workout_outdoor,
        icon_name="Footprints",
        requires_duration=True,
        required_duration=45,
        requires_notes=True,
    ),
    TaskDefinition(
        id="read-nonfiction",
        title="Read 10 Pages",
        description="Read 10 pages of a non-fiction book",
        category=TaskCategory.reading,
        icon_name="BookOpen",
        requires_notes=True,
    ),
    TaskDefinition(
        id="progress-photo",
        title="Progress Photo",
        description="Take a daily progress photo",
        category=TaskCategory.progress_photo,
        icon_name="Camera",
        requires_photo=True,
    ),
    TaskDefinition(
        id="water-intake",
        title="Water Intake",
        description="Drink 1 gallon (3.78L) of water",
        category=TaskCategory.water,
        icon_name="Droplets",
    ),
    TaskDefinition(
        id="follow-diet",
        title="Follow Diet",
        description="Stick to your chosen diet with no cheat meals or alcohol",
        category=TaskCategory.diet,
        icon_name="Apple",
        requires_notes=True,
    ),
)

TASK_IDS: Tuple[str, ...] = tuple(t.id for t in TASK_DEFINITIONS)
TOTAL_TASKS = len(TASK_DEFINITIONS)

_BY_ID: Dict[str, TaskDefinition] = {t.id: t for t in TASK_DEFINITIONS}


def get_task(task_id: str) -> Optional[TaskDefinition]:
    return _BY_ID.get(task_id)


def is_known_task(task_id: str) -> bool:
    return task_id in _BY_ID


def tasks_by_category(category: TaskCategory) -> List[TaskDefinition]:
    return [t for t in TASK_DEFINITIONS if t.category == category]


def task_title(task_id: str) -> str:
    task = _BY_ID.get(task_id)
    return task.title if task else task_id
