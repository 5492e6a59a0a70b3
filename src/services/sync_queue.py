"""
오프라인 큐 재생 (POST /sync)

클라이언트가 오프라인 동안 쌓아둔 변경을 한 번에 보내면 항목별로 독립 적용
- 성공 → synced
- 실패 → retries + 1, MAX_RETRIES 미만이면 클라이언트가 다시 보내도록 failed 로 돌려줌
- MAX_RETRIES 도달 → 큐에서 버림 (재시도 X), 경고 로그 + 앱 알림 "Sync Failed"
- 날짜는 HTTP 쓰기와 같은 규칙 (챌린지 1~75일, 유저 타임존 기준 오늘까지)
- 모양이 틀린 항목도 실패로 셈 → 몇 번을 보내도 결국 버려짐
"""
from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from src.models.challenge import Challenge
from src.models.users import UserProfile
from src.services.challenges import get_active_challenge, get_challenge
from src.services.daily_progress import apply_task_updates
from src.services.errors import ChallengeNotFoundError, TrackerError
from src.services.notifications import notify_sync_failed
from src.services.timezone import ensure_day_in_challenge, parse_date, today_in_timezone
from src.services.water_intake import add_intake
from src.services.workout_history import save_walk, save_workout

logger = logging.getLogger(__name__)

MAX_RETRIES = 3

SUPPORTED_TYPES = ("daily_progress", "daily_notes", "water_intake", "workout_history", "walk_history")
SUPPORTED_ACTIONS = ("create", "update", "delete")

_DETAIL_KEYS = {"completed", "duration", "notes", "photoUrl"}


class SyncItemError(TrackerError):
    pass


@dataclass
class SyncItem:
    id: str
    type: str
    action: str
    data: Dict[str, Any]
    retries: int = 0
    timestamp: Optional[int] = None
    error: Optional[str] = None


@dataclass
class SyncResult:
    synced: List[str] = field(default_factory=list)
    failed: List[SyncItem] = field(default_factory=list)
    dropped: List[SyncItem] = field(default_factory=list)


def _resolve_challenge(db: Session, user_id: str, data: Mapping[str, Any]) -> Challenge:
    challenge_id = data.get("challenge_id")
    if challenge_id is not None:
        if isinstance(challenge_id, bool) or not str(challenge_id).isdigit():
            raise SyncItemError(f"bad challenge_id: {challenge_id!r}")
        challenge = get_challenge(db, user_id, int(challenge_id))
    else:
        challenge = get_active_challenge(db, user_id)
    if challenge is None:
        raise ChallengeNotFoundError("no challenge for queued item")
    return challenge


def _optional_text(data: Mapping[str, Any], key: str) -> Optional[str]:
    value = data.get(key)
    if value is not None and not isinstance(value, str):
        raise SyncItemError(f"{key} must be a string")
    return value


def _task_updates(data: Mapping[str, Any]) -> Dict[str, Dict[str, Any]]:
    """{"tasks": {...}} 또는 단건 {"taskId", "completed"} → {task_id: updates}"""
    tasks = data.get("tasks")
    if tasks is None and "taskId" in data:
        if not isinstance(data.get("completed"), bool):
            raise SyncItemError("queued toggle has no completed flag")
        tasks = {data["taskId"]: {"completed": data["completed"]}}
    if not isinstance(tasks, dict) or not tasks:
        raise SyncItemError("daily_progress item has no tasks")

    for task_id, updates in tasks.items():
        if not isinstance(updates, dict):
            raise SyncItemError(f"update for {task_id} must be an object")
        unknown = set(updates) - _DETAIL_KEYS
        if unknown:
            raise SyncItemError(f"unexpected fields for {task_id}: {', '.join(sorted(unknown))}")
        completed = updates.get("completed")
        if completed is not None and not isinstance(completed, bool):
            raise SyncItemError(f"completed for {task_id} must be true or false")
        duration = updates.get("duration")
        if duration is not None and (isinstance(duration, bool) or not isinstance(duration, int) or duration < 0):
            raise SyncItemError(f"duration for {task_id} must be a whole number of minutes")
        for key in ("notes", "photoUrl"):
            _optional_text(updates, key)
    return tasks


def apply_item(db: Session, user: UserProfile, item: SyncItem, now: Optional[dt.datetime] = None) -> None:
    if item.type not in SUPPORTED_TYPES:
        raise SyncItemError(f"unsupported item type: {item.type}")
    if item.action not in SUPPORTED_ACTIONS:
        raise SyncItemError(f"unsupported action: {item.action}")
    if item.action == "delete":
        # 진행 기록은 스트릭 계산용 이력이라 지우지 않음
        raise SyncItemError(f"{item.type} records cannot be deleted")
    if not isinstance(item.data, dict):
        raise SyncItemError("queued item data must be an object")

    data = item.data
    if data.get("date") is None:
        raise SyncItemError("queued item has no date")
    day = parse_date(data["date"])
    challenge = _resolve_challenge(db, user.id, data)
    ensure_day_in_challenge(challenge.start_date, day, today_in_timezone(user.timezone, now))

    if item.type == "daily_notes":
        notes = _optional_text(data, "notes")
        if notes is None:
            raise SyncItemError("daily_notes item has no notes")
        apply_task_updates(db, challenge, day, {}, notes=notes, now=now)
        return

    if item.type == "water_intake":
        add_intake(db, challenge, day, data.get("amount"), data.get("unit") or "oz", now=now)
        return

    if item.type == "workout_history":
        save_workout(
            db, challenge, day, data.get("duration"),
            task_id=data.get("task_id"),
            notes=_optional_text(data, "notes"),
            now=now,
        )
        return

    if item.type == "walk_history":
        save_walk(
            db, challenge, day, data.get("duration"),
            data.get("distance", 0),
            data.get("distance_unit") or "miles",
            data.get("walk_type") or "outdoor",
            notes=_optional_text(data, "notes"),
            now=now,
        )
        return

    tasks = _task_updates(data)
    apply_task_updates(db, challenge, day, tasks, notes=_optional_text(data, "notes"), now=now)


def _notify_dropped(db: Session, user: UserProfile, item: SyncItem) -> None:
    """알림 저장이 실패해도 나머지 항목 처리는 계속"""
    try:
        notify_sync_failed(db, user.id, item.type, item.retries)
    except SQLAlchemyError as e:
        db.rollback()
        logger.warning("[sync] drop notification failed item=%s err=%s", item.id, e)


def replay_queue(db: Session, user: UserProfile, items: List[SyncItem], now: Optional[dt.datetime] = None) -> SyncResult:
    result = SyncResult()

    for item in items:
        try:
            apply_item(db, user, item, now)
            result.synced.append(item.id)
        except (TrackerError, SQLAlchemyError, ValueError, KeyError, TypeError) as e:
            db.rollback()
            item.retries += 1
            item.error = str(e)
            if item.retries < MAX_RETRIES:
                result.failed.append(item)
                logger.info("[sync] item=%s failed attempt=%d err=%s", item.id, item.retries, e)
                continue

            logger.warning("[sync] dropping item=%s type=%s after %d attempts err=%s", item.id, item.type, item.retries, e)
            result.dropped.append(item)
            _notify_dropped(db, user, item)

    logger.info(
        "[sync] done synced=%d failed=%d dropped=%d",
        len(result.synced), len(result.failed), len(result.dropped),
    )
    return result
