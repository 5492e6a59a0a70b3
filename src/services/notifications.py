# 앱 내 알림 (종 아이콘 피드) + 이벤트별 알림 문구
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from src.models.notification import Notification, NotificationType

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 50


def create_notification(
    db: Session,
    user_id: str,
    title: str,
    description: str,
    type_: NotificationType = NotificationType.system,
    data: Optional[Dict[str, Any]] = None,
    commit: bool = True,
) -> Notification:
    row = Notification(
        user_id=user_id,
        title=title,
        description=description,
        type=type_,
        read=False,
        data=data,
    )
    db.add(row)
    if commit:
        db.commit()
        db.refresh(row)
    return row


def list_notifications(db: Session, user_id: str, limit: int = DEFAULT_LIMIT) -> List[Notification]:
    return (
        db.execute(
            select(Notification)
            .where(Notification.user_id == user_id)
            .order_by(Notification.created_at.desc(), Notification.id.desc())
            .limit(limit)
        )
        .scalars()
        .all()
    )


def unread_count(db: Session, user_id: str) -> int:
    return db.execute(
        select(func.count(Notification.id)).where(
            Notification.user_id == user_id,
            Notification.read.is_(False),
        )
    ).scalar_one()


def mark_as_read(db: Session, user_id: str, notification_id: int) -> int:
    result = db.execute(
        update(Notification)
        .where(Notification.id == notification_id, Notification.user_id == user_id)
        .values(read=True)
    )
    db.commit()
    return result.rowcount


def mark_all_as_read(db: Session, user_id: str) -> int:
    result = db.execute(
        update(Notification)
        .where(Notification.user_id == user_id, Notification.read.is_(False))
        .values(read=True)
    )
    db.commit()
    return result.rowcount


def delete_notification(db: Session, user_id: str, notification_id: int) -> int:
    deleted = (
        db.query(Notification)
        .filter(Notification.id == notification_id, Notification.user_id == user_id)
        .delete(synchronize_session=False)
    )
    db.commit()
    return deleted


def clear_all(db: Session, user_id: str) -> int:
    deleted = (
        db.query(Notification)
        .filter(Notification.user_id == user_id)
        .delete(synchronize_session=False)
    )
    db.commit()
    return deleted


# --------------------- 이벤트 알림 ---------------------
def streak_message(streak_days: int) -> Optional[Dict[str, str]]:
    """스트릭 일수별 축하 문구, 알림 대상이 아니면 None"""
    if streak_days <= 0:
        return None
    if streak_days == 7:
        return {
            "title": "One Week Strong! 🔥",
            "description": "You've completed 7 days in a row. You're building great habits!",
        }
    if streak_days == 30:
        return {
            "title": "One Month Milestone! 🏆",
            "description": "30 days of consistency! You're unstoppable!",
        }
    if streak_days == 50:
        return {
            "title": "50 Days and Counting! 💪",
            "description": "You're over halfway to completing 75 Hard!",
        }
    if streak_days == 75:
        return {
            "title": "75 HARD COMPLETE! 🎊",
            "description": "Congratulations! You've completed the 75 Hard challenge!",
        }
    if streak_days % 10 == 0:
        return {
            "title": f"{streak_days} Day Streak! 🌟",
            "description": f"Amazing dedication! You've maintained your streak for {streak_days} days.",
        }
    return None


def notify_streak(db: Session, user_id: str, streak_days: int, commit: bool = True) -> Optional[Notification]:
    message = streak_message(streak_days)
    if message is None:
        return None
    return create_notification(
        db,
        user_id,
        message["title"],
        message["description"],
        NotificationType.achievement,
        data={"streak": streak_days},
        commit=commit,
    )


def notify_welcome(db: Session, user_id: str, commit: bool = True) -> Notification:
    return create_notification(
        db,
        user_id,
        "Welcome to 75 Hard! 👋",
        "Your journey to mental toughness starts now. Check your daily tasks to begin!",
        NotificationType.system,
        commit=commit,
    )


def notify_day_complete(db: Session, user_id: str, day_number: int, commit: bool = True) -> Notification:
    return create_notification(
        db,
        user_id,
        "Day Complete!",
        f"Congratulations on completing all tasks for day {day_number}!",
        NotificationType.progress,
        data={"day": day_number},
        commit=commit,
    )


def notify_remaining_tasks(db: Session, user_id: str, incomplete_tasks: List[str], commit: bool = True) -> Notification:
    count = len(incomplete_tasks)
    return create_notification(
        db,
        user_id,
        f"{count} Task{'s' if count > 1 else ''} Remaining Today",
        f"Don't forget to complete: {', '.join(incomplete_tasks)}",
        NotificationType.reminder,
        commit=commit,
    )


def notify_sync_failed(db: Session, user_id: str, item_type: str, attempts: int, commit: bool = True) -> Notification:
    return create_notification(
        db,
        user_id,
        "Sync Failed",
        f"Failed to sync {item_type} after {attempts} attempts. Data has been removed from queue.",
        NotificationType.system,
        data={"type": item_type},
        commit=commit,
    )
