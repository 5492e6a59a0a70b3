# 스트릭 달성 알림: 하루가 완료됐을 때 + 스케줄러 일일 점검
from __future__ import annotations

import datetime as dt
import logging
from typing import Optional

from firebase_admin.exceptions import FirebaseError
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from src.models.challenge import Challenge
from src.models.notification_preference import NotificationPreference
from src.models.users import UserProfile
from src.services.daily_progress import list_progress
from src.services.fcm_push import firebase_ready, send_push_to_user
from src.services.notifications import notify_streak, streak_message
from src.services.reminders import _mask_uid, already_sent, record_sent
from src.services.streaks import compute_streak, day_entries
from src.services.timezone import today_in_timezone, utc_now

logger = logging.getLogger(__name__)


def _dedupe_key(challenge_id: int, streak_days: int) -> str:
    return f"streak:{challenge_id}:{streak_days}"


def check_streak(
    db: Session,
    profile: UserProfile,
    challenge: Challenge,
    now: Optional[dt.datetime] = None,
    push: bool = True,
) -> Optional[int]:
    """
    현재 스트릭이 축하 대상이고 아직 안 보냈으면 앱 알림 (+ 푸시) 생성
    return: 알린 스트릭 일수, 없으면 None
    """
    today = today_in_timezone(profile.timezone, now)
    streak = compute_streak(day_entries(list_progress(db, challenge.id)), today)
    days = streak.current_streak
    if streak_message(days) is None:
        return None

    key = _dedupe_key(challenge.id, days)
    if already_sent(db, profile.id, key):
        return None

    prefs = db.get(NotificationPreference, profile.id)
    if prefs is None or prefs.achievement_alerts:
        notify_streak(db, profile.id, days, commit=False)

    title = f"🔥 {days} Day Streak!"
    body = f"Amazing! You've maintained a {days} day streak!"
    record_sent(db, profile.id, "streak", key, title, body)

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        return None

    if push and prefs is not None and prefs.enabled and prefs.streak_alerts and firebase_ready():
        try:
            success, fail, _ = send_push_to_user(
                db,
                profile.id,
                title,
                body,
                tag="streak",
                actions=[{"action": "view-progress", "title": "View Progress"}],
                data={"type": "streak", "streak": days},
            )
        except FirebaseError as e:
            logger.warning("[streak_alerts] push failed user=%s err=%s", _mask_uid(profile.id), e)
            return days
        db.commit()
        logger.info("[streak_alerts] push user=%s streak=%d success=%d fail=%d", _mask_uid(profile.id), days, success, fail)

    return days


def process_streak_alerts(db: Session, now: Optional[dt.datetime] = None) -> int:
    now = now or utc_now()
    rows = db.execute(
        select(Challenge, UserProfile)
        .join(UserProfile, UserProfile.id == Challenge.user_id)
        .where(Challenge.is_active.is_(True))
    ).all()
    logger.info("[streak_alerts] now=%s active_challenges=%d", now, len(rows))

    alerted = 0
    for challenge, profile in rows:
        try:
            if check_streak(db, profile, challenge, now) is not None:
                alerted += 1
        except Exception as e:
            db.rollback()
            logger.exception("[streak_alerts] ERROR user=%s err=%s", _mask_uid(profile.id), e)

    logger.info("[streak_alerts] done alerted=%d", alerted)
    return alerted
