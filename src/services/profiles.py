from __future__ import annotations

import datetime as dt
import logging
from typing import Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from src.models.challenge import Challenge
from src.models.notification_preference import NotificationPreference
from src.models.users import DEFAULT_TIMEZONE, UserProfile
from src.services.challenges import get_or_create_active_challenge
from src.services.notifications import notify_welcome
from src.services.timezone import is_valid_timezone

logger = logging.getLogger(__name__)


def get_or_create_profile(db: Session, user_id: str, display_name: Optional[str] = None) -> UserProfile:
    profile = db.get(UserProfile, user_id)
    if profile:
        return profile

    profile = UserProfile(id=user_id, display_name=display_name, timezone=DEFAULT_TIMEZONE)
    db.add(profile)
    try:
        db.commit()
    except IntegrityError:
        # 같은 유저 첫 요청이 동시에 두 개 들어온 경우
        db.rollback()
        profile = db.get(UserProfile, user_id)
        if profile is None:
            raise
        return profile
    db.refresh(profile)
    logger.info("[profiles] created profile user=%s", user_id)
    return profile


def update_timezone(db: Session, profile: UserProfile, timezone: str) -> UserProfile:
    if not is_valid_timezone(timezone):
        raise ValueError(f"unknown timezone: {timezone}")
    profile.timezone = timezone
    db.commit()
    db.refresh(profile)
    return profile


def update_profile(
    db: Session,
    profile: UserProfile,
    *,
    display_name: Optional[str] = None,
    avatar_url: Optional[str] = None,
) -> UserProfile:
    if display_name is not None:
        profile.display_name = display_name
    if avatar_url is not None:
        profile.avatar_url = avatar_url
    db.commit()
    db.refresh(profile)
    return profile


def get_or_create_preferences(db: Session, user_id: str) -> NotificationPreference:
    prefs = db.get(NotificationPreference, user_id)
    if prefs:
        return prefs
    prefs = NotificationPreference(user_id=user_id)
    db.add(prefs)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        prefs = db.get(NotificationPreference, user_id)
        if prefs is None:
            raise
        return prefs
    db.refresh(prefs)
    return prefs


def complete_onboarding(
    db: Session,
    profile: UserProfile,
    display_name: str,
    timezone: str,
    notifications_enabled: bool = False,
    now: Optional[dt.datetime] = None,
) -> Tuple[UserProfile, Challenge]:
    """
    프로필 저장 → 활성 챌린지 생성 (이미 있으면 그걸 그대로) → 환영 알림
    두 번 호출돼도 활성 챌린지는 1개
    """
    if not is_valid_timezone(timezone):
        raise ValueError(f"unknown timezone: {timezone}")

    first_time = not profile.onboarding_completed
    profile.display_name = display_name
    profile.timezone = timezone
    profile.onboarding_completed = True
    db.commit()

    challenge = get_or_create_active_challenge(db, profile, now)

    prefs = get_or_create_preferences(db, profile.id)
    if notifications_enabled and not prefs.enabled:
        prefs.enabled = True
        db.commit()

    if first_time:
        notify_welcome(db, profile.id)

    db.refresh(profile)
    return profile, challenge
