"""
챌린지 생성/조회/재시작

- 활성 챌린지는 유저당 1개 (challenges.active_user_id 유니크)
- 동시에 두 번 생성하면 두 번째는 IntegrityError → 기존 활성 챌린지를 다시 읽어서 성공 처리 (idempotent)
"""
from __future__ import annotations

import datetime as dt
import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from src.models.challenge import Challenge
from src.models.users import UserProfile
from src.services.errors import ActiveChallengeConflictError
from src.services.timezone import challenge_end_date, today_in_timezone

logger = logging.getLogger(__name__)

DEFAULT_CHALLENGE_NAME = "75 Hard Challenge"


def get_active_challenge(db: Session, user_id: str) -> Optional[Challenge]:
    return (
        db.execute(
            select(Challenge).where(
                Challenge.user_id == user_id,
                Challenge.is_active.is_(True),
            )
        )
        .scalars()
        .first()
    )


def list_challenges(db: Session, user_id: str) -> List[Challenge]:
    return (
        db.execute(
            select(Challenge)
            .where(Challenge.user_id == user_id)
            .order_by(Challenge.start_date.desc(), Challenge.id.desc())
        )
        .scalars()
        .all()
    )


def get_challenge(db: Session, user_id: str, challenge_id: int) -> Optional[Challenge]:
    return (
        db.execute(
            select(Challenge).where(
                Challenge.id == challenge_id,
                Challenge.user_id == user_id,
            )
        )
        .scalars()
        .first()
    )


def _insert_active(db: Session, user_id: str, start_date: dt.date, name: str) -> Challenge:
    row = Challenge(
        user_id=user_id,
        name=name,
        start_date=start_date,
        end_date=challenge_end_date(start_date),
        is_active=True,
        active_user_id=user_id,
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def get_or_create_active_challenge(
    db: Session,
    user: UserProfile,
    now: Optional[dt.datetime] = None,
    name: str = DEFAULT_CHALLENGE_NAME,
) -> Challenge:
    existing = get_active_challenge(db, user.id)
    if existing:
        return existing

    start = today_in_timezone(user.timezone, now)
    try:
        return _insert_active(db, user.id, start, name)
    except IntegrityError:
        db.rollback()
        logger.info("[challenges] duplicate active challenge user=%s -> reuse existing", user.id)
        existing = get_active_challenge(db, user.id)
        if existing is None:
            raise ActiveChallengeConflictError(f"active challenge conflict for user {user.id}")
        return existing


def restart_challenge(
    db: Session,
    user: UserProfile,
    now: Optional[dt.datetime] = None,
    name: str = DEFAULT_CHALLENGE_NAME,
) -> Challenge:
    """기존 활성 챌린지는 비활성화 (삭제 X), 오늘부터 새 챌린지"""
    current = get_active_challenge(db, user.id)
    if current:
        current.deactivate()
        # 유니크 컬럼을 먼저 비워야 새 row insert 가 충돌하지 않음
        db.flush()
        logger.info("[challenges] deactivated challenge=%s user=%s", current.id, user.id)

    start = today_in_timezone(user.timezone, now)
    try:
        return _insert_active(db, user.id, start, name)
    except IntegrityError:
        db.rollback()
        existing = get_active_challenge(db, user.id)
        if existing is None:
            raise ActiveChallengeConflictError(f"active challenge conflict for user {user.id}")
        return existing
