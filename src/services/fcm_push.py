from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

import firebase_admin
from firebase_admin import messaging
from sqlalchemy import select
from sqlalchemy.orm import Session

from src.models.push_subscription import PushSubscription
from src.services.errors import PushNotReadyError
from src.services.timezone import utc_now

logger = logging.getLogger(__name__)

# 연속 실패가 이 횟수를 넘으면 구독 끊음
MAX_FAILURES = 5


def firebase_ready() -> bool:
    # main.py lifespan 에서 initialize_app 됐는지
    return bool(getattr(firebase_admin, "_apps", None))


def _stringify(data: Optional[Dict[str, Any]]) -> Dict[str, str]:
    # FCM data 페이로드는 문자열 값만 허용
    if not data:
        return {}
    return {k: str(v) for k, v in data.items() if v is not None}


def _is_unregistered(exc: Optional[Exception]) -> bool:
    if exc is None:
        return False
    if isinstance(exc, messaging.UnregisteredError):
        return True
    text = f"{exc.__class__.__name__} {exc}".lower()
    return "not registered" in text or "registration-token-not-registered" in text


def active_subscriptions(db: Session, user_id: str) -> List[PushSubscription]:
    return (
        db.execute(
            select(PushSubscription).where(
                PushSubscription.user_id == user_id,
                PushSubscription.is_active.is_(True),
            )
            .order_by(PushSubscription.id)
        )
        .scalars()
        .all()
    )


def upsert_subscription(
    db: Session,
    user_id: str,
    token: str,
    platform: str = "web",
    device_id: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> PushSubscription:
    """토큰 기준 업서트, 다른 유저가 쓰던 토큰이면 소유자 변경. commit 은 호출자"""
    now = utc_now().replace(tzinfo=None, microsecond=0)

    row = db.execute(select(PushSubscription).where(PushSubscription.token == token)).scalars().first()
    if row is None:
        row = PushSubscription(token=token)
        db.add(row)

    row.user_id = user_id
    row.platform = platform
    row.device_id = device_id
    row.user_agent = user_agent
    row.is_active = True
    row.failure_count = 0
    row.last_seen_at = now
    return row


def deactivate_subscription(db: Session, user_id: str, token: str) -> int:
    row = (
        db.execute(
            select(PushSubscription).where(
                PushSubscription.user_id == user_id,
                PushSubscription.token == token,
            )
        )
        .scalars()
        .first()
    )
    if row is None:
        return 0
    row.is_active = False
    return 1


def build_message(
    tokens: List[str],
    title: str,
    body: str,
    tag: Optional[str] = None,
    actions: Optional[List[Dict[str, str]]] = None,
    data: Optional[Dict[str, Any]] = None,
) -> messaging.MulticastMessage:
    payload = _stringify(data)
    if tag:
        payload["tag"] = tag

    webpush = messaging.WebpushConfig(
        notification=messaging.WebpushNotification(
            title=title,
            body=body,
            icon="/icon-192x192.png",
            badge="/icon-72x72.png",
            tag=tag,
            actions=[
                messaging.WebpushNotificationAction(action=a["action"], title=a["title"])
                for a in (actions or [])
            ],
        )
    )
    return messaging.MulticastMessage(
        tokens=tokens,
        notification=messaging.Notification(title=title, body=body),
        data=payload,
        webpush=webpush,
    )


def send_push_to_user(
    db: Session,
    user_id: str,
    title: str,
    body: str,
    tag: Optional[str] = None,
    actions: Optional[List[Dict[str, str]]] = None,
    data: Optional[Dict[str, Any]] = None,
) -> Tuple[int, int, int]:
    """
    return (success_count, fail_count, deactivated_count)
    DB commit 은 호출자가 한다.
    """
    if not firebase_ready():
        raise PushNotReadyError("Firebase Admin SDK is not initialized")

    subs = active_subscriptions(db, user_id)
    if not subs:
        return 0, 0, 0

    message = build_message([s.token for s in subs], title, body, tag, actions, data)
    resp = messaging.send_each_for_multicast(message)

    now = utc_now().replace(tzinfo=None, microsecond=0)
    deactivated = 0
    for sub, r in zip(subs, resp.responses):
        if r.success:
            sub.last_sent_at = now
            sub.failure_count = 0
            continue

        sub.failure_count = (sub.failure_count or 0) + 1
        if _is_unregistered(r.exception) or sub.failure_count >= MAX_FAILURES:
            sub.is_active = False
            deactivated += 1
            logger.info("[fcm] deactivated subscription id=%s failures=%d", sub.id, sub.failure_count)

    return resp.success_count, resp.failure_count, deactivated
