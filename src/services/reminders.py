# src/services/reminders.py
"""
리마인더 푸시 (스케줄러가 매 1분 호출)

- 시각 비교는 유저 타임존의 로컬 시각 기준, ±window 분 (자정 넘김은 원형으로 비교)
- 이미 끝낸 과제의 리마인더는 보내지 않음
- 중복 방지: notification_logs (user_id, dedupe_key) 유니크
  dedupe_key = "{kind}:{로컬날짜}:{HH:MM}" → 윈도우 안에서 1분마다 돌아도 한 번만 나감
"""
from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from src.config.settings import settings
from src.models.notification import NotificationLog
from src.models.notification_preference import NotificationPreference
from src.models.users import UserProfile
from src.services.challenges import get_active_challenge
from src.services.daily_progress import get_progress
from src.services.fcm_push import firebase_ready, send_push_to_user
from src.services.notifications import notify_remaining_tasks
from src.services.task_definitions import TASK_IDS, task_title
from src.services.timezone import local_now, utc_now

logger = logging.getLogger(__name__)

# 물 리마인더 활동 시간대 (로컬 07:00 ~ 21:00, 정각)
WATER_START_HOUR = 7
WATER_END_HOUR = 21


@dataclass
class PushPayload:
    kind: str
    title: str
    body: str
    tag: str
    scheduled_time: str
    actions: List[Dict[str, str]] = field(default_factory=list)
    data: Dict[str, Any] = field(default_factory=dict)

    def dedupe_key(self, day: dt.date) -> str:
        return f"{self.kind}:{day.isoformat()}:{self.scheduled_time}"


def _mask_uid(uid: str) -> str:
    if not uid:
        return ""
    if len(uid) <= 10:
        return uid[:3] + "..."
    return uid[:6] + "..." + uid[-4:]


def parse_hhmm(value: str) -> int:
    """"HH:MM" → 자정부터 분"""
    hour, minute = value.strip().split(":")[:2]
    h, m = int(hour), int(minute)
    if not (0 <= h < 24 and 0 <= m < 60):
        raise ValueError(f"invalid time: {value}")
    return h * 60 + m


def is_time_match(now_local: dt.datetime, target: str, window_minutes: int) -> bool:
    try:
        target_minutes = parse_hhmm(target)
    except ValueError:
        logger.warning("[reminders] bad reminder time=%r", target)
        return False
    current = now_local.hour * 60 + now_local.minute
    diff = abs(current - target_minutes)
    return min(diff, 24 * 60 - diff) <= window_minutes


def water_times(interval_hours: int) -> List[str]:
    interval = max(1, int(interval_hours or 1))
    return [f"{h:02d}:00" for h in range(WATER_START_HOUR, WATER_END_HOUR + 1, interval)]


# --------------------- 페이로드 ---------------------
def daily_payload(time_str: str) -> PushPayload:
    return PushPayload(
        kind="daily",
        title="75 Hard Daily Check-in",
        body="Time to complete your daily tasks! 💪",
        tag="daily",
        scheduled_time=time_str,
        actions=[
            {"action": "open-checklist", "title": "Open Checklist"},
            {"action": "dismiss", "title": "Dismiss"},
        ],
    )


def workout_payload(number: int, time_str: str) -> PushPayload:
    kind = "indoor" if number == 1 else "outdoor"
    return PushPayload(
        kind=f"workout-{number}",
        title=f"Workout {number} Reminder",
        body=f"Time for your {kind} workout! 45 minutes to go. 🏃",
        tag=f"workout-{number}",
        scheduled_time=time_str,
        actions=[
            {"action": "start-timer", "title": "Start Timer"},
            {"action": "mark-complete", "title": "Mark Complete"},
        ],
        data={"taskId": f"workout-{kind}"},
    )


def water_payload(time_str: str) -> PushPayload:
    return PushPayload(
        kind="water",
        title="Water Reminder 💧",
        body="Stay hydrated! Remember to drink your water.",
        tag="water",
        scheduled_time=time_str,
        actions=[
            {"action": "log-water", "title": "Log Water"},
            {"action": "snooze", "title": "Snooze 30min"},
        ],
        data={"taskId": "water-intake"},
    )


def reading_payload(time_str: str) -> PushPayload:
    return PushPayload(
        kind="reading",
        title="Reading Time 📚",
        body="Don't forget to read your 10 pages today!",
        tag="reading",
        scheduled_time=time_str,
        actions=[{"action": "mark-complete", "title": "Mark Complete"}],
        data={"taskId": "read-nonfiction"},
    )


def photo_payload(time_str: str) -> PushPayload:
    return PushPayload(
        kind="photo",
        title="Progress Photo 📸",
        body="Time to take your daily progress photo!",
        tag="photo",
        scheduled_time=time_str,
        actions=[{"action": "open-camera", "title": "Take Photo"}],
        data={"taskId": "progress-photo"},
    )


def due_reminders(
    prefs: NotificationPreference,
    now_local: dt.datetime,
    completed_task_ids: Iterable[str] = (),
    window_minutes: Optional[int] = None,
) -> List[PushPayload]:
    """지금 로컬 시각에 나가야 할 리마인더 (순수 함수)"""
    if not prefs.enabled:
        return []

    window = settings.reminder_window_minutes if window_minutes is None else window_minutes
    done = set(completed_task_ids)
    out: List[PushPayload] = []

    if prefs.daily_reminder and len(done) < len(TASK_IDS) and is_time_match(now_local, prefs.daily_reminder_time, window):
        out.append(daily_payload(prefs.daily_reminder_time))

    if prefs.workout_reminders:
        for number, time_str in enumerate((prefs.workout_reminder_times or [])[:2], start=1):
            task_id = "workout-indoor" if number == 1 else "workout-outdoor"
            if task_id not in done and is_time_match(now_local, time_str, window):
                out.append(workout_payload(number, time_str))

    if prefs.water_reminders and "water-intake" not in done:
        for time_str in water_times(prefs.water_reminder_interval):
            if is_time_match(now_local, time_str, window):
                out.append(water_payload(time_str))
                break

    if prefs.reading_reminder and "read-nonfiction" not in done and is_time_match(now_local, prefs.reading_reminder_time, window):
        out.append(reading_payload(prefs.reading_reminder_time))

    if prefs.photo_reminder and "progress-photo" not in done and is_time_match(now_local, prefs.photo_reminder_time, window):
        out.append(photo_payload(prefs.photo_reminder_time))

    return out


# --------------------- 발송 기록 ---------------------
def already_sent(db: Session, user_id: str, dedupe_key: str) -> bool:
    return (
        db.execute(
            select(NotificationLog.id).where(
                NotificationLog.user_id == user_id,
                NotificationLog.dedupe_key == dedupe_key,
            )
        ).first()
        is not None
    )


def record_sent(
    db: Session,
    user_id: str,
    type_: str,
    dedupe_key: str,
    title: str,
    body: str,
    scheduled_for: Optional[dt.datetime] = None,
    sent_at: Optional[dt.datetime] = None,
) -> NotificationLog:
    row = NotificationLog(
        user_id=user_id,
        type=type_,
        dedupe_key=dedupe_key,
        title=title,
        body=body,
        scheduled_for=scheduled_for,
        sent_at=sent_at or utc_now().replace(tzinfo=None, microsecond=0),
    )
    db.add(row)
    return row


def _completed_today(db: Session, user_id: str, today: dt.date) -> List[str]:
    challenge = get_active_challenge(db, user_id)
    if challenge is None:
        return []
    progress = get_progress(db, challenge.id, today)
    if progress is None:
        return []
    return [task_id for task_id in TASK_IDS if progress.task_completed(task_id)]


def process_due_reminders(db: Session, now: Optional[dt.datetime] = None) -> int:
    """
    알림 켜진 유저 전체를 돌면서 지금 나가야 할 리마인더 발송
    - 발송 성공(success>0)일 때만 로그 기록 → 실패면 윈도우 안에서 다음 턴에 재시도
    """
    now = now or utc_now()

    if not firebase_ready():
        logger.info("[reminders] firebase not initialized -> skip")
        return 0

    rows = db.execute(
        select(NotificationPreference, UserProfile)
        .join(UserProfile, UserProfile.id == NotificationPreference.user_id)
        .where(NotificationPreference.enabled.is_(True))
    ).all()
    logger.info("[reminders] now=%s candidates=%d", now, len(rows))

    sent_count = 0
    for prefs, profile in rows:
        now_local = local_now(profile.timezone, now)
        today = now_local.date()
        completed = _completed_today(db, profile.id, today)
        payloads = due_reminders(prefs, now_local, completed)

        for payload in payloads:
            key = payload.dedupe_key(today)
            if already_sent(db, profile.id, key):
                continue

            try:
                success, fail, deactivated = send_push_to_user(
                    db,
                    profile.id,
                    payload.title,
                    payload.body,
                    tag=payload.tag,
                    actions=payload.actions,
                    data={"type": payload.kind, **payload.data},
                )
                logger.info(
                    "[reminders] result user=%s kind=%s success=%d fail=%d deactivated=%d",
                    _mask_uid(profile.id), payload.kind, success, fail, deactivated,
                )

                if success > 0:
                    record_sent(db, profile.id, payload.kind, key, payload.title, payload.body)
                    if payload.kind == "daily":
                        remaining = [task_title(t) for t in TASK_IDS if t not in completed]
                        notify_remaining_tasks(db, profile.id, remaining, commit=False)
                    sent_count += 1
                db.commit()

            except IntegrityError:
                # 다른 워커가 먼저 기록함
                db.rollback()
                logger.info("[reminders] duplicate log user=%s key=%s", _mask_uid(profile.id), key)
            except Exception as e:
                db.rollback()
                logger.exception(
                    "[reminders] ERROR while sending user=%s kind=%s err=%s",
                    _mask_uid(profile.id), payload.kind, e,
                )

    logger.info("[reminders] done sent_count=%d", sent_count)
    return sent_count
