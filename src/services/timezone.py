"""
유저 타임존 기준 날짜 계산

- "오늘"은 항상 aware 한 now 를 유저 타임존으로 변환해서 달력 날짜만 취함
- 날짜 차이는 date 끼리 빼서 구함 (timestamp 차이 X) → DST 전환일에도 일차가 건너뛰거나 중복되지 않음
"""
from __future__ import annotations

import datetime as dt
import logging
from typing import Optional, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError, available_timezones

from src.config.settings import settings
from src.services.errors import DayOutOfRangeError

logger = logging.getLogger(__name__)

CHALLENGE_LENGTH_DAYS = 75
DEFAULT_TIMEZONE = settings.default_timezone


def is_valid_timezone(name: Optional[str]) -> bool:
    if not name:
        return False
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return False
    return True


def get_zone(name: Optional[str]) -> ZoneInfo:
    if is_valid_timezone(name):
        return ZoneInfo(name)
    if name:
        logger.warning("[timezone] unknown timezone=%r -> fallback %s", name, DEFAULT_TIMEZONE)
    return ZoneInfo(DEFAULT_TIMEZONE)


def utc_now() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def local_now(tz_name: Optional[str], now: Optional[dt.datetime] = None) -> dt.datetime:
    now = now or utc_now()
    if now.tzinfo is None:
        # naive 는 UTC 로 간주
        now = now.replace(tzinfo=dt.timezone.utc)
    return now.astimezone(get_zone(tz_name))


def today_in_timezone(tz_name: Optional[str], now: Optional[dt.datetime] = None) -> dt.date:
    return local_now(tz_name, now).date()


def date_in_timezone(tz_name: Optional[str], now: Optional[dt.datetime] = None) -> str:
    """YYYY-MM-DD (DB 저장 형식)"""
    return today_in_timezone(tz_name, now).isoformat()


def parse_date(value: Union[str, dt.date, dt.datetime]) -> dt.date:
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, dt.date):
        return value
    text = str(value).strip()
    try:
        return dt.date.fromisoformat(text[:10])
    except ValueError:
        raise ValueError(f"Unable to parse date string: {value}")


def days_between(start: dt.date, end: dt.date) -> int:
    return (end - start).days


def day_number_for_date(start_date: dt.date, day: dt.date) -> int:
    """클램프 없는 1-based 일차 (시작 전이면 0 이하)"""
    return days_between(start_date, day) + 1


def date_for_day_number(start_date: dt.date, day_number: int) -> dt.date:
    return start_date + dt.timedelta(days=day_number - 1)


def current_day_number(
    start_date: dt.date,
    tz_name: Optional[str],
    now: Optional[dt.datetime] = None,
    total_days: int = CHALLENGE_LENGTH_DAYS,
) -> int:
    today = today_in_timezone(tz_name, now)
    return max(1, min(day_number_for_date(start_date, today), total_days))


def challenge_end_date(start_date: dt.date, total_days: int = CHALLENGE_LENGTH_DAYS) -> dt.date:
    return date_for_day_number(start_date, total_days)


def ensure_day_in_challenge(
    start_date: dt.date,
    day: dt.date,
    today: Optional[dt.date] = None,
    total_days: int = CHALLENGE_LENGTH_DAYS,
) -> int:
    """
    1~total_days 범위 밖이면 DayOutOfRangeError, today 를 주면 미래 날짜도 거부 (쓰기용)
    return: 일차
    """
    day_number = day_number_for_date(start_date, day)
    if not 1 <= day_number <= total_days:
        raise DayOutOfRangeError("date is outside the challenge")
    if today is not None and day > today:
        raise DayOutOfRangeError("cannot update a future day")
    return day_number


def list_timezones():
    return sorted(available_timezones())
