"""
커뮤니티 리더보드

- 활성 챌린지가 있는 유저만 노출
- 현재 일차/오늘 날짜는 각 유저 본인의 타임존 기준
- 정렬: day(기본, 일차 내림차순) / tasks / name / started, 필터: all / completed / in-progress, 이름 검색
"""
from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from typing import Dict, List, Optional

from sqlalchemy import and_, select
from sqlalchemy.orm import Session

from src.models.challenge import Challenge
from src.models.daily_progress import DailyProgress
from src.models.users import UserProfile
from src.services.task_definitions import TOTAL_TASKS
from src.services.timezone import current_day_number, today_in_timezone

SORT_OPTIONS = ("day", "tasks", "name", "started")
FILTER_OPTIONS = ("all", "completed", "in-progress")
ANONYMOUS = "Anonymous"


@dataclass
class CommunityMember:
    user_id: str
    display_name: str
    avatar_url: Optional[str]
    challenge_name: str
    current_day: int
    tasks_completed: int
    total_tasks: int
    started_at: dt.date
    is_current_user: bool = False

    @property
    def completed_today(self) -> bool:
        return self.tasks_completed >= self.total_tasks


@dataclass
class CommunitySummary:
    active_members: int
    completed_today: int
    average_day: int


def load_members(db: Session, viewer_id: str, now: Optional[dt.datetime] = None) -> List[CommunityMember]:
    rows = db.execute(
        select(UserProfile, Challenge)
        .join(Challenge, and_(Challenge.user_id == UserProfile.id, Challenge.is_active.is_(True)))
        .order_by(UserProfile.display_name)
    ).all()
    if not rows:
        return []

    # 유저마다 "오늘"이 달라서 (challenge_id, date) 목록으로 한 번에 조회
    todays: Dict[int, dt.date] = {
        challenge.id: today_in_timezone(profile.timezone, now) for profile, challenge in rows
    }
    progress_rows = db.execute(
        select(DailyProgress).where(
            DailyProgress.challenge_id.in_(list(todays)),
            DailyProgress.date.in_(set(todays.values())),
        )
    ).scalars().all()
    by_challenge = {p.challenge_id: p for p in progress_rows if todays.get(p.challenge_id) == p.date}

    members = []
    for profile, challenge in rows:
        progress = by_challenge.get(challenge.id)
        members.append(
            CommunityMember(
                user_id=profile.id,
                display_name=profile.display_name or ANONYMOUS,
                avatar_url=profile.avatar_url,
                challenge_name=challenge.name,
                current_day=current_day_number(challenge.start_date, profile.timezone, now),
                tasks_completed=progress.tasks_completed if progress else 0,
                total_tasks=TOTAL_TASKS,
                started_at=challenge.start_date,
                is_current_user=profile.id == viewer_id,
            )
        )
    return members


def filter_and_sort(
    members: List[CommunityMember],
    sort_by: str = "day",
    filter_by: str = "all",
    search: Optional[str] = None,
) -> List[CommunityMember]:
    if sort_by not in SORT_OPTIONS:
        raise ValueError(f"unknown sort option: {sort_by}")
    if filter_by not in FILTER_OPTIONS:
        raise ValueError(f"unknown filter option: {filter_by}")

    out = members
    if search:
        needle = search.strip().lower()
        out = [m for m in out if needle in m.display_name.lower()]

    if filter_by == "completed":
        out = [m for m in out if m.completed_today]
    elif filter_by == "in-progress":
        out = [m for m in out if not m.completed_today]

    if sort_by == "day":
        return sorted(out, key=lambda m: -m.current_day)
    if sort_by == "tasks":
        return sorted(out, key=lambda m: -m.tasks_completed)
    if sort_by == "name":
        return sorted(out, key=lambda m: m.display_name.lower())
    # started: 먼저 시작한 사람부터
    return sorted(out, key=lambda m: m.started_at)


def summarize(members: List[CommunityMember]) -> CommunitySummary:
    count = len(members)
    return CommunitySummary(
        active_members=count,
        completed_today=sum(1 for m in members if m.completed_today),
        average_day=round(sum(m.current_day for m in members) / count) if count else 0,
    )
