from __future__ import annotations

import datetime as dt
from typing import Optional

from sqlalchemy import Date, DateTime, Float, ForeignKey, Index, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from src.db.database import Base


class WorkoutHistory(Base):
    """
    타이머로 끝낸 운동 1회 (하루 여러 번 가능)
    - duration: 초
    - task_id: 이 기록으로 자동 완료된 과제 (45분 미만이면 NULL)
    """
    __tablename__ = "workout_history"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    user_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("user_profiles.id", ondelete="CASCADE"),
        nullable=False,
    )
    challenge_id: Mapped[int] = mapped_column(
        ForeignKey("challenges.id", ondelete="CASCADE"),
        nullable=False,
    )
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)

    duration: Mapped[int] = mapped_column(Integer, nullable=False)
    task_id: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    completed_at: Mapped[dt.datetime] = mapped_column(DateTime, nullable=False)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime, nullable=False, server_default=func.now())

    __table_args__ = (
        Index("idx_workout_history_challenge_date", "challenge_id", "date"),
    )


class WalkHistory(Base):
    """
    걷기 1회 기록
    - duration: 초, distance 는 입력 단위 그대로 (통계에서 마일로 환산)
    - 야외 걷기 45분 이상이면 workout-outdoor 과제 자동 완료
    """
    __tablename__ = "walk_history"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    user_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("user_profiles.id", ondelete="CASCADE"),
        nullable=False,
    )
    challenge_id: Mapped[int] = mapped_column(
        ForeignKey("challenges.id", ondelete="CASCADE"),
        nullable=False,
    )
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)

    duration: Mapped[int] = mapped_column(Integer, nullable=False)
    distance: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    distance_unit: Mapped[str] = mapped_column(String(8), nullable=False, default="miles")
    walk_type: Mapped[str] = mapped_column(String(16), nullable=False, default="outdoor")
    task_id: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    completed_at: Mapped[dt.datetime] = mapped_column(DateTime, nullable=False)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime, nullable=False, server_default=func.now())

    __table_args__ = (
        Index("idx_walk_history_challenge_date", "challenge_id", "date"),
    )
