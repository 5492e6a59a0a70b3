from __future__ import annotations

import datetime as dt
from typing import List

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.db.database import Base


class NotificationPreference(Base):
    """
    유저별 리마인더 설정 (1:1)
    - 모든 시각은 "HH:MM", 유저 타임존 기준 로컬 시각
    - enabled=False 면 어떤 푸시도 보내지 않음
    """
    __tablename__ = "notification_preferences"

    user_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("user_profiles.id", ondelete="CASCADE"),
        primary_key=True,
    )

    enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    daily_reminder: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    daily_reminder_time: Mapped[str] = mapped_column(String(5), nullable=False, default="06:00")

    workout_reminders: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    workout_reminder_times: Mapped[List[str]] = mapped_column(
        JSON, nullable=False, default=lambda: ["07:00", "17:00"]
    )

    water_reminders: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    water_reminder_interval: Mapped[int] = mapped_column(Integer, nullable=False, default=2)

    reading_reminder: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    reading_reminder_time: Mapped[str] = mapped_column(String(5), nullable=False, default="20:00")

    photo_reminder: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    photo_reminder_time: Mapped[str] = mapped_column(String(5), nullable=False, default="07:30")

    streak_alerts: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    achievement_alerts: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    updated_at: Mapped[dt.datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now(), onupdate=func.now()
    )

    user = relationship("UserProfile", back_populates="notification_preference", uselist=False)
