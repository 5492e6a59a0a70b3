from __future__ import annotations

import datetime as dt
from typing import List, Optional, TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.db.database import Base

if TYPE_CHECKING:
    from src.models.challenge import Challenge
    from src.models.notification_preference import NotificationPreference

DEFAULT_TIMEZONE = "America/New_York"


class UserProfile(Base):
    __tablename__ = "user_profiles"

    # 인증 토큰의 sub 값 그대로
    id: Mapped[str] = mapped_column(String(64), primary_key=True)

    display_name: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    timezone: Mapped[str] = mapped_column(String(64), nullable=False, default=DEFAULT_TIMEZONE)
    onboarding_completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    avatar_url: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)

    created_at: Mapped[dt.datetime] = mapped_column(DateTime, nullable=False, server_default=func.now())
    updated_at: Mapped[dt.datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now(), onupdate=func.now()
    )

    challenges: Mapped[List["Challenge"]] = relationship(
        "Challenge",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    notification_preference: Mapped[Optional["NotificationPreference"]] = relationship(
        "NotificationPreference",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
        uselist=False,
    )

    notifications = relationship(
        "Notification",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    push_subscriptions = relationship(
        "PushSubscription",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
