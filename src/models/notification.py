from __future__ import annotations

import datetime as dt
import enum
from typing import Any, Dict, Optional

from sqlalchemy import (JSON, BigInteger, Boolean, DateTime, ForeignKey, Index, Integer, String, Text,
                        UniqueConstraint, Enum as SqlEnum, func)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.db.database import Base


class NotificationType(str, enum.Enum):
    achievement = "achievement"
    reminder = "reminder"
    progress = "progress"
    system = "system"


class Notification(Base):
    """앱 내 알림 피드 (종 아이콘)"""
    __tablename__ = "notifications"

    id: Mapped[int] = mapped_column(BigInteger().with_variant(Integer(), "sqlite"), primary_key=True, autoincrement=True)

    user_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("user_profiles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    title: Mapped[str] = mapped_column(String(120), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[NotificationType] = mapped_column(
        SqlEnum(NotificationType, name="notification_type"),
        nullable=False,
        default=NotificationType.system,
    )
    read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    data: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)

    created_at: Mapped[dt.datetime] = mapped_column(DateTime, nullable=False, server_default=func.now())

    __table_args__ = (
        Index("idx_notifications_user_created", "user_id", "created_at"),
    )

    user = relationship("UserProfile", back_populates="notifications", uselist=False)


class NotificationLog(Base):
    """
    푸시 발송 기록
    - (user_id, dedupe_key) 유니크 → 같은 리마인더가 매칭 윈도우 안에서 여러 번 나가는 것 방지
    """
    __tablename__ = "notification_logs"

    id: Mapped[int] = mapped_column(BigInteger().with_variant(Integer(), "sqlite"), primary_key=True, autoincrement=True)

    user_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("user_profiles.id", ondelete="CASCADE"),
        nullable=False,
    )
    type: Mapped[str] = mapped_column(String(32), nullable=False)
    dedupe_key: Mapped[str] = mapped_column(String(128), nullable=False)

    title: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    body: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    scheduled_for: Mapped[Optional[dt.datetime]] = mapped_column(DateTime, nullable=True)
    sent_at: Mapped[Optional[dt.datetime]] = mapped_column(DateTime, nullable=True)

    created_at: Mapped[dt.datetime] = mapped_column(DateTime, nullable=False, server_default=func.now())

    __table_args__ = (
        UniqueConstraint("user_id", "dedupe_key", name="uq_notification_logs_user_key"),
    )
