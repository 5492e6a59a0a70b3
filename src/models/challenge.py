from __future__ import annotations

import datetime as dt
from typing import List, Optional, TYPE_CHECKING

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Index, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.db.database import Base

if TYPE_CHECKING:
    from src.models.daily_progress import DailyProgress


class Challenge(Base):
    """
    75일 챌린지 1회 시도
    - 재시작 시 삭제하지 않고 비활성화 후 새 row 생성 (기록 보존)
    - 유저당 활성 챌린지는 최대 1개: active_user_id 유니크 컬럼으로 DB에서 보장
      (활성일 때만 user_id 값, 비활성이면 NULL → NULL은 유니크 충돌 없음)
    """
    __tablename__ = "challenges"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    user_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("user_profiles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    name: Mapped[str] = mapped_column(String(120), nullable=False, default="75 Hard Challenge")
    start_date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    end_date: Mapped[dt.date] = mapped_column(Date, nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    active_user_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, unique=True)

    created_at: Mapped[dt.datetime] = mapped_column(DateTime, nullable=False, server_default=func.now())

    __table_args__ = (
        Index("idx_challenges_user_active", "user_id", "is_active"),
    )

    user = relationship("UserProfile", back_populates="challenges", uselist=False)

    progress: Mapped[List["DailyProgress"]] = relationship(
        "DailyProgress",
        back_populates="challenge",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="DailyProgress.date",
    )

    def deactivate(self) -> None:
        self.is_active = False
        self.active_user_id = None

