from __future__ import annotations

import datetime as dt
from typing import Any, Dict, List

from sqlalchemy import JSON, Date, DateTime, Float, ForeignKey, Integer, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from src.db.database import Base


class WaterIntake(Base):
    """
    (challenge_id, date) 당 1개
    - amount/goal 은 항상 oz 로 저장 (입력 단위는 intake_log 에만 남김)
    - amount >= goal 이 되면 water-intake 과제 자동 완료
    """
    __tablename__ = "water_intake"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    user_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("user_profiles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    challenge_id: Mapped[int] = mapped_column(
        ForeignKey("challenges.id", ondelete="CASCADE"),
        nullable=False,
    )
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)

    amount: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    goal: Mapped[float] = mapped_column(Float, nullable=False, default=128)
    unit: Mapped[str] = mapped_column(String(16), nullable=False, default="oz")

    # [{"timestamp", "amount", "unit"}] 입력 원본
    intake_log: Mapped[List[Dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)

    created_at: Mapped[dt.datetime] = mapped_column(DateTime, nullable=False, server_default=func.now())
    updated_at: Mapped[dt.datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        UniqueConstraint("challenge_id", "date", name="uq_water_intake_challenge_date"),
    )

    @property
    def goal_met(self) -> bool:
        return (self.amount or 0) >= (self.goal or 0)

    @property
    def remaining(self) -> float:
        return max(0.0, (self.goal or 0) - (self.amount or 0))

    @property
    def percentage(self) -> float:
        if not self.goal:
            return 100.0
        return min(100.0, round((self.amount or 0) / self.goal * 100, 1))
