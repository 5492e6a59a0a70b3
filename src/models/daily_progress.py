from __future__ import annotations

import datetime as dt
from typing import Any, Dict, Optional

from sqlalchemy import JSON, Boolean, Date, DateTime, ForeignKey, Index, Integer, String, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.db.database import Base
from src.services.task_definitions import TASK_IDS, TOTAL_TASKS


class DailyProgress(Base):
    """
    (challenge_id, date) 당 1개
    - tasks: {task_id: {"completed", "completedAt", "duration"?, "notes"?, "photoUrl"?}}
    - tasks_completed / is_complete 는 tasks 에서 파생된 캐시 → 쓰기마다 recount()
    - 삭제하지 않음 (스트릭 계산용 기록)
    """
    __tablename__ = "daily_progress"

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

    tasks: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    tasks_completed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_complete: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # 하루 메모 (일지)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[dt.datetime] = mapped_column(DateTime, nullable=False, server_default=func.now())
    updated_at: Mapped[dt.datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        UniqueConstraint("challenge_id", "date", name="uq_daily_progress_challenge_date"),
        Index("idx_daily_progress_date", "date"),
    )

    challenge = relationship("Challenge", back_populates="progress", uselist=False)

    def task_completed(self, task_id: str) -> bool:
        entry = (self.tasks or {}).get(task_id) or {}
        return bool(entry.get("completed"))

    def recount(self) -> None:
        self.tasks_completed = sum(1 for task_id in TASK_IDS if self.task_completed(task_id))
        self.is_complete = self.tasks_completed == TOTAL_TASKS
