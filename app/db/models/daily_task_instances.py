from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.db.models.base import Base, BigIntPK


class DailyTaskInstance(Base):
    __tablename__ = "daily_task_instances"
    __table_args__ = (
        UniqueConstraint(
            "account_id",
            "task_code",
            "task_date",
            name="uq_daily_task_instances_account_task_date",
        ),
        CheckConstraint("progress >= 0", name="ck_daily_task_instances_progress_non_negative"),
        CheckConstraint(
            "difficulty IN ('easy','medium','hard')",
            name="ck_daily_task_instances_difficulty",
        ),
        Index("idx_daily_task_instances_account_date", "account_id", "task_date"),
        Index("idx_daily_task_instances_date", "task_date"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    account_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("accounts.id"), nullable=False)
    task_code: Mapped[str] = mapped_column(String(48), nullable=False)
    task_date: Mapped[date] = mapped_column(Date, nullable=False)
    difficulty: Mapped[str] = mapped_column(String(8), nullable=False)
    target_value: Mapped[int] = mapped_column(Integer, nullable=False)
    reward_points: Mapped[int] = mapped_column(Integer, nullable=False)
    progress: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    points_earned: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
