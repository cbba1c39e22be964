from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import BigInteger, CheckConstraint, Date, DateTime, ForeignKey, Index, Integer
from sqlalchemy.orm import Mapped, mapped_column

from app.db.models.base import Base


class StreakRecord(Base):
    __tablename__ = "streak_records"
    __table_args__ = (
        CheckConstraint("current_streak >= 0", name="ck_streak_records_current_streak_non_negative"),
        CheckConstraint("longest_streak >= current_streak", name="ck_streak_records_longest_covers_current"),
        CheckConstraint("total_active_days >= 0", name="ck_streak_records_total_days_non_negative"),
        Index("idx_streak_records_last_active", "last_active_date"),
    )

    account_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("accounts.id"), primary_key=True)
    current_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    longest_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_active_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    total_active_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    streak_bonus_earned: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
