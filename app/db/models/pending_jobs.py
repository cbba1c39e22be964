from __future__ import annotations

from datetime import datetime

from sqlalchemy import BigInteger, CheckConstraint, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.db.models.base import Base, BigIntPK, JSONPayload


class PendingJob(Base):
    __tablename__ = "pending_jobs"
    __table_args__ = (
        CheckConstraint(
            "status IN ('PENDING','PROCESSED','FAILED')",
            name="ck_pending_jobs_status",
        ),
        CheckConstraint("attempts >= 0", name="ck_pending_jobs_attempts_non_negative"),
        Index("idx_pending_jobs_status_due", "status", "due_at"),
        Index("idx_pending_jobs_account", "account_id"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    job_type: Mapped[str] = mapped_column(String(32), nullable=False)
    account_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("accounts.id"), nullable=False)
    payload: Mapped[dict[str, object]] = mapped_column(JSONPayload, nullable=False, default=dict)
    due_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="PENDING")
    attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_error: Mapped[str | None] = mapped_column(Text, nullable=True)
    idempotency_key: Mapped[str] = mapped_column(String(128), unique=True, nullable=False)
    processed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
