from __future__ import annotations

from datetime import datetime

from sqlalchemy import BigInteger, Boolean, CheckConstraint, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from app.db.models.base import Base, BigIntPK


class ReferralCode(Base):
    __tablename__ = "referral_codes"
    __table_args__ = (
        CheckConstraint(
            "activated_by_account_id IS NULL OR activated_by_account_id <> owner_account_id",
            name="ck_referral_codes_no_self_referral",
        ),
        CheckConstraint("bonus_amount >= 0", name="ck_referral_codes_bonus_non_negative"),
        Index("idx_referral_codes_owner", "owner_account_id"),
        Index("idx_referral_codes_owner_activated_at", "owner_account_id", "activated_at"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    code: Mapped[str] = mapped_column(String(16), unique=True, nullable=False)
    owner_account_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("accounts.id"), nullable=False
    )
    activated_by_account_id: Mapped[int | None] = mapped_column(
        BigInteger,
        ForeignKey("accounts.id"),
        unique=True,
        nullable=True,
    )
    activated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    bonus_amount: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    bonus_paid: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
