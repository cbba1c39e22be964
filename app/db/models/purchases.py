from __future__ import annotations

from datetime import datetime

from sqlalchemy import BigInteger, CheckConstraint, DateTime, ForeignKey, Index, Integer, SmallInteger, String
from sqlalchemy.orm import Mapped, mapped_column

from app.db.models.base import Base, BigIntPK


class Purchase(Base):
    __tablename__ = "purchases"
    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_purchases_amount_positive"),
        CheckConstraint("award_points >= 0", name="ck_purchases_award_non_negative"),
        Index("idx_purchases_account_created", "account_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    account_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("accounts.id"), nullable=False)
    external_order_id: Mapped[str] = mapped_column(String(96), unique=True, nullable=False)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    cashback_rate: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    award_points: Mapped[int] = mapped_column(Integer, nullable=False)
    tier_at_purchase: Mapped[str] = mapped_column(String(16), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
