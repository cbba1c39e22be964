from __future__ import annotations

from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.referral_codes import ReferralCode


class ReferralCodesRepo:
    @staticmethod
    async def get_by_code(session: AsyncSession, code: str) -> ReferralCode | None:
        stmt = select(ReferralCode).where(ReferralCode.code == code)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def get_by_code_for_update(session: AsyncSession, code: str) -> ReferralCode | None:
        stmt = select(ReferralCode).where(ReferralCode.code == code).with_for_update()
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def get_unused_for_owner(
        session: AsyncSession, owner_account_id: int
    ) -> ReferralCode | None:
        stmt = (
            select(ReferralCode)
            .where(
                ReferralCode.owner_account_id == owner_account_id,
                ReferralCode.activated_by_account_id.is_(None),
            )
            .order_by(ReferralCode.created_at.desc(), ReferralCode.id.desc())
            .limit(1)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def get_activated_by(
        session: AsyncSession, activated_by_account_id: int
    ) -> ReferralCode | None:
        stmt = select(ReferralCode).where(
            ReferralCode.activated_by_account_id == activated_by_account_id
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def create(
        session: AsyncSession,
        *,
        code: str,
        owner_account_id: int,
        now_utc: datetime,
    ) -> ReferralCode:
        referral_code = ReferralCode(
            code=code,
            owner_account_id=owner_account_id,
            bonus_amount=0,
            bonus_paid=False,
            created_at=now_utc,
        )
        session.add(referral_code)
        await session.flush()
        return referral_code

    @staticmethod
    async def count_activated_for_owner(session: AsyncSession, owner_account_id: int) -> int:
        stmt = select(func.count(ReferralCode.id)).where(
            ReferralCode.owner_account_id == owner_account_id,
            ReferralCode.activated_by_account_id.is_not(None),
        )
        result = await session.execute(stmt)
        return int(result.scalar_one() or 0)

    @staticmethod
    async def sum_paid_bonus_for_owner(session: AsyncSession, owner_account_id: int) -> int:
        stmt = select(func.coalesce(func.sum(ReferralCode.bonus_amount), 0)).where(
            ReferralCode.owner_account_id == owner_account_id,
            ReferralCode.bonus_paid.is_(True),
        )
        result = await session.execute(stmt)
        return int(result.scalar_one() or 0)

    @staticmethod
    async def list_recent_activations(
        session: AsyncSession,
        owner_account_id: int,
        *,
        limit: int,
    ) -> list[ReferralCode]:
        stmt = (
            select(ReferralCode)
            .where(
                ReferralCode.owner_account_id == owner_account_id,
                ReferralCode.activated_by_account_id.is_not(None),
            )
            .order_by(ReferralCode.activated_at.desc(), ReferralCode.id.desc())
            .limit(limit)
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())
