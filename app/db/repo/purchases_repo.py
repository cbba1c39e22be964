from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.purchases import Purchase


class PurchasesRepo:
    @staticmethod
    async def get_by_external_order_id(
        session: AsyncSession, external_order_id: str
    ) -> Purchase | None:
        stmt = select(Purchase).where(Purchase.external_order_id == external_order_id)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def create(session: AsyncSession, *, purchase: Purchase) -> Purchase:
        session.add(purchase)
        await session.flush()
        return purchase

    @staticmethod
    async def count_for_account(session: AsyncSession, account_id: int) -> int:
        stmt = select(func.count(Purchase.id)).where(Purchase.account_id == account_id)
        result = await session.execute(stmt)
        return int(result.scalar_one() or 0)
