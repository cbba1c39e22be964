from __future__ import annotations

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.accounts import Account


class AccountsRepo:
    @staticmethod
    async def get_by_id(session: AsyncSession, account_id: int) -> Account | None:
        return await session.get(Account, account_id)

    @staticmethod
    async def get_by_id_for_update(session: AsyncSession, account_id: int) -> Account | None:
        stmt = (
            select(Account)
            .where(Account.id == account_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def lock_many_in_order(session: AsyncSession, account_ids: list[int]) -> dict[int, Account]:
        locked: dict[int, Account] = {}
        for account_id in sorted(set(account_ids)):
            account = await AccountsRepo.get_by_id_for_update(session, account_id)
            if account is not None:
                locked[account_id] = account
        return locked

    @staticmethod
    async def get_by_external_user_id(
        session: AsyncSession, external_user_id: str
    ) -> Account | None:
        stmt = select(Account).where(Account.external_user_id == external_user_id)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def create(
        session: AsyncSession,
        *,
        external_user_id: str,
        now_utc: datetime,
    ) -> Account:
        account = Account(
            external_user_id=external_user_id,
            balance=0,
            tier="BRONZE",
            version=0,
            created_at=now_utc,
            updated_at=now_utc,
        )
        session.add(account)
        await session.flush()
        return account

    @staticmethod
    async def list_ids_updated_since(
        session: AsyncSession,
        *,
        since_utc: datetime,
        limit: int,
    ) -> list[int]:
        stmt = (
            select(Account.id)
            .where(Account.updated_at >= since_utc)
            .order_by(Account.id.asc())
            .limit(limit)
        )
        result = await session.execute(stmt)
        return [int(account_id) for account_id in result.scalars().all()]

    @staticmethod
    async def list_ids_after(session: AsyncSession, *, after_id: int, limit: int) -> list[int]:
        stmt = select(Account.id).where(Account.id > after_id).order_by(Account.id.asc()).limit(limit)
        result = await session.execute(stmt)
        return [int(account_id) for account_id in result.scalars().all()]
