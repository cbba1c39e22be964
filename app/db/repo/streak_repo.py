from __future__ import annotations

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.streak_records import StreakRecord


class StreakRepo:
    @staticmethod
    async def get_by_account_id(session: AsyncSession, account_id: int) -> StreakRecord | None:
        return await session.get(StreakRecord, account_id)

    @staticmethod
    async def get_by_account_id_for_update(
        session: AsyncSession, account_id: int
    ) -> StreakRecord | None:
        stmt = select(StreakRecord).where(StreakRecord.account_id == account_id).with_for_update()
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def create_default_record(
        session: AsyncSession, *, account_id: int, now_utc: datetime
    ) -> StreakRecord:
        record = StreakRecord(
            account_id=account_id,
            current_streak=0,
            longest_streak=0,
            last_active_date=None,
            total_active_days=0,
            streak_bonus_earned=0,
            version=0,
            updated_at=now_utc,
        )
        session.add(record)
        await session.flush()
        return record
