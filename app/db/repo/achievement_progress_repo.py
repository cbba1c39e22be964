from __future__ import annotations

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.achievement_progress import AchievementProgress


class AchievementProgressRepo:
    @staticmethod
    async def list_for_account(
        session: AsyncSession, account_id: int
    ) -> dict[str, AchievementProgress]:
        stmt = select(AchievementProgress).where(AchievementProgress.account_id == account_id)
        result = await session.execute(stmt)
        return {row.achievement_code: row for row in result.scalars().all()}

    @staticmethod
    async def get_for_update(
        session: AsyncSession,
        *,
        account_id: int,
        achievement_code: str,
    ) -> AchievementProgress | None:
        stmt = (
            select(AchievementProgress)
            .where(
                AchievementProgress.account_id == account_id,
                AchievementProgress.achievement_code == achievement_code,
            )
            .with_for_update()
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def create(
        session: AsyncSession,
        *,
        account_id: int,
        achievement_code: str,
        current_progress: int,
        now_utc: datetime,
    ) -> AchievementProgress:
        row = AchievementProgress(
            account_id=account_id,
            achievement_code=achievement_code,
            current_progress=current_progress,
            is_completed=False,
            updated_at=now_utc,
        )
        session.add(row)
        await session.flush()
        return row
