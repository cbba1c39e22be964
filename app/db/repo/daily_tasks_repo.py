from __future__ import annotations

from datetime import date

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.daily_task_instances import DailyTaskInstance


class DailyTasksRepo:
    @staticmethod
    async def list_for_date(
        session: AsyncSession,
        *,
        account_id: int,
        task_date: date,
    ) -> list[DailyTaskInstance]:
        stmt = (
            select(DailyTaskInstance)
            .where(
                DailyTaskInstance.account_id == account_id,
                DailyTaskInstance.task_date == task_date,
            )
            .order_by(DailyTaskInstance.position.asc(), DailyTaskInstance.id.asc())
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def get_for_update(
        session: AsyncSession,
        *,
        account_id: int,
        task_code: str,
        task_date: date,
    ) -> DailyTaskInstance | None:
        stmt = (
            select(DailyTaskInstance)
            .where(
                DailyTaskInstance.account_id == account_id,
                DailyTaskInstance.task_code == task_code,
                DailyTaskInstance.task_date == task_date,
            )
            .with_for_update()
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def create_many(
        session: AsyncSession, *, instances: list[DailyTaskInstance]
    ) -> list[DailyTaskInstance]:
        session.add_all(instances)
        await session.flush()
        return instances
