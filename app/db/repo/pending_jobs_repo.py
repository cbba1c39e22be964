from __future__ import annotations

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.pending_jobs import PendingJob


class PendingJobsRepo:
    @staticmethod
    async def get_by_idempotency_key(
        session: AsyncSession, idempotency_key: str
    ) -> PendingJob | None:
        stmt = select(PendingJob).where(PendingJob.idempotency_key == idempotency_key)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def get_by_id_for_update(session: AsyncSession, job_id: int) -> PendingJob | None:
        stmt = select(PendingJob).where(PendingJob.id == job_id).with_for_update()
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def create(session: AsyncSession, *, job: PendingJob) -> PendingJob:
        session.add(job)
        await session.flush()
        return job

    @staticmethod
    async def list_due_ids(
        session: AsyncSession,
        *,
        now_utc: datetime,
        limit: int,
    ) -> list[int]:
        stmt = (
            select(PendingJob.id)
            .where(
                PendingJob.status == "PENDING",
                PendingJob.due_at <= now_utc,
            )
            .order_by(PendingJob.due_at.asc(), PendingJob.id.asc())
            .limit(limit)
        )
        result = await session.execute(stmt)
        return [int(job_id) for job_id in result.scalars().all()]
