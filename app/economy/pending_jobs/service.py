from __future__ import annotations

from datetime import datetime

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.pending_jobs import PendingJob
from app.db.repo.pending_jobs_repo import PendingJobsRepo
from app.economy.events import LoyaltyEvent
from app.economy.pending_jobs.handlers import get_handler
from app.economy.pending_jobs.types import JobOutcome, PendingJobStatus, PendingJobType

logger = structlog.get_logger(__name__)

MAX_JOB_ATTEMPTS = 3
LAST_ERROR_MAX_LENGTH = 1000


class PendingJobService:
    @staticmethod
    async def schedule(
        session: AsyncSession,
        *,
        job_type: PendingJobType,
        account_id: int,
        payload: dict[str, object],
        due_at: datetime,
        idempotency_key: str,
        now_utc: datetime,
    ) -> PendingJob:
        existing = await PendingJobsRepo.get_by_idempotency_key(session, idempotency_key)
        if existing is not None:
            return existing

        job = await PendingJobsRepo.create(
            session,
            job=PendingJob(
                job_type=job_type.value,
                account_id=account_id,
                payload=payload,
                due_at=due_at,
                status=PendingJobStatus.PENDING.value,
                attempts=0,
                idempotency_key=idempotency_key,
                created_at=now_utc,
            ),
        )
        logger.info(
            "pending_job_scheduled",
            job_id=job.id,
            job_type=job.job_type,
            account_id=account_id,
            due_at=due_at.isoformat(),
        )
        return job

    @staticmethod
    async def list_due_job_ids(
        session: AsyncSession,
        *,
        now_utc: datetime,
        limit: int,
    ) -> list[int]:
        return await PendingJobsRepo.list_due_ids(session, now_utc=now_utc, limit=max(1, int(limit)))

    @staticmethod
    async def process_job(
        session: AsyncSession,
        *,
        job_id: int,
        now_utc: datetime,
        events: list[LoyaltyEvent],
    ) -> JobOutcome:
        job = await PendingJobsRepo.get_by_id_for_update(session, job_id)
        if job is None:
            return JobOutcome.MISSING
        if job.status != PendingJobStatus.PENDING.value:
            return JobOutcome.SKIPPED

        handler = get_handler(job.job_type)
        await handler(session, job, now_utc, events)

        job.attempts += 1
        job.status = PendingJobStatus.PROCESSED.value
        job.processed_at = now_utc
        job.last_error = None
        await session.flush()
        return JobOutcome.PROCESSED

    @staticmethod
    async def record_failure(
        session: AsyncSession,
        *,
        job_id: int,
        error: str,
        now_utc: datetime,
    ) -> JobOutcome:
        job = await PendingJobsRepo.get_by_id_for_update(session, job_id)
        if job is None:
            return JobOutcome.MISSING
        if job.status != PendingJobStatus.PENDING.value:
            return JobOutcome.SKIPPED

        job.attempts += 1
        job.last_error = error[:LAST_ERROR_MAX_LENGTH]
        if job.attempts >= MAX_JOB_ATTEMPTS:
            job.status = PendingJobStatus.FAILED.value
            job.processed_at = now_utc
            await session.flush()
            logger.error(
                "pending_job_failed_permanently",
                job_id=job_id,
                job_type=job.job_type,
                attempts=job.attempts,
            )
            return JobOutcome.FAILED

        await session.flush()
        return JobOutcome.RETRYABLE_FAILURE
