from __future__ import annotations

from collections.abc import Awaitable, Callable
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.pending_jobs import PendingJob
from app.economy.events import LoyaltyEvent
from app.economy.ledger.service import LedgerService
from app.economy.ledger.types import LedgerSource
from app.economy.pending_jobs.types import PendingJobType

JobHandler = Callable[[AsyncSession, PendingJob, datetime, list[LoyaltyEvent]], Awaitable[None]]


async def handle_delayed_credit(
    session: AsyncSession,
    job: PendingJob,
    now_utc: datetime,
    events: list[LoyaltyEvent],
) -> None:
    points = job.payload.get("points")
    if not isinstance(points, int) or isinstance(points, bool):
        raise ValueError(f"pending job {job.id} has invalid points payload")

    metadata: dict[str, object] = {"pending_job_id": job.id}
    if "purchase_id" in job.payload:
        metadata["purchase_id"] = job.payload["purchase_id"]

    await LedgerService.credit(
        session,
        account_id=job.account_id,
        amount=points,
        source=str(job.payload.get("source") or LedgerSource.SYSTEM.value),
        reason=str(job.payload.get("reason") or "delayed_credit"),
        idempotency_key=f"pending_job:{job.id}",
        metadata=metadata,
        now_utc=now_utc,
        events=events,
    )


JOB_HANDLERS: dict[PendingJobType, JobHandler] = {
    PendingJobType.DELAYED_CREDIT: handle_delayed_credit,
}


def get_handler(job_type: str) -> JobHandler:
    try:
        return JOB_HANDLERS[PendingJobType(job_type)]
    except ValueError as exc:
        raise ValueError(f"unsupported pending job type: {job_type}") from exc
