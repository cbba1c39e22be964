from __future__ import annotations

import structlog
from celery.signals import worker_ready

from app.core.config import get_settings
from app.workers.asyncio_runner import run_async_job
from app.workers.celery_app import celery_app
from app.workers.tasks.engine import build_worker_engine

logger = structlog.get_logger(__name__)


async def process_due_pending_jobs_async(*, batch_size: int) -> dict[str, int]:
    engine = build_worker_engine()
    result = await engine.process_due_jobs(batch_size=batch_size)
    return result.as_dict()


@celery_app.task(name="app.workers.tasks.pending_jobs.process_due_pending_jobs")
def process_due_pending_jobs(batch_size: int | None = None) -> dict[str, int]:
    resolved_batch_size = batch_size or get_settings().pending_jobs_batch_size
    return run_async_job(
        process_due_pending_jobs_async(batch_size=resolved_batch_size),
        job_name="pending_jobs_sweep",
    )


@worker_ready.connect
def sweep_pending_jobs_on_worker_ready(**_kwargs: object) -> None:
    logger.info("pending_jobs_startup_sweep_enqueued")
    process_due_pending_jobs.delay()


celery_app.conf.beat_schedule = celery_app.conf.beat_schedule or {}
celery_app.conf.beat_schedule.update(
    {
        "pending-jobs-sweep-every-minute": {
            "task": "app.workers.tasks.pending_jobs.process_due_pending_jobs",
            "schedule": 60.0,
            "options": {"queue": "q_normal"},
        },
    }
)
