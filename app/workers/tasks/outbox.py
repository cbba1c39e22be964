from __future__ import annotations

import structlog

from app.core.config import get_settings
from app.workers.asyncio_runner import run_async_job
from app.workers.celery_app import celery_app
from app.workers.tasks.engine import build_worker_engine

logger = structlog.get_logger(__name__)


async def deliver_outbox_events_async(*, batch_size: int) -> dict[str, int]:
    engine = build_worker_engine()
    result = await engine.deliver_pending_events(batch_size=batch_size)
    if result.failed > 0:
        logger.warning("outbox_delivery_failures", **result.as_dict())
    return result.as_dict()


@celery_app.task(name="app.workers.tasks.outbox.deliver_outbox_events")
def deliver_outbox_events(batch_size: int | None = None) -> dict[str, int]:
    resolved_batch_size = batch_size or get_settings().outbox_batch_size
    return run_async_job(
        deliver_outbox_events_async(batch_size=resolved_batch_size),
        job_name="outbox_delivery",
    )


celery_app.conf.beat_schedule = celery_app.conf.beat_schedule or {}
celery_app.conf.beat_schedule.update(
    {
        "outbox-delivery-every-15-seconds": {
            "task": "app.workers.tasks.outbox.deliver_outbox_events",
            "schedule": 15.0,
            "options": {"queue": "q_normal"},
        },
    }
)
