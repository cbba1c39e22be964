from __future__ import annotations

import structlog
from celery.schedules import crontab

from app.workers.asyncio_runner import run_async_job
from app.workers.celery_app import celery_app
from app.workers.tasks.engine import build_worker_engine

logger = structlog.get_logger(__name__)


async def run_balance_reconciliation_async(*, batch_size: int) -> dict[str, int]:
    engine = build_worker_engine()
    result = await engine.reconcile_all(batch_size=batch_size)
    if result["drift_corrected"] > 0:
        logger.warning("balance_reconciliation_drift_corrected", **result)
    else:
        logger.info("balance_reconciliation_finished", **result)
    return result


@celery_app.task(name="app.workers.tasks.reconciliation.run_balance_reconciliation")
def run_balance_reconciliation(batch_size: int = 500) -> dict[str, int]:
    return run_async_job(
        run_balance_reconciliation_async(batch_size=batch_size),
        job_name="balance_reconciliation",
    )


celery_app.conf.beat_schedule = celery_app.conf.beat_schedule or {}
celery_app.conf.beat_schedule.update(
    {
        "balance-reconciliation-nightly-0330": {
            "task": "app.workers.tasks.reconciliation.run_balance_reconciliation",
            "schedule": crontab(hour=3, minute=30),
            "options": {"queue": "q_normal"},
        },
    }
)
