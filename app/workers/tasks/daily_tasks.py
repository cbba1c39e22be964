from __future__ import annotations

import structlog
from celery.schedules import crontab

from app.workers.asyncio_runner import run_async_job
from app.workers.celery_app import celery_app
from app.workers.tasks.engine import build_worker_engine

logger = structlog.get_logger(__name__)


async def generate_daily_tasks_for_active_accounts_async(*, limit: int) -> dict[str, int]:
    engine = build_worker_engine()
    result = await engine.generate_daily_tasks_for_active_accounts(limit=limit)
    logger.info("daily_tasks_generation_finished", **result)
    return result


@celery_app.task(name="app.workers.tasks.daily_tasks.generate_daily_tasks_for_active_accounts")
def generate_daily_tasks_for_active_accounts(limit: int = 5000) -> dict[str, int]:
    return run_async_job(
        generate_daily_tasks_for_active_accounts_async(limit=limit),
        job_name="daily_tasks_generation",
    )


celery_app.conf.beat_schedule = celery_app.conf.beat_schedule or {}
celery_app.conf.beat_schedule.update(
    {
        "daily-tasks-generation-0005": {
            "task": "app.workers.tasks.daily_tasks.generate_daily_tasks_for_active_accounts",
            "schedule": crontab(hour=0, minute=5),
            "options": {"queue": "q_normal"},
        },
    }
)
