from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable
from typing import TypeVar

import structlog

from app.db.session import dispose_engine

T = TypeVar("T")

logger = structlog.get_logger(__name__)


async def _run_job(awaitable: Awaitable[T], *, job_name: str) -> T:
    await dispose_engine()
    started = time.monotonic()
    with structlog.contextvars.bound_contextvars(job=job_name):
        try:
            return await awaitable
        except Exception:
            logger.exception("worker_job_failed")
            raise
        finally:
            logger.info("worker_job_finished", duration_ms=int((time.monotonic() - started) * 1000))
            await dispose_engine()


def run_async_job(awaitable: Awaitable[T], *, job_name: str) -> T:
    return asyncio.run(_run_job(awaitable, job_name=job_name))
