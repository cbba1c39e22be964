from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import TypeVar

import structlog
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.economy.errors import ConcurrencyConflictError

logger = structlog.get_logger(__name__)

T = TypeVar("T")

UNIQUE_VIOLATION_SQLSTATE = "23505"
RETRYABLE_SQLSTATES = frozenset({"40001", "40P01"})


def _sqlstate(exc: DBAPIError) -> str | None:
    orig = exc.orig
    for attr in ("sqlstate", "pgcode"):
        value = getattr(orig, attr, None)
        if value:
            return str(value)
    return None


def is_retryable_conflict(exc: BaseException) -> bool:
    """Unique races and serialization/deadlock aborts are safe to replay from scratch."""
    if not isinstance(exc, DBAPIError):
        return False

    sqlstate = _sqlstate(exc)
    if isinstance(exc, IntegrityError):
        if sqlstate == UNIQUE_VIOLATION_SQLSTATE:
            return True
        return "UNIQUE constraint failed" in str(exc.orig)

    if sqlstate in RETRYABLE_SQLSTATES:
        return True
    if isinstance(exc, OperationalError):
        return "database is locked" in str(exc.orig)
    return False


async def run_in_transaction(
    session_factory: async_sessionmaker[AsyncSession],
    work: Callable[[AsyncSession], Awaitable[T]],
    *,
    attempts: int = 3,
    operation: str = "loyalty_operation",
) -> T:
    resolved_attempts = max(1, int(attempts))
    for attempt in range(1, resolved_attempts + 1):
        try:
            async with session_factory.begin() as session:
                return await work(session)
        except DBAPIError as exc:
            if not is_retryable_conflict(exc):
                raise
            logger.warning(
                "loyalty_transaction_conflict",
                operation=operation,
                attempt=attempt,
                max_attempts=resolved_attempts,
                error_type=type(exc).__name__,
            )
            if attempt >= resolved_attempts:
                raise ConcurrencyConflictError(
                    f"{operation} conflicted {resolved_attempts} times"
                ) from exc

    raise ConcurrencyConflictError(f"{operation} conflicted {resolved_attempts} times")
