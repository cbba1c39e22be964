from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.repo.outbox_events_repo import OutboxEventsRepo
from app.economy.events import LoyaltyEvent, event_from_payload

logger = structlog.get_logger(__name__)


class OutboxStatus(str, Enum):
    PENDING = "PENDING"
    SENT = "SENT"
    FAILED = "FAILED"


@dataclass(frozen=True, slots=True)
class OutboxDeliveryResult:
    examined: int
    sent: int
    retrying: int
    failed: int

    def as_dict(self) -> dict[str, int]:
        return {
            "examined": self.examined,
            "sent": self.sent,
            "retrying": self.retrying,
            "failed": self.failed,
        }


class OutboxService:
    @staticmethod
    async def record(session: AsyncSession, events: Sequence[LoyaltyEvent]) -> None:
        for event in events:
            await OutboxEventsRepo.create(
                session,
                event_type=event.event_type,
                account_id=event.account_id,
                payload=event.payload(),
                status=OutboxStatus.PENDING.value,
            )

    @staticmethod
    async def list_pending_ids(session: AsyncSession, *, limit: int) -> list[int]:
        return await OutboxEventsRepo.list_ids_by_status(
            session,
            status=OutboxStatus.PENDING.value,
            limit=limit,
        )

    @staticmethod
    async def load_pending_event(session: AsyncSession, *, event_id: int) -> LoyaltyEvent | None:
        row = await OutboxEventsRepo.get_by_id(session, event_id)
        if row is None or row.status != OutboxStatus.PENDING.value:
            return None
        return event_from_payload(row.event_type, row.payload)

    @staticmethod
    async def mark_sent(session: AsyncSession, *, event_id: int, now_utc: datetime) -> OutboxStatus:
        row = await OutboxEventsRepo.get_by_id_for_update(session, event_id)
        if row is None:
            return OutboxStatus.FAILED
        row.status = OutboxStatus.SENT.value
        row.attempts += 1
        row.last_error = None
        row.delivered_at = now_utc
        await session.flush()
        return OutboxStatus.SENT

    @staticmethod
    async def mark_failed(
        session: AsyncSession,
        *,
        event_id: int,
        error: str,
        max_attempts: int,
    ) -> OutboxStatus:
        row = await OutboxEventsRepo.get_by_id_for_update(session, event_id)
        if row is None:
            return OutboxStatus.FAILED
        row.attempts += 1
        row.last_error = error[:1000]
        if row.attempts >= max(1, max_attempts):
            row.status = OutboxStatus.FAILED.value
            logger.warning(
                "outbox_event_delivery_abandoned",
                event_id=event_id,
                event_type=row.event_type,
                attempts=row.attempts,
            )
        await session.flush()
        return OutboxStatus(row.status)
