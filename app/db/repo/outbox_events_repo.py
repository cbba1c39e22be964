from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.outbox_events import OutboxEvent


class OutboxEventsRepo:
    @staticmethod
    async def create(
        session: AsyncSession,
        *,
        event_type: str,
        account_id: int | None,
        payload: dict[str, object],
        status: str,
    ) -> OutboxEvent:
        event = OutboxEvent(
            event_type=event_type,
            account_id=account_id,
            payload=payload,
            status=status,
            attempts=0,
        )
        session.add(event)
        await session.flush()
        return event

    @staticmethod
    async def get_by_id(session: AsyncSession, event_id: int) -> OutboxEvent | None:
        return await session.get(OutboxEvent, event_id)

    @staticmethod
    async def get_by_id_for_update(session: AsyncSession, event_id: int) -> OutboxEvent | None:
        stmt = (
            select(OutboxEvent)
            .where(OutboxEvent.id == event_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def list_ids_by_status(
        session: AsyncSession,
        *,
        status: str,
        limit: int,
    ) -> list[int]:
        stmt = (
            select(OutboxEvent.id)
            .where(OutboxEvent.status == status)
            .order_by(OutboxEvent.id.asc())
            .limit(limit)
        )
        result = await session.execute(stmt)
        return [int(event_id) for event_id in result.scalars().all()]
