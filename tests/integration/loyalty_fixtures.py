from __future__ import annotations

import random
from datetime import datetime, timedelta, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.db.models.ledger_entries import LedgerEntry
from app.economy.events import LoyaltyEvent
from app.services.loyalty_engine import LoyaltyEngine

UTC = timezone.utc


class FixedClock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


class FixedRandom(random.Random):
    def __init__(self, value: float) -> None:
        super().__init__(0)
        self._value = value

    def random(self) -> float:
        return self._value


class RecordingNotifier:
    def __init__(self) -> None:
        self.events: list[LoyaltyEvent] = []

    async def notify(self, event: LoyaltyEvent) -> None:
        self.events.append(event)

    def of_type(self, event_type: str) -> list[LoyaltyEvent]:
        return [item for item in self.events if item.event_type == event_type]


class FailingNotifier:
    def __init__(self) -> None:
        self.calls = 0

    async def notify(self, event: LoyaltyEvent) -> None:
        self.calls += 1
        raise RuntimeError("crm unavailable")


async def create_account(engine: LoyaltyEngine, external_user_id: str) -> int:
    account = await engine.register_account(external_user_id)
    return account.account_id


async def ledger_entries(
    session_factory: async_sessionmaker[AsyncSession],
    account_id: int,
    *,
    source: str | None = None,
) -> list[LedgerEntry]:
    async with session_factory() as session:
        stmt = select(LedgerEntry).where(LedgerEntry.account_id == account_id)
        if source is not None:
            stmt = stmt.where(LedgerEntry.source == source)
        result = await session.execute(stmt.order_by(LedgerEntry.id.asc()))
        return list(result.scalars().all())
