from __future__ import annotations

import asyncio

import pytest
from sqlalchemy import select

from app.core.config import Settings
from app.db.models.outbox_events import OutboxEvent
from app.economy.errors import InsufficientBalanceError
from app.economy.events import PointsPosted
from tests.integration.loyalty_fixtures import FailingNotifier, create_account


class _StalledNotifier:
    def __init__(self) -> None:
        self.calls = 0
        self._release = asyncio.Event()

    async def notify(self, event) -> None:
        self.calls += 1
        await self._release.wait()


async def _outbox_rows(session_factory, account_id: int) -> list[OutboxEvent]:
    async with session_factory() as session:
        result = await session.execute(
            select(OutboxEvent)
            .where(OutboxEvent.account_id == account_id)
            .order_by(OutboxEvent.id.asc())
        )
        return list(result.scalars().all())


@pytest.mark.asyncio
async def test_operation_returns_without_waiting_for_notifier(build_engine, session_factory) -> None:
    stalled = _StalledNotifier()
    engine = build_engine(notifier=stalled)
    account_id = await create_account(engine, "notify-stalled")

    posting = await asyncio.wait_for(engine.credit(account_id, 600, "admin", "seed"), timeout=2)

    assert posting.balance_after == 600
    assert stalled.calls == 0
    rows = await _outbox_rows(session_factory, account_id)
    assert rows
    assert {row.status for row in rows} == {"PENDING"}


@pytest.mark.asyncio
async def test_events_are_written_to_outbox_in_the_same_transaction(engine, notifier, session_factory) -> None:
    account_id = await create_account(engine, "notify-outbox")

    await engine.credit(account_id, 500, "admin", "seed")

    assert notifier.events == []
    rows = await _outbox_rows(session_factory, account_id)
    event_types = [row.event_type for row in rows]
    assert event_types[:2] == ["points_posted", "tier_changed"]
    assert "achievement_unlocked" in event_types
    assert rows[0].payload["delta"] == 500
    assert all(row.attempts == 0 for row in rows)


@pytest.mark.asyncio
async def test_rejected_operation_leaves_no_outbox_rows(engine, session_factory) -> None:
    account_id = await create_account(engine, "notify-rejected")

    with pytest.raises(InsufficientBalanceError):
        await engine.debit(account_id, 10, "admin", "too_much")

    assert await _outbox_rows(session_factory, account_id) == []


@pytest.mark.asyncio
async def test_delivery_sends_pending_events_in_commit_order(engine, notifier, session_factory) -> None:
    account_id = await create_account(engine, "notify-sent")
    await engine.credit(account_id, 500, "admin", "seed")

    result = await engine.deliver_pending_events()

    rows = await _outbox_rows(session_factory, account_id)
    assert result.sent == len(rows)
    assert result.failed == 0
    assert {row.status for row in rows} == {"SENT"}
    assert all(row.delivered_at is not None for row in rows)
    assert [row.event_type for row in rows] == [event.event_type for event in notifier.events]
    assert isinstance(notifier.events[0], PointsPosted)
    assert notifier.events[0].balance_after == 500

    again = await engine.deliver_pending_events()
    assert again.examined == 0


@pytest.mark.asyncio
async def test_notifier_failure_keeps_event_pending_until_attempts_run_out(
    build_engine,
    session_factory,
) -> None:
    failing = FailingNotifier()
    engine = build_engine(
        notifier=failing,
        settings=Settings(_env_file=None, LOYALTY_OUTBOX_MAX_DELIVERY_ATTEMPTS=2),
    )
    account_id = await create_account(engine, "notify-failing")
    posting = await engine.credit(account_id, 100, "admin", "seed")
    assert posting.balance_after == 100

    first = await engine.deliver_pending_events()
    assert first.retrying == 1
    assert first.failed == 0
    rows = await _outbox_rows(session_factory, account_id)
    assert [(row.status, row.attempts) for row in rows] == [("PENDING", 1)]
    assert rows[0].last_error == "RuntimeError: crm unavailable"

    second = await engine.deliver_pending_events()
    assert second.failed == 1
    rows = await _outbox_rows(session_factory, account_id)
    assert [(row.status, row.attempts) for row in rows] == [("FAILED", 2)]

    assert (await engine.deliver_pending_events()).examined == 0
    assert failing.calls == 2
    assert await engine.get_balance(account_id) == 100
