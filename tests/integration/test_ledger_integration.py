from __future__ import annotations

import pytest
from sqlalchemy import select

from app.db.models.accounts import Account
from app.db.models.ledger_entries import LedgerEntry
from app.economy.errors import (
    AccountNotFoundError,
    IdempotencyKeyConflictError,
    InsufficientBalanceError,
)
from tests.integration.loyalty_fixtures import create_account, ledger_entries


@pytest.mark.asyncio
async def test_balance_matches_sum_of_ledger_deltas(engine, session_factory) -> None:
    account_id = await create_account(engine, "ledger-sum")

    await engine.credit(account_id, 120, "admin", "welcome")
    await engine.credit(account_id, 80, "admin", "bonus")
    await engine.debit(account_id, 50, "admin", "spend")

    entries = await ledger_entries(session_factory, account_id)
    assert [entry.delta for entry in entries] == [120, 80, -50]
    assert entries[-1].balance_after == 150
    assert await engine.get_balance(account_id) == sum(entry.delta for entry in entries)

    reconciled = await engine.reconcile(account_id)
    assert reconciled.drift == 0
    assert reconciled.corrected is False


@pytest.mark.asyncio
async def test_repeated_idempotency_key_posts_once(engine, session_factory) -> None:
    account_id = await create_account(engine, "ledger-replay")

    first = await engine.credit(account_id, 40, "admin", "promo", idempotency_key="promo:1")
    second = await engine.credit(account_id, 40, "admin", "promo", idempotency_key="promo:1")

    assert first.idempotent_replay is False
    assert second.idempotent_replay is True
    assert second.entry_id == first.entry_id
    assert await engine.get_balance(account_id) == 40
    assert len(await ledger_entries(session_factory, account_id)) == 1


@pytest.mark.asyncio
async def test_idempotency_key_reused_for_another_account_is_rejected(engine, session_factory) -> None:
    first_account = await create_account(engine, "ledger-key-owner")
    second_account = await create_account(engine, "ledger-key-other")
    await engine.credit(first_account, 100, "purchase", "order", idempotency_key="order-1")

    with pytest.raises(IdempotencyKeyConflictError):
        await engine.credit(second_account, 70, "purchase", "order", idempotency_key="order-1")

    assert await engine.get_balance(first_account) == 100
    assert await engine.get_balance(second_account) == 0
    assert await ledger_entries(session_factory, second_account) == []


@pytest.mark.asyncio
async def test_idempotency_key_reused_with_different_amount_is_rejected(engine, session_factory) -> None:
    account_id = await create_account(engine, "ledger-key-amount")
    await engine.credit(account_id, 100, "admin", "promo", idempotency_key="promo:2")

    with pytest.raises(IdempotencyKeyConflictError):
        await engine.credit(account_id, 70, "admin", "promo", idempotency_key="promo:2")
    with pytest.raises(IdempotencyKeyConflictError):
        await engine.debit(account_id, 100, "admin", "promo", idempotency_key="promo:2")

    assert await engine.get_balance(account_id) == 100
    assert len(await ledger_entries(session_factory, account_id)) == 1


@pytest.mark.asyncio
async def test_overdraft_is_rejected_without_side_effects(engine, session_factory) -> None:
    account_id = await create_account(engine, "ledger-overdraft")
    await engine.credit(account_id, 30, "admin", "seed")

    with pytest.raises(InsufficientBalanceError) as exc_info:
        await engine.debit(account_id, 31, "admin", "too_much")

    assert exc_info.value.balance == 30
    assert exc_info.value.requested == 31
    assert await engine.get_balance(account_id) == 30
    assert len(await ledger_entries(session_factory, account_id)) == 1


@pytest.mark.asyncio
@pytest.mark.parametrize("amount", [0, -5])
async def test_non_positive_amounts_are_rejected(engine, amount: int) -> None:
    account_id = await create_account(engine, f"ledger-invalid-{amount}")

    with pytest.raises(ValueError):
        await engine.credit(account_id, amount, "admin", "invalid")
    with pytest.raises(ValueError):
        await engine.debit(account_id, amount, "admin", "invalid")


@pytest.mark.asyncio
async def test_unknown_account_raises_not_found(engine) -> None:
    with pytest.raises(AccountNotFoundError):
        await engine.credit(999_999, 10, "admin", "ghost")
    with pytest.raises(AccountNotFoundError):
        await engine.get_balance(999_999)


@pytest.mark.asyncio
async def test_adjust_points_posts_admin_entries(engine) -> None:
    account_id = await create_account(engine, "ledger-adjust")

    await engine.adjust_points(account_id, 70, "goodwill")
    result = await engine.adjust_points(account_id, -20, "correction")

    assert result.balance_after == 50
    history = await engine.get_history(account_id)
    assert [item.reason for item in history] == ["correction", "goodwill"]
    assert all(item.source == "admin" for item in history)
    assert all(item.metadata == {"manual": True} for item in history)

    with pytest.raises(ValueError):
        await engine.adjust_points(account_id, 0, "noop")


@pytest.mark.asyncio
async def test_history_is_newest_first_and_paginated(engine, clock) -> None:
    account_id = await create_account(engine, "ledger-history")
    for index in range(3):
        clock.advance(minutes=1)
        await engine.credit(account_id, 10 + index, "admin", f"credit_{index}")

    history = await engine.get_history(account_id, limit=2)
    assert [item.delta for item in history] == [12, 11]

    tail = await engine.get_history(account_id, limit=2, offset=2)
    assert [item.delta for item in tail] == [10]


@pytest.mark.asyncio
async def test_ledger_entries_cannot_be_updated_or_deleted(engine, session_factory) -> None:
    account_id = await create_account(engine, "ledger-append-only")
    await engine.credit(account_id, 25, "admin", "seed")

    async with session_factory() as session:
        entry = (
            await session.execute(select(LedgerEntry).where(LedgerEntry.account_id == account_id))
        ).scalar_one()
        entry.delta = 999
        with pytest.raises(ValueError, match="append-only"):
            await session.flush()
        await session.rollback()

    async with session_factory() as session:
        entry = (
            await session.execute(select(LedgerEntry).where(LedgerEntry.account_id == account_id))
        ).scalar_one()
        await session.delete(entry)
        with pytest.raises(ValueError, match="append-only"):
            await session.flush()
        await session.rollback()

    entries = await ledger_entries(session_factory, account_id)
    assert [entry.delta for entry in entries] == [25]


@pytest.mark.asyncio
async def test_reconcile_restores_cached_balance_from_ledger(engine, session_factory) -> None:
    account_id = await create_account(engine, "ledger-drift")
    await engine.credit(account_id, 60, "admin", "seed")

    async with session_factory.begin() as session:
        account = await session.get(Account, account_id)
        assert account is not None
        account.balance = 400

    result = await engine.reconcile(account_id)
    assert result.cached_balance == 400
    assert result.ledger_balance == 60
    assert result.drift == 340
    assert result.corrected is True
    assert await engine.get_balance(account_id) == 60

    summary = await engine.reconcile_all()
    assert summary == {"examined": 1, "drift_corrected": 0}
