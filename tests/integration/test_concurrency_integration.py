from __future__ import annotations

import asyncio

import pytest
from sqlalchemy import select

from app.db import transactions
from app.db.models.outbox_events import OutboxEvent
from app.economy.errors import (
    InsufficientBalanceError,
    ReferralAlreadyActivatedError,
    ReferralCodeAlreadyUsedError,
)
from app.economy.ledger.service import LedgerService
from app.economy.referrals.types import ReferralCodeStatus
from tests.integration.loyalty_fixtures import create_account, ledger_entries


def _split(results: list[object]) -> tuple[list[object], list[BaseException]]:
    succeeded = [item for item in results if not isinstance(item, BaseException)]
    failed = [item for item in results if isinstance(item, BaseException)]
    return succeeded, failed


@pytest.mark.asyncio
async def test_concurrent_debits_never_overdraw(file_engine, file_session_factory) -> None:
    account_id = await create_account(file_engine, "race-debit")
    await file_engine.credit(account_id, 100, "admin", "seed")
    assert await file_engine.get_balance(account_id) == 100

    results = await asyncio.gather(
        file_engine.debit(account_id, 70, "admin", "redeem"),
        file_engine.debit(account_id, 70, "admin", "redeem"),
        return_exceptions=True,
    )

    succeeded, failed = _split(results)
    assert len(succeeded) == 1
    assert len(failed) == 1
    assert isinstance(failed[0], InsufficientBalanceError)
    assert failed[0].balance == 30

    entries = await ledger_entries(file_session_factory, account_id)
    assert [entry.delta for entry in entries] == [100, -70]
    assert await file_engine.get_balance(account_id) == 30


@pytest.mark.asyncio
async def test_concurrent_credits_keep_balance_equal_to_ledger(file_engine, file_session_factory) -> None:
    account_id = await create_account(file_engine, "race-credit")

    await asyncio.gather(*(file_engine.credit(account_id, 10, "admin", f"drip-{n}") for n in range(10)))

    entries = await ledger_entries(file_session_factory, account_id, source="admin")
    assert len(entries) == 10
    assert sorted(entry.balance_after for entry in entries) == list(range(10, 101, 10))
    all_entries = await ledger_entries(file_session_factory, account_id)
    assert await file_engine.get_balance(account_id) == sum(entry.delta for entry in all_entries)


@pytest.mark.asyncio
async def test_concurrent_activations_of_one_code_pay_once(file_engine, file_session_factory) -> None:
    owner_id = await create_account(file_engine, "race-owner")
    first_referee = await create_account(file_engine, "race-referee-1")
    second_referee = await create_account(file_engine, "race-referee-2")
    code = await file_engine.generate_referral_code(owner_id)

    results = await asyncio.gather(
        file_engine.activate_referral_code(code.code, first_referee),
        file_engine.activate_referral_code(code.code, second_referee),
        return_exceptions=True,
    )

    succeeded, failed = _split(results)
    assert len(succeeded) == 1
    assert len(failed) == 1
    assert isinstance(failed[0], ReferralCodeAlreadyUsedError)

    owner_rewards = await ledger_entries(file_session_factory, owner_id, source="referral")
    assert [entry.delta for entry in owner_rewards] == [50]
    referee_rewards = [
        entry.delta
        for referee_id in (first_referee, second_referee)
        for entry in await ledger_entries(file_session_factory, referee_id, source="referral")
    ]
    assert referee_rewards == [20]


@pytest.mark.asyncio
async def test_concurrent_activations_by_one_referee_pay_once(file_engine, file_session_factory) -> None:
    first_owner = await create_account(file_engine, "race-owner-a")
    second_owner = await create_account(file_engine, "race-owner-b")
    referee_id = await create_account(file_engine, "race-referee")
    first_code = await file_engine.generate_referral_code(first_owner)
    second_code = await file_engine.generate_referral_code(second_owner)

    results = await asyncio.gather(
        file_engine.activate_referral_code(first_code.code, referee_id),
        file_engine.activate_referral_code(second_code.code, referee_id),
        return_exceptions=True,
    )

    succeeded, failed = _split(results)
    assert len(succeeded) == 1
    assert isinstance(failed[0], ReferralAlreadyActivatedError)
    rewards = await ledger_entries(file_session_factory, referee_id, source="referral")
    assert [entry.delta for entry in rewards] == [20]


@pytest.mark.asyncio
async def test_concurrent_achievement_checks_reward_once(file_engine, file_session_factory, clock) -> None:
    account_id = await create_account(file_engine, "race-achievement")
    async with file_session_factory.begin() as session:
        await LedgerService.credit(
            session,
            account_id=account_id,
            amount=1000,
            source="admin",
            reason="seed",
            now_utc=clock(),
            events=[],
        )

    results = await asyncio.gather(
        file_engine.check_achievements(account_id, "points"),
        file_engine.check_achievements(account_id, "points"),
    )

    unlocked = [code for result in results for code in result.newly_unlocked]
    assert unlocked == ["POINTS_1000"]
    rewards = await ledger_entries(file_session_factory, account_id, source="achievement")
    assert [entry.idempotency_key for entry in rewards] == [f"achievement:{account_id}:POINTS_1000"]


@pytest.mark.asyncio
async def test_locked_database_is_retried_until_the_writer_finishes(
    file_db,
    file_engine,
    monkeypatch,
) -> None:
    account_id = await create_account(file_engine, "race-locked")
    conflicts: list[BaseException] = []
    is_retryable = transactions.is_retryable_conflict

    def _recording_is_retryable(exc: BaseException) -> bool:
        conflicts.append(exc)
        return is_retryable(exc)

    monkeypatch.setattr(transactions, "is_retryable_conflict", _recording_is_retryable)

    holder = await file_db.connect()
    await holder.begin()
    try:
        credit = asyncio.create_task(file_engine.credit(account_id, 25, "admin", "while_locked"))

        async def _wait_for_conflict() -> None:
            while not conflicts:
                await asyncio.sleep(0.01)

        await asyncio.wait_for(_wait_for_conflict(), timeout=3)
        assert not credit.done()
    finally:
        await holder.rollback()
        await holder.close()

    posting = await asyncio.wait_for(credit, timeout=5)
    assert posting.balance_after == 25
    assert "database is locked" in str(conflicts[0])
    assert await file_engine.get_balance(account_id) == 25


@pytest.mark.asyncio
async def test_failed_referee_credit_rolls_back_owner_bonus(
    engine,
    session_factory,
    monkeypatch,
) -> None:
    owner_id = await create_account(engine, "rollback-owner")
    referee_id = await create_account(engine, "rollback-referee")
    code = await engine.generate_referral_code(owner_id)
    credit = LedgerService.credit

    async def _credit_failing_for_referee(session, **kwargs):
        if kwargs["reason"] == "referee_bonus":
            raise RuntimeError("ledger unavailable")
        return await credit(session, **kwargs)

    monkeypatch.setattr(LedgerService, "credit", staticmethod(_credit_failing_for_referee))

    with pytest.raises(RuntimeError, match="ledger unavailable"):
        await engine.activate_referral_code(code.code, referee_id)

    assert await ledger_entries(session_factory, owner_id) == []
    assert await ledger_entries(session_factory, referee_id) == []
    assert await engine.get_balance(owner_id) == 0
    validation = await engine.validate_referral_code(code.code)
    assert validation.status == ReferralCodeStatus.VALID

    async with session_factory() as session:
        result = await session.execute(
            select(OutboxEvent).where(OutboxEvent.account_id.in_([owner_id, referee_id]))
        )
        assert list(result.scalars().all()) == []
