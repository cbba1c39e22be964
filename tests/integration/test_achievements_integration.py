from __future__ import annotations

import pytest

from app.economy.achievements.service import AchievementService
from app.economy.achievements.types import AchievementCategory
from app.economy.errors import AchievementNotFoundError
from app.economy.events import LoyaltyEvent
from app.economy.ledger.service import LedgerService
from tests.integration.loyalty_fixtures import create_account, ledger_entries


@pytest.mark.asyncio
async def test_back_to_back_checks_credit_reward_once(engine, session_factory, clock) -> None:
    account_id = await create_account(engine, "ach-double")
    async with session_factory.begin() as session:
        await LedgerService.credit(
            session,
            account_id=account_id,
            amount=1000,
            source="admin",
            reason="seed",
            now_utc=clock.now,
            events=[],
        )

    results = []
    for _ in range(2):
        events: list[LoyaltyEvent] = []
        async with session_factory.begin() as session:
            results.append(
                await AchievementService.check_and_unlock(
                    session,
                    account_id=account_id,
                    category=AchievementCategory.POINTS,
                    now_utc=clock.now,
                    events=events,
                )
            )

    assert results[0].newly_unlocked == ("POINTS_1000",)
    assert results[0].points_awarded == 100
    assert results[1].newly_unlocked == ()
    assert results[1].points_awarded == 0

    rewards = await ledger_entries(session_factory, account_id, source="achievement")
    assert [entry.idempotency_key for entry in rewards] == [f"achievement:{account_id}:POINTS_1000"]


@pytest.mark.asyncio
async def test_referral_activation_unlocks_first_referral(engine, notifier, session_factory) -> None:
    owner_id = await create_account(engine, "ach-referral-owner")
    referee_id = await create_account(engine, "ach-referral-referee")
    code = await engine.generate_referral_code(owner_id)

    await engine.activate_referral_code(code.code, referee_id)
    await engine.deliver_pending_events()

    unlocked = [
        event.achievement_code
        for event in notifier.of_type("achievement_unlocked")
        if event.account_id == owner_id
    ]
    assert unlocked == ["FIRST_REFERRAL"]
    rewards = await ledger_entries(session_factory, owner_id, source="achievement")
    assert [entry.delta for entry in rewards] == [150]

    view = await engine.get_achievement(owner_id, "first_referral")
    assert view.is_completed is True
    assert view.progress_percent == 100

    again = await engine.check_achievements(owner_id)
    assert again.newly_unlocked == ()


@pytest.mark.asyncio
async def test_social_link_unlocks_social_achievement(engine) -> None:
    account_id = await create_account(engine, "ach-social")

    linked = await engine.link_social_account(account_id, "vk", "vk-12345")
    assert linked.vk_user_id == "vk-12345"

    view = await engine.get_achievement(account_id, "SOCIAL_VK_CONNECT")
    assert view.is_completed is True
    assert await engine.get_balance(account_id) == 50

    await engine.link_social_account(account_id, "vk", "vk-12345")
    assert await engine.get_balance(account_id) == 50


@pytest.mark.asyncio
async def test_list_achievements_puts_open_items_first(engine) -> None:
    account_id = await create_account(engine, "ach-list")
    await engine.record_purchase(account_id, "ach-list-order-1", 200)
    await engine.record_purchase(account_id, "ach-list-order-2", 200)

    views = await engine.list_achievements(account_id)
    assert len(views) == 13
    assert views[-1].code == "FIRST_PURCHASE"
    assert views[-1].is_completed is True

    regular = next(item for item in views if item.code == "PURCHASE_5")
    assert regular.current_progress == 2
    assert regular.progress_percent == 40
    assert regular.is_completed is False

    stats = await engine.get_achievement_stats(account_id)
    assert stats.total == 13
    assert stats.completed == 1
    assert stats.points_earned == 100
    assert stats.completion_percent == 8


@pytest.mark.asyncio
async def test_unknown_achievement_code_raises(engine) -> None:
    account_id = await create_account(engine, "ach-unknown")
    with pytest.raises(AchievementNotFoundError):
        await engine.get_achievement(account_id, "NOT_A_THING")
