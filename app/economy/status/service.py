from __future__ import annotations

from datetime import datetime

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.accounts import Account
from app.db.repo.accounts_repo import AccountsRepo
from app.economy.errors import AccountNotFoundError
from app.economy.events import LoyaltyEvent, TierChanged
from app.economy.status.rules import (
    TIER_LEVELS,
    calculate_tier,
    cashback_points,
    get_tier_level,
    next_tier_level,
    points_to_next_tier,
)
from app.economy.status.types import StatusView, Tier, TierLevel

logger = structlog.get_logger(__name__)


class StatusService:
    @staticmethod
    def tier_levels() -> tuple[TierLevel, ...]:
        return TIER_LEVELS

    @staticmethod
    async def refresh_status(
        session: AsyncSession,
        *,
        account: Account,
        now_utc: datetime,
        events: list[LoyaltyEvent],
    ) -> TierChanged | None:
        """Caller must hold the account row lock."""
        new_tier = calculate_tier(account.balance)
        old_tier = Tier(account.tier)
        if new_tier == old_tier:
            return None

        account.tier = new_tier.value
        account.updated_at = now_utc
        change = TierChanged(
            account_id=account.id,
            old_tier=old_tier.value,
            new_tier=new_tier.value,
        )
        events.append(change)
        logger.info(
            "account_tier_changed",
            account_id=account.id,
            old_tier=old_tier.value,
            new_tier=new_tier.value,
            balance=account.balance,
        )
        return change

    @staticmethod
    async def get_status(session: AsyncSession, *, account_id: int) -> StatusView:
        account = await AccountsRepo.get_by_id(session, account_id)
        if account is None:
            raise AccountNotFoundError(account_id)

        level = get_tier_level(account.tier)
        upcoming = next_tier_level(level.tier)
        return StatusView(
            account_id=account.id,
            balance=account.balance,
            tier=level.tier,
            tier_name=level.name,
            cashback_percent=level.cashback_percent,
            next_tier=upcoming.tier if upcoming is not None else None,
            next_tier_min_points=upcoming.min_points if upcoming is not None else None,
            points_to_next_tier=points_to_next_tier(account.balance),
        )

    @staticmethod
    async def calculate_cashback_for_purchase(
        session: AsyncSession,
        *,
        account_id: int,
        amount: int,
    ) -> int:
        if amount <= 0:
            raise ValueError("amount must be positive")
        account = await AccountsRepo.get_by_id(session, account_id)
        if account is None:
            raise AccountNotFoundError(account_id)
        return cashback_points(amount, get_tier_level(account.tier).cashback_percent)
