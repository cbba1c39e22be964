from __future__ import annotations

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.accounts import Account
from app.db.repo.purchases_repo import PurchasesRepo
from app.db.repo.referral_codes_repo import ReferralCodesRepo
from app.economy.achievements.types import AchievementDefinition, ProgressSourceKind
from app.economy.status.rules import TIER_LEVELS, get_tier_level


class ProgressSource(Protocol):
    async def compute(
        self,
        session: AsyncSession,
        account: Account,
        definition: AchievementDefinition,
    ) -> int: ...


class PurchaseCountSource:
    async def compute(
        self, session: AsyncSession, account: Account, definition: AchievementDefinition
    ) -> int:
        return await PurchasesRepo.count_for_account(session, account.id)


class ReferralCountSource:
    async def compute(
        self, session: AsyncSession, account: Account, definition: AchievementDefinition
    ) -> int:
        return await ReferralCodesRepo.count_activated_for_owner(session, account.id)


class PointBalanceSource:
    async def compute(
        self, session: AsyncSession, account: Account, definition: AchievementDefinition
    ) -> int:
        return account.balance


class TierReachedSource:
    async def compute(
        self, session: AsyncSession, account: Account, definition: AchievementDefinition
    ) -> int:
        if definition.required_tier is None:
            return 0
        current_rank = TIER_LEVELS.index(get_tier_level(account.tier))
        required_rank = TIER_LEVELS.index(get_tier_level(definition.required_tier))
        return 1 if current_rank >= required_rank else 0


class VkLinkedSource:
    async def compute(
        self, session: AsyncSession, account: Account, definition: AchievementDefinition
    ) -> int:
        return 1 if account.vk_user_id else 0


class InstagramLinkedSource:
    async def compute(
        self, session: AsyncSession, account: Account, definition: AchievementDefinition
    ) -> int:
        return 1 if account.instagram_user_id else 0


PROGRESS_SOURCES: dict[ProgressSourceKind, ProgressSource] = {
    ProgressSourceKind.PURCHASE_COUNT: PurchaseCountSource(),
    ProgressSourceKind.REFERRAL_COUNT: ReferralCountSource(),
    ProgressSourceKind.POINT_BALANCE: PointBalanceSource(),
    ProgressSourceKind.TIER_REACHED: TierReachedSource(),
    ProgressSourceKind.VK_LINKED: VkLinkedSource(),
    ProgressSourceKind.INSTAGRAM_LINKED: InstagramLinkedSource(),
}


async def compute_progress(
    session: AsyncSession,
    account: Account,
    definition: AchievementDefinition,
) -> int:
    return await PROGRESS_SOURCES[definition.source].compute(session, account, definition)
