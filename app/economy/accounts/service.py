from __future__ import annotations

from datetime import datetime

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.accounts import Account
from app.db.repo.accounts_repo import AccountsRepo
from app.economy.accounts.types import AccountView
from app.economy.daily_tasks.types import SocialNetwork
from app.economy.errors import AccountNotFoundError
from app.economy.events import LoyaltyEvent, SocialAccountLinked
from app.economy.ledger.service import LedgerService

logger = structlog.get_logger(__name__)


def _to_view(account: Account, *, created: bool = False) -> AccountView:
    return AccountView(
        account_id=account.id,
        external_user_id=account.external_user_id,
        balance=account.balance,
        tier=account.tier,
        vk_user_id=account.vk_user_id,
        instagram_user_id=account.instagram_user_id,
        created_at=account.created_at,
        created=created,
    )


class AccountService:
    @staticmethod
    async def register(
        session: AsyncSession,
        *,
        external_user_id: str,
        now_utc: datetime,
    ) -> AccountView:
        normalized = external_user_id.strip()
        if not normalized:
            raise ValueError("external_user_id must not be empty")

        existing = await AccountsRepo.get_by_external_user_id(session, normalized)
        if existing is not None:
            return _to_view(existing)

        account = await AccountsRepo.create(session, external_user_id=normalized, now_utc=now_utc)
        logger.info("account_registered", account_id=account.id, external_user_id=normalized)
        return _to_view(account, created=True)

    @staticmethod
    async def get(session: AsyncSession, *, account_id: int) -> AccountView:
        account = await AccountsRepo.get_by_id(session, account_id)
        if account is None:
            raise AccountNotFoundError(account_id)
        return _to_view(account)

    @staticmethod
    async def link_social_account(
        session: AsyncSession,
        *,
        account_id: int,
        network: SocialNetwork,
        external_id: str,
        now_utc: datetime,
        events: list[LoyaltyEvent],
    ) -> AccountView:
        normalized = external_id.strip()
        if not normalized:
            raise ValueError("external_id must not be empty")

        account = await LedgerService.lock_account(session, account_id)
        current = account.vk_user_id if network == SocialNetwork.VK else account.instagram_user_id
        if current == normalized:
            return _to_view(account)

        if network == SocialNetwork.VK:
            account.vk_user_id = normalized
        else:
            account.instagram_user_id = normalized
        account.updated_at = now_utc
        account.version += 1
        await session.flush()

        events.append(
            SocialAccountLinked(
                account_id=account_id,
                network=network.value,
                external_id=normalized,
            )
        )
        logger.info("social_account_linked", account_id=account_id, network=network.value)
        return _to_view(account)
