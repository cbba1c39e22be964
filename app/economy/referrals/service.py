from __future__ import annotations

from collections.abc import Callable
from datetime import datetime

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.referral_codes import generate_referral_code, normalize_referral_code
from app.db.models.referral_codes import ReferralCode
from app.db.repo.accounts_repo import AccountsRepo
from app.db.repo.referral_codes_repo import ReferralCodesRepo
from app.economy.errors import (
    AccountNotFoundError,
    CodeGenerationExhaustedError,
    ReferralAlreadyActivatedError,
    ReferralCodeAlreadyUsedError,
    ReferralCodeNotFoundError,
    SelfReferralRejectedError,
)
from app.economy.events import LoyaltyEvent, ReferralActivated
from app.economy.ledger.service import LedgerService
from app.economy.ledger.types import LedgerSource
from app.economy.referrals.types import (
    ReferralActivationResult,
    ReferralActivationView,
    ReferralCodeStatus,
    ReferralCodeView,
    ReferralStats,
    ReferralValidation,
)

logger = structlog.get_logger(__name__)

MAX_CODE_GENERATION_ATTEMPTS = 10
RECENT_ACTIVATIONS_LIMIT = 10


def build_invite_url(base_url: str, code: str) -> str:
    return f"{base_url.rstrip('/')}?start=ref_{code}"


class ReferralService:
    @staticmethod
    async def generate_code(
        session: AsyncSession,
        *,
        owner_account_id: int,
        base_url: str,
        now_utc: datetime,
        code_factory: Callable[[], str] = generate_referral_code,
        max_attempts: int = MAX_CODE_GENERATION_ATTEMPTS,
    ) -> ReferralCodeView:
        owner = await AccountsRepo.get_by_id_for_update(session, owner_account_id)
        if owner is None:
            raise AccountNotFoundError(owner_account_id)

        existing = await ReferralCodesRepo.get_unused_for_owner(session, owner_account_id)
        if existing is not None:
            return ReferralCodeView(
                code=existing.code,
                owner_account_id=owner_account_id,
                created_at=existing.created_at,
                invite_url=build_invite_url(base_url, existing.code),
                reused_existing=True,
            )

        for _ in range(max_attempts):
            candidate = normalize_referral_code(code_factory())
            if await ReferralCodesRepo.get_by_code(session, candidate) is not None:
                logger.info("referral_code_collision", owner_account_id=owner_account_id)
                continue

            created = await ReferralCodesRepo.create(
                session,
                code=candidate,
                owner_account_id=owner_account_id,
                now_utc=now_utc,
            )
            logger.info(
                "referral_code_generated",
                owner_account_id=owner_account_id,
                code=created.code,
            )
            return ReferralCodeView(
                code=created.code,
                owner_account_id=owner_account_id,
                created_at=created.created_at,
                invite_url=build_invite_url(base_url, created.code),
                reused_existing=False,
            )

        raise CodeGenerationExhaustedError(
            f"no free referral code after {max_attempts} attempts"
        )

    @staticmethod
    async def validate(session: AsyncSession, *, code: str) -> ReferralValidation:
        normalized = normalize_referral_code(code)
        referral_code = await ReferralCodesRepo.get_by_code(session, normalized)
        if referral_code is None:
            return ReferralValidation(status=ReferralCodeStatus.NOT_FOUND, code=normalized)
        if referral_code.activated_by_account_id is not None:
            return ReferralValidation(
                status=ReferralCodeStatus.ALREADY_USED,
                code=normalized,
                owner_account_id=referral_code.owner_account_id,
            )
        return ReferralValidation(
            status=ReferralCodeStatus.VALID,
            code=normalized,
            owner_account_id=referral_code.owner_account_id,
        )

    @staticmethod
    async def activate(
        session: AsyncSession,
        *,
        code: str,
        account_id: int,
        referrer_bonus: int,
        referee_bonus: int,
        now_utc: datetime,
        events: list[LoyaltyEvent],
    ) -> ReferralActivationResult:
        normalized = normalize_referral_code(code)
        referral_code = await ReferralCodesRepo.get_by_code_for_update(session, normalized)
        if referral_code is None:
            raise ReferralCodeNotFoundError(normalized)
        if referral_code.activated_by_account_id is not None:
            raise ReferralCodeAlreadyUsedError(normalized)
        if referral_code.owner_account_id == account_id:
            raise SelfReferralRejectedError(normalized)

        owner_id = referral_code.owner_account_id
        locked = await AccountsRepo.lock_many_in_order(session, [owner_id, account_id])
        if account_id not in locked:
            raise AccountNotFoundError(account_id)
        if owner_id not in locked:
            raise AccountNotFoundError(owner_id)

        if await ReferralCodesRepo.get_activated_by(session, account_id) is not None:
            raise ReferralAlreadyActivatedError(account_id)

        referral_code.activated_by_account_id = account_id
        referral_code.activated_at = now_utc
        referral_code.bonus_amount = referrer_bonus
        await session.flush()

        owner_posting = await LedgerService.credit(
            session,
            account_id=owner_id,
            amount=referrer_bonus,
            source=LedgerSource.REFERRAL.value,
            reason="referrer_bonus",
            idempotency_key=f"referral:{referral_code.id}:referrer",
            metadata={"code": normalized, "referee_account_id": account_id},
            now_utc=now_utc,
            events=events,
        )
        referee_posting = await LedgerService.credit(
            session,
            account_id=account_id,
            amount=referee_bonus,
            source=LedgerSource.REFERRAL.value,
            reason="referee_bonus",
            idempotency_key=f"referral:{referral_code.id}:referee",
            metadata={"code": normalized, "owner_account_id": owner_id},
            now_utc=now_utc,
            events=events,
        )
        referral_code.bonus_paid = True
        await session.flush()

        events.append(
            ReferralActivated(
                account_id=account_id,
                owner_account_id=owner_id,
                code=normalized,
                referrer_bonus=referrer_bonus,
                referee_bonus=referee_bonus,
            )
        )
        logger.info(
            "referral_code_activated",
            code=normalized,
            owner_account_id=owner_id,
            referee_account_id=account_id,
        )
        return ReferralActivationResult(
            code=normalized,
            owner_account_id=owner_id,
            referee_account_id=account_id,
            referrer_bonus=referrer_bonus,
            referee_bonus=referee_bonus,
            owner_balance=owner_posting.balance_after,
            referee_balance=referee_posting.balance_after,
        )

    @staticmethod
    async def get_stats(
        session: AsyncSession,
        *,
        account_id: int,
        base_url: str,
    ) -> ReferralStats:
        if await AccountsRepo.get_by_id(session, account_id) is None:
            raise AccountNotFoundError(account_id)

        current: ReferralCode | None = await ReferralCodesRepo.get_unused_for_owner(
            session, account_id
        )
        recent = await ReferralCodesRepo.list_recent_activations(
            session,
            account_id,
            limit=RECENT_ACTIVATIONS_LIMIT,
        )
        return ReferralStats(
            account_id=account_id,
            current_code=current.code if current is not None else None,
            invite_url=build_invite_url(base_url, current.code) if current is not None else None,
            total_referrals=await ReferralCodesRepo.count_activated_for_owner(session, account_id),
            total_earned=await ReferralCodesRepo.sum_paid_bonus_for_owner(session, account_id),
            recent_activations=tuple(
                ReferralActivationView(
                    code=row.code,
                    referee_account_id=int(row.activated_by_account_id or 0),
                    activated_at=row.activated_at,
                    bonus_amount=row.bonus_amount,
                    bonus_paid=row.bonus_paid,
                )
                for row in recent
            ),
        )
