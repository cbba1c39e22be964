from __future__ import annotations

from datetime import datetime, timedelta

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.purchases import Purchase
from app.db.repo.pending_jobs_repo import PendingJobsRepo
from app.db.repo.purchases_repo import PurchasesRepo
from app.economy.events import LoyaltyEvent, PurchaseRecorded
from app.economy.ledger.service import LedgerService
from app.economy.ledger.types import LedgerSource
from app.economy.pending_jobs.service import PendingJobService
from app.economy.pending_jobs.types import PendingJobType
from app.economy.purchases.types import PurchaseRecordResult
from app.economy.status.rules import cashback_points, get_tier_level

logger = structlog.get_logger(__name__)


def _delayed_credit_key(purchase_id: int) -> str:
    return f"purchase:{purchase_id}:delayed_credit"


class PurchaseService:
    @staticmethod
    async def _as_replay(session: AsyncSession, purchase: Purchase) -> PurchaseRecordResult:
        job = await PendingJobsRepo.get_by_idempotency_key(session, _delayed_credit_key(purchase.id))
        return PurchaseRecordResult(
            purchase_id=purchase.id,
            account_id=purchase.account_id,
            external_order_id=purchase.external_order_id,
            amount=purchase.amount,
            cashback_percent=purchase.cashback_rate,
            award_points=purchase.award_points,
            pending_job_id=job.id if job is not None else None,
            credit_due_at=job.due_at if job is not None else None,
            idempotent_replay=True,
        )

    @staticmethod
    async def record_purchase(
        session: AsyncSession,
        *,
        account_id: int,
        external_order_id: str,
        amount: int,
        credit_delay: timedelta,
        now_utc: datetime,
        events: list[LoyaltyEvent],
    ) -> PurchaseRecordResult:
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise ValueError("amount must be a positive integer")
        order_id = external_order_id.strip()
        if not order_id:
            raise ValueError("external_order_id must not be empty")

        account = await LedgerService.lock_account(session, account_id)
        existing = await PurchasesRepo.get_by_external_order_id(session, order_id)
        if existing is not None:
            if existing.account_id != account_id:
                raise ValueError("external_order_id already recorded for another account")
            return await PurchaseService._as_replay(session, existing)

        level = get_tier_level(account.tier)
        award = cashback_points(amount, level.cashback_percent)
        purchase = await PurchasesRepo.create(
            session,
            purchase=Purchase(
                account_id=account_id,
                external_order_id=order_id,
                amount=amount,
                cashback_rate=level.cashback_percent,
                award_points=award,
                tier_at_purchase=level.tier.value,
                created_at=now_utc,
            ),
        )

        job_id: int | None = None
        due_at: datetime | None = None
        if award > 0:
            job = await PendingJobService.schedule(
                session,
                job_type=PendingJobType.DELAYED_CREDIT,
                account_id=account_id,
                payload={
                    "points": award,
                    "source": LedgerSource.PURCHASE.value,
                    "reason": "purchase_cashback",
                    "purchase_id": purchase.id,
                },
                due_at=now_utc + credit_delay,
                idempotency_key=_delayed_credit_key(purchase.id),
                now_utc=now_utc,
            )
            job_id, due_at = job.id, job.due_at

        account.updated_at = now_utc
        events.append(
            PurchaseRecorded(
                account_id=account_id,
                purchase_id=purchase.id,
                external_order_id=order_id,
                amount=amount,
                award_points=award,
            )
        )
        logger.info(
            "purchase_recorded",
            account_id=account_id,
            purchase_id=purchase.id,
            amount=amount,
            award_points=award,
            tier=level.tier.value,
        )
        return PurchaseRecordResult(
            purchase_id=purchase.id,
            account_id=account_id,
            external_order_id=order_id,
            amount=amount,
            cashback_percent=level.cashback_percent,
            award_points=award,
            pending_job_id=job_id,
            credit_due_at=due_at,
            idempotent_replay=False,
        )
