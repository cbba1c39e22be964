from __future__ import annotations

from datetime import datetime

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.accounts import Account
from app.db.models.ledger_entries import LedgerEntry
from app.db.repo.accounts_repo import AccountsRepo
from app.db.repo.ledger_repo import LedgerRepo
from app.economy.errors import (
    AccountNotFoundError,
    IdempotencyKeyConflictError,
    InsufficientBalanceError,
)
from app.economy.events import LoyaltyEvent, PointsPosted
from app.economy.ledger.types import LedgerEntryView, LedgerSource, PostingResult, ReconcileResult
from app.economy.status.service import StatusService

logger = structlog.get_logger(__name__)


class LedgerService:
    @staticmethod
    def _validate_amount(amount: int) -> None:
        if isinstance(amount, bool) or not isinstance(amount, int):
            raise ValueError("amount must be an integer")
        if amount <= 0:
            raise ValueError("amount must be positive")

    @staticmethod
    async def lock_account(session: AsyncSession, account_id: int) -> Account:
        account = await AccountsRepo.get_by_id_for_update(session, account_id)
        if account is None:
            raise AccountNotFoundError(account_id)
        return account

    @staticmethod
    async def _post(
        session: AsyncSession,
        *,
        account: Account,
        delta: int,
        source: str,
        reason: str,
        idempotency_key: str | None,
        metadata: dict[str, object] | None,
        now_utc: datetime,
        events: list[LoyaltyEvent],
    ) -> PostingResult:
        if idempotency_key is not None:
            existing = await LedgerRepo.get_by_idempotency_key(session, idempotency_key)
            if existing is not None:
                if (
                    existing.account_id != account.id
                    or existing.delta != delta
                    or existing.source != source
                ):
                    logger.warning(
                        "ledger_idempotency_key_conflict",
                        idempotency_key=idempotency_key,
                        account_id=account.id,
                        existing_account_id=existing.account_id,
                    )
                    raise IdempotencyKeyConflictError(idempotency_key)
                return PostingResult(
                    account_id=account.id,
                    entry_id=existing.id,
                    delta=existing.delta,
                    balance_after=account.balance,
                    tier=account.tier,
                    idempotent_replay=True,
                )

        balance_after = account.balance + delta
        if balance_after < 0:
            raise InsufficientBalanceError(balance=account.balance, requested=-delta)

        entry = await LedgerRepo.create(
            session,
            entry=LedgerEntry(
                account_id=account.id,
                delta=delta,
                source=source,
                reason=reason,
                balance_after=balance_after,
                idempotency_key=idempotency_key,
                metadata_=dict(metadata or {}),
                created_at=now_utc,
            ),
        )
        account.balance = balance_after
        account.updated_at = now_utc
        account.version += 1

        events.append(
            PointsPosted(
                account_id=account.id,
                delta=delta,
                balance_after=balance_after,
                source=source,
                reason=reason,
            )
        )
        await StatusService.refresh_status(session, account=account, now_utc=now_utc, events=events)
        await session.flush()

        logger.info(
            "ledger_entry_posted",
            account_id=account.id,
            delta=delta,
            source=source,
            reason=reason,
            balance_after=balance_after,
        )
        return PostingResult(
            account_id=account.id,
            entry_id=entry.id,
            delta=delta,
            balance_after=balance_after,
            tier=account.tier,
            idempotent_replay=False,
        )

    @staticmethod
    async def credit(
        session: AsyncSession,
        *,
        account_id: int,
        amount: int,
        source: str,
        reason: str,
        now_utc: datetime,
        events: list[LoyaltyEvent],
        idempotency_key: str | None = None,
        metadata: dict[str, object] | None = None,
    ) -> PostingResult:
        LedgerService._validate_amount(amount)
        account = await LedgerService.lock_account(session, account_id)
        return await LedgerService._post(
            session,
            account=account,
            delta=amount,
            source=source,
            reason=reason,
            idempotency_key=idempotency_key,
            metadata=metadata,
            now_utc=now_utc,
            events=events,
        )

    @staticmethod
    async def debit(
        session: AsyncSession,
        *,
        account_id: int,
        amount: int,
        source: str,
        reason: str,
        now_utc: datetime,
        events: list[LoyaltyEvent],
        idempotency_key: str | None = None,
        metadata: dict[str, object] | None = None,
    ) -> PostingResult:
        LedgerService._validate_amount(amount)
        account = await LedgerService.lock_account(session, account_id)
        return await LedgerService._post(
            session,
            account=account,
            delta=-amount,
            source=source,
            reason=reason,
            idempotency_key=idempotency_key,
            metadata=metadata,
            now_utc=now_utc,
            events=events,
        )

    @staticmethod
    async def adjust(
        session: AsyncSession,
        *,
        account_id: int,
        delta: int,
        reason: str,
        now_utc: datetime,
        events: list[LoyaltyEvent],
        idempotency_key: str | None = None,
    ) -> PostingResult:
        if isinstance(delta, bool) or not isinstance(delta, int) or delta == 0:
            raise ValueError("delta must be a non-zero integer")

        posting = LedgerService.credit if delta > 0 else LedgerService.debit
        return await posting(
            session,
            account_id=account_id,
            amount=abs(delta),
            source=LedgerSource.ADMIN.value,
            reason=reason,
            now_utc=now_utc,
            events=events,
            idempotency_key=idempotency_key,
            metadata={"manual": True},
        )

    @staticmethod
    async def balance(session: AsyncSession, *, account_id: int) -> int:
        account = await AccountsRepo.get_by_id(session, account_id)
        if account is None:
            raise AccountNotFoundError(account_id)
        return account.balance

    @staticmethod
    async def history(
        session: AsyncSession,
        *,
        account_id: int,
        limit: int = 50,
        offset: int = 0,
    ) -> list[LedgerEntryView]:
        if await AccountsRepo.get_by_id(session, account_id) is None:
            raise AccountNotFoundError(account_id)

        entries = await LedgerRepo.list_for_account(
            session,
            account_id=account_id,
            limit=max(1, min(int(limit), 500)),
            offset=max(0, int(offset)),
        )
        return [
            LedgerEntryView(
                entry_id=entry.id,
                delta=entry.delta,
                source=entry.source,
                reason=entry.reason,
                balance_after=entry.balance_after,
                created_at=entry.created_at,
                metadata=dict(entry.metadata_ or {}),
            )
            for entry in entries
        ]

    @staticmethod
    async def reconcile(
        session: AsyncSession,
        *,
        account_id: int,
        now_utc: datetime,
        events: list[LoyaltyEvent],
    ) -> ReconcileResult:
        account = await LedgerService.lock_account(session, account_id)
        ledger_balance = await LedgerRepo.sum_deltas(session, account_id=account_id)
        cached_balance = account.balance
        drift = cached_balance - ledger_balance
        if drift == 0:
            return ReconcileResult(
                account_id=account_id,
                cached_balance=cached_balance,
                ledger_balance=ledger_balance,
                drift=0,
                corrected=False,
            )

        logger.warning(
            "ledger_balance_drift_detected",
            account_id=account_id,
            cached_balance=cached_balance,
            ledger_balance=ledger_balance,
            drift=drift,
        )
        account.balance = ledger_balance
        account.updated_at = now_utc
        account.version += 1
        await StatusService.refresh_status(session, account=account, now_utc=now_utc, events=events)
        await session.flush()
        return ReconcileResult(
            account_id=account_id,
            cached_balance=cached_balance,
            ledger_balance=ledger_balance,
            drift=drift,
            corrected=True,
        )
