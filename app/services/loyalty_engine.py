from __future__ import annotations

import random
from collections.abc import Awaitable, Callable, Sequence
from datetime import date, datetime, timedelta
from typing import TypeVar

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.config import Settings, get_settings
from app.core.referral_codes import extract_referral_code_from_start_payload, generate_referral_code
from app.core.time_utils import business_day_start_utc, business_local_date, previous_day, utc_now
from app.db.repo.accounts_repo import AccountsRepo
from app.db.transactions import run_in_transaction
from app.economy.accounts.service import AccountService
from app.economy.accounts.types import AccountView
from app.economy.achievements.service import AchievementService
from app.economy.achievements.types import (
    AchievementCategory,
    AchievementCheckResult,
    AchievementStats,
    AchievementView,
)
from app.economy.daily_tasks.service import DailyTaskService
from app.economy.daily_tasks.types import DailyTasksSummary, SocialNetwork, TaskProgressResult
from app.economy.errors import LoyaltyError
from app.economy.events import (
    LoyaltyEvent,
    PointsPosted,
    PurchaseRecorded,
    ReferralActivated,
    SocialAccountLinked,
    TierChanged,
)
from app.economy.ledger.service import LedgerService
from app.economy.ledger.types import LedgerEntryView, PostingResult, ReconcileResult
from app.economy.pending_jobs.service import PendingJobService
from app.economy.pending_jobs.types import JobOutcome, SweepResult
from app.economy.purchases.service import PurchaseService
from app.economy.purchases.types import PurchaseRecordResult
from app.economy.referrals.service import ReferralService
from app.economy.referrals.types import (
    ReferralActivationResult,
    ReferralCodeView,
    ReferralStats,
    ReferralValidation,
)
from app.economy.status.service import StatusService
from app.economy.status.types import StatusView, TierLevel
from app.economy.streak.service import StreakService
from app.economy.streak.types import StreakView
from app.services.notifier import Notifier, build_default_notifier
from app.services.outbox import OutboxDeliveryResult, OutboxService, OutboxStatus

logger = structlog.get_logger(__name__)

T = TypeVar("T")
Work = Callable[[AsyncSession, list[LoyaltyEvent]], Awaitable[T]]

MAX_ACHIEVEMENT_CASCADE_ROUNDS = 4


def achievement_triggers(events: Sequence[LoyaltyEvent]) -> list[tuple[int, AchievementCategory]]:
    """Maps committed events to the (account, category) pairs worth re-checking."""
    triggers: list[tuple[int, AchievementCategory]] = []
    for event in events:
        if isinstance(event, PointsPosted):
            trigger = (event.account_id, AchievementCategory.POINTS)
        elif isinstance(event, TierChanged):
            trigger = (event.account_id, AchievementCategory.STATUS)
        elif isinstance(event, ReferralActivated):
            trigger = (event.owner_account_id, AchievementCategory.REFERRAL)
        elif isinstance(event, PurchaseRecorded):
            trigger = (event.account_id, AchievementCategory.PURCHASE)
        elif isinstance(event, SocialAccountLinked):
            trigger = (event.account_id, AchievementCategory.SOCIAL)
        else:
            continue
        if trigger not in triggers:
            triggers.append(trigger)
    return triggers


class LoyaltyEngine:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        notifier: Notifier | None = None,
        settings: Settings | None = None,
        clock: Callable[[], datetime] = utc_now,
        rng: random.Random | None = None,
        code_factory: Callable[[], str] = generate_referral_code,
    ) -> None:
        self._session_factory = session_factory
        self._settings = settings or get_settings()
        self._notifier = notifier or build_default_notifier(self._settings)
        self._clock = clock
        self._rng = rng or random.Random()
        self._code_factory = code_factory

    def today(self) -> date:
        return business_local_date(self._clock(), self._settings.business_timezone)

    async def _transact(self, operation: str, work: Work[T]) -> tuple[T, list[LoyaltyEvent]]:
        events: list[LoyaltyEvent] = []

        async def _attempt(session: AsyncSession) -> T:
            events.clear()
            result = await work(session, events)
            if events:
                await OutboxService.record(session, events)
            return result

        result = await run_in_transaction(
            self._session_factory,
            _attempt,
            attempts=self._settings.transaction_max_attempts,
            operation=operation,
        )
        return result, list(events)

    async def _execute(self, operation: str, work: Work[T]) -> T:
        result, events = await self._transact(operation, work)
        await self._after_commit(events)
        return result

    async def _read(self, work: Callable[[AsyncSession], Awaitable[T]]) -> T:
        async with self._session_factory() as session:
            return await work(session)

    async def _after_commit(self, events: list[LoyaltyEvent]) -> None:
        pending = events
        for _ in range(MAX_ACHIEVEMENT_CASCADE_ROUNDS):
            triggers = achievement_triggers(pending)
            if not triggers:
                return
            follow_up: list[LoyaltyEvent] = []
            for account_id, category in triggers:
                try:
                    _, produced = await self._transact(
                        "achievement_followup",
                        lambda session, sink, account_id=account_id, category=category: (
                            AchievementService.check_and_unlock(
                                session,
                                account_id=account_id,
                                category=category,
                                now_utc=self._clock(),
                                events=sink,
                            )
                        ),
                    )
                except Exception:
                    logger.exception(
                        "loyalty_achievement_followup_failed",
                        account_id=account_id,
                        category=category.value,
                    )
                    continue
                follow_up.extend(produced)
            pending = follow_up

    # Event delivery

    async def deliver_pending_events(self, *, batch_size: int | None = None) -> OutboxDeliveryResult:
        event_ids = await self._read(
            lambda session: OutboxService.list_pending_ids(
                session,
                limit=batch_size or self._settings.outbox_batch_size,
            )
        )

        counts = {status: 0 for status in OutboxStatus}
        retrying = 0
        for event_id in event_ids:
            event = await self._read(
                lambda session, event_id=event_id: OutboxService.load_pending_event(
                    session,
                    event_id=event_id,
                )
            )
            if event is None:
                continue
            try:
                await self._notifier.notify(event)
            except Exception as exc:
                logger.exception(
                    "loyalty_notify_failed",
                    event_id=event_id,
                    event_type=event.event_type,
                    account_id=event.account_id,
                )
                status, _ = await self._transact(
                    "record_outbox_failure",
                    lambda session, sink, event_id=event_id, exc=exc: OutboxService.mark_failed(
                        session,
                        event_id=event_id,
                        error=f"{type(exc).__name__}: {exc}",
                        max_attempts=self._settings.outbox_max_delivery_attempts,
                    ),
                )
                if status is OutboxStatus.PENDING:
                    retrying += 1
                    continue
            else:
                status, _ = await self._transact(
                    "mark_outbox_sent",
                    lambda session, sink, event_id=event_id: OutboxService.mark_sent(
                        session,
                        event_id=event_id,
                        now_utc=self._clock(),
                    ),
                )
            counts[status] += 1

        result = OutboxDeliveryResult(
            examined=len(event_ids),
            sent=counts[OutboxStatus.SENT],
            retrying=retrying,
            failed=counts[OutboxStatus.FAILED],
        )
        logger.info("outbox_delivery_finished", **result.as_dict())
        return result

    # Accounts

    async def register_account(
        self,
        external_user_id: str,
        *,
        start_payload: str | None = None,
    ) -> AccountView:
        account = await self._execute(
            "register_account",
            lambda session, events: AccountService.register(
                session,
                external_user_id=external_user_id,
                now_utc=self._clock(),
            ),
        )
        referral_code = extract_referral_code_from_start_payload(start_payload)
        if account.created and referral_code is not None:
            try:
                await self.activate_referral_code(referral_code, account.account_id)
            except LoyaltyError as exc:
                logger.warning(
                    "registration_referral_rejected",
                    account_id=account.account_id,
                    code=referral_code,
                    error_type=type(exc).__name__,
                )
        return account

    async def get_account(self, account_id: int) -> AccountView:
        return await self._read(lambda session: AccountService.get(session, account_id=account_id))

    async def link_social_account(
        self,
        account_id: int,
        network: SocialNetwork | str,
        external_id: str,
    ) -> AccountView:
        resolved = SocialNetwork(network)
        return await self._execute(
            "link_social_account",
            lambda session, events: AccountService.link_social_account(
                session,
                account_id=account_id,
                network=resolved,
                external_id=external_id,
                now_utc=self._clock(),
                events=events,
            ),
        )

    # Ledger

    async def credit(
        self,
        account_id: int,
        amount: int,
        source: str,
        reason: str,
        *,
        idempotency_key: str | None = None,
    ) -> PostingResult:
        return await self._execute(
            "credit",
            lambda session, events: LedgerService.credit(
                session,
                account_id=account_id,
                amount=amount,
                source=source,
                reason=reason,
                idempotency_key=idempotency_key,
                now_utc=self._clock(),
                events=events,
            ),
        )

    async def debit(
        self,
        account_id: int,
        amount: int,
        source: str,
        reason: str,
        *,
        idempotency_key: str | None = None,
    ) -> PostingResult:
        return await self._execute(
            "debit",
            lambda session, events: LedgerService.debit(
                session,
                account_id=account_id,
                amount=amount,
                source=source,
                reason=reason,
                idempotency_key=idempotency_key,
                now_utc=self._clock(),
                events=events,
            ),
        )

    async def adjust_points(self, account_id: int, delta: int, reason: str) -> PostingResult:
        return await self._execute(
            "adjust_points",
            lambda session, events: LedgerService.adjust(
                session,
                account_id=account_id,
                delta=delta,
                reason=reason,
                now_utc=self._clock(),
                events=events,
            ),
        )

    async def get_balance(self, account_id: int) -> int:
        return await self._read(lambda session: LedgerService.balance(session, account_id=account_id))

    async def get_history(
        self,
        account_id: int,
        *,
        limit: int = 50,
        offset: int = 0,
    ) -> list[LedgerEntryView]:
        return await self._read(
            lambda session: LedgerService.history(
                session,
                account_id=account_id,
                limit=limit,
                offset=offset,
            )
        )

    async def reconcile(self, account_id: int) -> ReconcileResult:
        return await self._execute(
            "reconcile",
            lambda session, events: LedgerService.reconcile(
                session,
                account_id=account_id,
                now_utc=self._clock(),
                events=events,
            ),
        )

    async def reconcile_all(self, *, batch_size: int = 500) -> dict[str, int]:
        examined = 0
        drifted = 0
        after_id = 0
        while True:
            account_ids = await self._read(
                lambda session, after_id=after_id: AccountsRepo.list_ids_after(
                    session,
                    after_id=after_id,
                    limit=batch_size,
                )
            )
            if not account_ids:
                break
            for account_id in account_ids:
                result = await self.reconcile(account_id)
                examined += 1
                if result.corrected:
                    drifted += 1
            after_id = account_ids[-1]
        return {"examined": examined, "drift_corrected": drifted}

    # Status

    async def get_status(self, account_id: int) -> StatusView:
        return await self._read(lambda session: StatusService.get_status(session, account_id=account_id))

    def tier_levels(self) -> tuple[TierLevel, ...]:
        return StatusService.tier_levels()

    async def calculate_cashback(self, account_id: int, amount: int) -> int:
        return await self._read(
            lambda session: StatusService.calculate_cashback_for_purchase(
                session,
                account_id=account_id,
                amount=amount,
            )
        )

    # Referrals

    async def generate_referral_code(self, account_id: int) -> ReferralCodeView:
        return await self._execute(
            "generate_referral_code",
            lambda session, events: ReferralService.generate_code(
                session,
                owner_account_id=account_id,
                base_url=self._settings.referral_base_url,
                now_utc=self._clock(),
                code_factory=self._code_factory,
            ),
        )

    async def validate_referral_code(self, code: str) -> ReferralValidation:
        return await self._read(lambda session: ReferralService.validate(session, code=code))

    async def activate_referral_code(self, code: str, account_id: int) -> ReferralActivationResult:
        return await self._execute(
            "activate_referral_code",
            lambda session, events: ReferralService.activate(
                session,
                code=code,
                account_id=account_id,
                referrer_bonus=self._settings.referrer_bonus_points,
                referee_bonus=self._settings.referee_bonus_points,
                now_utc=self._clock(),
                events=events,
            ),
        )

    async def get_referral_stats(self, account_id: int) -> ReferralStats:
        return await self._read(
            lambda session: ReferralService.get_stats(
                session,
                account_id=account_id,
                base_url=self._settings.referral_base_url,
            )
        )

    # Achievements

    async def check_achievements(
        self,
        account_id: int,
        category: AchievementCategory | str | None = None,
    ) -> AchievementCheckResult:
        resolved = AchievementCategory(category) if category is not None else None
        return await self._execute(
            "check_achievements",
            lambda session, events: AchievementService.check_and_unlock(
                session,
                account_id=account_id,
                category=resolved,
                now_utc=self._clock(),
                events=events,
            ),
        )

    async def list_achievements(self, account_id: int) -> list[AchievementView]:
        return await self._read(
            lambda session: AchievementService.list_achievements(session, account_id=account_id)
        )

    async def get_achievement(self, account_id: int, code: str) -> AchievementView:
        return await self._read(
            lambda session: AchievementService.get_achievement(
                session,
                account_id=account_id,
                code=code,
            )
        )

    async def get_achievement_stats(self, account_id: int) -> AchievementStats:
        return await self._read(
            lambda session: AchievementService.get_stats(session, account_id=account_id)
        )

    # Daily tasks & streaks

    async def get_daily_tasks(
        self,
        account_id: int,
        task_date: date | None = None,
    ) -> DailyTasksSummary:
        resolved_date = task_date or self.today()
        return await self._execute(
            "get_daily_tasks",
            lambda session, events: DailyTaskService.get_daily_tasks(
                session,
                account_id=account_id,
                task_date=resolved_date,
                rng=self._rng,
                now_utc=self._clock(),
            ),
        )

    async def update_task_progress(
        self,
        account_id: int,
        task_code: str,
        increment: int = 1,
    ) -> TaskProgressResult:
        today = self.today()
        return await self._execute(
            "update_task_progress",
            lambda session, events: DailyTaskService.update_progress(
                session,
                account_id=account_id,
                task_code=task_code,
                increment=increment,
                task_date=today,
                now_utc=self._clock(),
                events=events,
            ),
        )

    async def get_streak(self, account_id: int) -> StreakView:
        today = self.today()
        return await self._read(
            lambda session: StreakService.get_streak(session, account_id=account_id, today=today)
        )

    async def generate_daily_tasks_for_active_accounts(
        self,
        *,
        task_date: date | None = None,
        limit: int = 5000,
    ) -> dict[str, int]:
        resolved_date = task_date or self.today()
        active_since = business_day_start_utc(
            previous_day(resolved_date),
            self._settings.business_timezone,
        )
        account_ids = await self._read(
            lambda session: DailyTaskService.list_active_account_ids(
                session,
                active_since_utc=active_since,
                limit=limit,
            )
        )

        generated = 0
        failed = 0
        for account_id in account_ids:
            try:
                await self._execute(
                    "generate_daily_tasks",
                    lambda session, events, account_id=account_id: DailyTaskService.generate_for_date(
                        session,
                        account_id=account_id,
                        task_date=resolved_date,
                        rng=self._rng,
                        now_utc=self._clock(),
                    ),
                )
            except Exception:
                failed += 1
                logger.exception("daily_tasks_generation_failed", account_id=account_id)
                continue
            generated += 1
        return {"accounts": len(account_ids), "generated": generated, "failed": failed}

    # Purchases & pending jobs

    async def record_purchase(
        self,
        account_id: int,
        external_order_id: str,
        amount: int,
    ) -> PurchaseRecordResult:
        return await self._execute(
            "record_purchase",
            lambda session, events: PurchaseService.record_purchase(
                session,
                account_id=account_id,
                external_order_id=external_order_id,
                amount=amount,
                credit_delay=timedelta(minutes=self._settings.purchase_credit_delay_minutes),
                now_utc=self._clock(),
                events=events,
            ),
        )

    async def process_due_jobs(self, *, batch_size: int | None = None) -> SweepResult:
        now_utc = self._clock()
        job_ids = await self._read(
            lambda session: PendingJobService.list_due_job_ids(
                session,
                now_utc=now_utc,
                limit=batch_size or self._settings.pending_jobs_batch_size,
            )
        )

        counts = {outcome: 0 for outcome in JobOutcome}
        for job_id in job_ids:
            try:
                outcome = await self._execute(
                    "process_pending_job",
                    lambda session, events, job_id=job_id: PendingJobService.process_job(
                        session,
                        job_id=job_id,
                        now_utc=self._clock(),
                        events=events,
                    ),
                )
            except Exception as exc:
                logger.exception("pending_job_attempt_failed", job_id=job_id)
                outcome = await self._execute(
                    "record_pending_job_failure",
                    lambda session, events, job_id=job_id, exc=exc: PendingJobService.record_failure(
                        session,
                        job_id=job_id,
                        error=f"{type(exc).__name__}: {exc}",
                        now_utc=self._clock(),
                    ),
                )
            counts[outcome] += 1

        result = SweepResult(
            examined=len(job_ids),
            processed=counts[JobOutcome.PROCESSED],
            skipped=counts[JobOutcome.SKIPPED] + counts[JobOutcome.MISSING],
            retryable_failure=counts[JobOutcome.RETRYABLE_FAILURE],
            failed=counts[JobOutcome.FAILED],
        )
        logger.info("pending_jobs_sweep_finished", **result.as_dict())
        return result
