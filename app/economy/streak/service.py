from __future__ import annotations

from datetime import date, datetime

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.streak_records import StreakRecord
from app.db.repo.accounts_repo import AccountsRepo
from app.db.repo.streak_repo import StreakRepo
from app.economy.errors import AccountNotFoundError
from app.economy.events import LoyaltyEvent, StreakMilestoneReached
from app.economy.ledger.service import LedgerService
from app.economy.ledger.types import LedgerSource
from app.economy.streak.rules import (
    effective_current_streak,
    milestone_bonus,
    next_milestone,
    register_active_day,
    streak_run_start,
)
from app.economy.streak.types import StreakSnapshot, StreakTransition, StreakUpdateResult, StreakView

logger = structlog.get_logger(__name__)


class StreakService:
    @staticmethod
    def _snapshot_from_model(record: StreakRecord) -> StreakSnapshot:
        return StreakSnapshot(
            current_streak=record.current_streak,
            longest_streak=record.longest_streak,
            last_active_date=record.last_active_date,
            total_active_days=record.total_active_days,
            streak_bonus_earned=record.streak_bonus_earned,
        )

    @staticmethod
    def _apply_snapshot_to_model(
        record: StreakRecord, snapshot: StreakSnapshot, now_utc: datetime
    ) -> None:
        record.current_streak = snapshot.current_streak
        record.longest_streak = snapshot.longest_streak
        record.last_active_date = snapshot.last_active_date
        record.total_active_days = snapshot.total_active_days
        record.streak_bonus_earned = snapshot.streak_bonus_earned
        record.updated_at = now_utc
        record.version += 1

    @staticmethod
    async def _get_or_create_record_for_update(
        session: AsyncSession,
        account_id: int,
        now_utc: datetime,
    ) -> StreakRecord:
        record = await StreakRepo.get_by_account_id_for_update(session, account_id)
        if record is not None:
            return record
        return await StreakRepo.create_default_record(session, account_id=account_id, now_utc=now_utc)

    @staticmethod
    async def update(
        session: AsyncSession,
        *,
        account_id: int,
        day: date,
        now_utc: datetime,
        events: list[LoyaltyEvent],
    ) -> StreakUpdateResult:
        record = await StreakService._get_or_create_record_for_update(session, account_id, now_utc)
        before = StreakService._snapshot_from_model(record)
        snapshot, transition = register_active_day(before, day=day)
        if transition == StreakTransition.ALREADY_COUNTED:
            return StreakUpdateResult(
                account_id=account_id,
                transition=transition,
                current_streak=before.current_streak,
                longest_streak=before.longest_streak,
                is_new_record=False,
                milestone_bonus=0,
            )

        bonus = milestone_bonus(snapshot.current_streak)
        awarded = 0
        if bonus > 0:
            run_start = streak_run_start(day, snapshot.current_streak)
            posting = await LedgerService.credit(
                session,
                account_id=account_id,
                amount=bonus,
                source=LedgerSource.STREAK.value,
                reason=f"streak_{snapshot.current_streak}",
                idempotency_key=(
                    f"streak:milestone:{account_id}:{snapshot.current_streak}:{run_start.isoformat()}"
                ),
                metadata={"streak_days": snapshot.current_streak, "run_start": run_start.isoformat()},
                now_utc=now_utc,
                events=events,
            )
            if not posting.idempotent_replay:
                awarded = bonus
                snapshot.streak_bonus_earned += bonus
                events.append(
                    StreakMilestoneReached(
                        account_id=account_id,
                        streak_days=snapshot.current_streak,
                        bonus_points=bonus,
                    )
                )

        StreakService._apply_snapshot_to_model(record, snapshot, now_utc)
        await session.flush()
        logger.info(
            "streak_updated",
            account_id=account_id,
            day=day.isoformat(),
            transition=transition.value,
            current_streak=snapshot.current_streak,
            milestone_bonus=awarded,
        )
        return StreakUpdateResult(
            account_id=account_id,
            transition=transition,
            current_streak=snapshot.current_streak,
            longest_streak=snapshot.longest_streak,
            is_new_record=snapshot.longest_streak > before.longest_streak,
            milestone_bonus=awarded,
        )

    @staticmethod
    async def get_streak(session: AsyncSession, *, account_id: int, today: date) -> StreakView:
        if await AccountsRepo.get_by_id(session, account_id) is None:
            raise AccountNotFoundError(account_id)

        record = await StreakRepo.get_by_account_id(session, account_id)
        if record is None:
            snapshot = StreakSnapshot(
                current_streak=0,
                longest_streak=0,
                last_active_date=None,
                total_active_days=0,
                streak_bonus_earned=0,
            )
        else:
            snapshot = StreakService._snapshot_from_model(record)

        current = effective_current_streak(snapshot, today=today)
        upcoming = next_milestone(current)
        return StreakView(
            account_id=account_id,
            current_streak=current,
            longest_streak=snapshot.longest_streak,
            last_active_date=snapshot.last_active_date,
            total_active_days=snapshot.total_active_days,
            streak_bonus_earned=snapshot.streak_bonus_earned,
            next_milestone_days=upcoming,
            days_to_next_milestone=upcoming - current if upcoming is not None else None,
        )
