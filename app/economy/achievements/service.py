from __future__ import annotations

from datetime import datetime

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.accounts import Account
from app.db.repo.accounts_repo import AccountsRepo
from app.db.repo.achievement_progress_repo import AchievementProgressRepo
from app.economy.achievements.catalog import ACHIEVEMENTS, active_achievements, get_achievement
from app.economy.achievements.progress import compute_progress
from app.economy.achievements.types import (
    AchievementCategory,
    AchievementCheckResult,
    AchievementDefinition,
    AchievementStats,
    AchievementView,
)
from app.economy.errors import AccountNotFoundError, AchievementNotFoundError
from app.economy.events import AchievementUnlocked, LoyaltyEvent
from app.economy.ledger.service import LedgerService
from app.economy.ledger.types import LedgerSource

logger = structlog.get_logger(__name__)


def _progress_percent(progress: int, target: int) -> int:
    if target <= 0:
        return 100
    return min(100, round(progress * 100 / target))


class AchievementService:
    @staticmethod
    async def check_and_unlock(
        session: AsyncSession,
        *,
        account_id: int,
        category: AchievementCategory | None = None,
        now_utc: datetime,
        events: list[LoyaltyEvent],
    ) -> AchievementCheckResult:
        account = await LedgerService.lock_account(session, account_id)
        definitions = active_achievements(category)

        newly_unlocked: list[str] = []
        points_awarded = 0
        for definition in definitions:
            row = await AchievementProgressRepo.get_for_update(
                session,
                account_id=account_id,
                achievement_code=definition.code,
            )
            if row is not None and row.is_completed:
                continue

            progress = await compute_progress(session, account, definition)
            if row is None:
                row = await AchievementProgressRepo.create(
                    session,
                    account_id=account_id,
                    achievement_code=definition.code,
                    current_progress=progress,
                    now_utc=now_utc,
                )

            row.current_progress = progress
            row.updated_at = now_utc
            if not definition.is_met(progress):
                continue

            row.is_completed = True
            row.unlocked_at = now_utc
            await session.flush()
            if definition.reward_points > 0:
                await LedgerService.credit(
                    session,
                    account_id=account_id,
                    amount=definition.reward_points,
                    source=LedgerSource.ACHIEVEMENT.value,
                    reason=f"achievement_{definition.code.lower()}",
                    idempotency_key=f"achievement:{account_id}:{definition.code}",
                    metadata={"achievement_code": definition.code},
                    now_utc=now_utc,
                    events=events,
                )
            events.append(
                AchievementUnlocked(
                    account_id=account_id,
                    achievement_code=definition.code,
                    reward_points=definition.reward_points,
                )
            )
            newly_unlocked.append(definition.code)
            points_awarded += definition.reward_points
            logger.info(
                "achievement_unlocked",
                account_id=account_id,
                achievement_code=definition.code,
                reward_points=definition.reward_points,
            )

        await session.flush()
        return AchievementCheckResult(
            account_id=account_id,
            checked=len(definitions),
            newly_unlocked=tuple(newly_unlocked),
            points_awarded=points_awarded,
        )

    @staticmethod
    async def _build_view(
        session: AsyncSession,
        *,
        account: Account,
        definition: AchievementDefinition,
        completed: bool,
        unlocked_at: datetime | None,
    ) -> AchievementView:
        if completed:
            progress = definition.target_value
        else:
            progress = await compute_progress(session, account, definition)
        return AchievementView(
            code=definition.code,
            name=definition.name,
            description=definition.description,
            category=definition.category,
            target_value=definition.target_value,
            reward_points=definition.reward_points,
            current_progress=progress,
            progress_percent=_progress_percent(progress, definition.target_value),
            is_completed=completed,
            unlocked_at=unlocked_at,
        )

    @staticmethod
    async def _get_account(session: AsyncSession, account_id: int) -> Account:
        account = await AccountsRepo.get_by_id(session, account_id)
        if account is None:
            raise AccountNotFoundError(account_id)
        return account

    @staticmethod
    async def list_achievements(session: AsyncSession, *, account_id: int) -> list[AchievementView]:
        account = await AchievementService._get_account(session, account_id)
        rows = await AchievementProgressRepo.list_for_account(session, account_id)

        views: list[AchievementView] = []
        for definition in active_achievements():
            row = rows.get(definition.code)
            views.append(
                await AchievementService._build_view(
                    session,
                    account=account,
                    definition=definition,
                    completed=bool(row is not None and row.is_completed),
                    unlocked_at=row.unlocked_at if row is not None else None,
                )
            )
        views.sort(key=lambda item: item.is_completed)
        return views

    @staticmethod
    async def get_achievement(
        session: AsyncSession,
        *,
        account_id: int,
        code: str,
    ) -> AchievementView:
        definition = get_achievement(code)
        if definition is None or not definition.is_active:
            raise AchievementNotFoundError(code)

        account = await AchievementService._get_account(session, account_id)
        rows = await AchievementProgressRepo.list_for_account(session, account_id)
        row = rows.get(definition.code)
        return await AchievementService._build_view(
            session,
            account=account,
            definition=definition,
            completed=bool(row is not None and row.is_completed),
            unlocked_at=row.unlocked_at if row is not None else None,
        )

    @staticmethod
    async def get_stats(session: AsyncSession, *, account_id: int) -> AchievementStats:
        await AchievementService._get_account(session, account_id)
        rows = await AchievementProgressRepo.list_for_account(session, account_id)

        active = [item for item in ACHIEVEMENTS if item.is_active]
        completed = [
            item for item in active if item.code in rows and rows[item.code].is_completed
        ]
        total = len(active)
        return AchievementStats(
            account_id=account_id,
            total=total,
            completed=len(completed),
            points_earned=sum(item.reward_points for item in completed),
            completion_percent=round(len(completed) * 100 / total) if total else 0,
        )
