from __future__ import annotations

import random
from datetime import date, datetime

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.daily_task_instances import DailyTaskInstance
from app.db.repo.accounts_repo import AccountsRepo
from app.db.repo.daily_tasks_repo import DailyTasksRepo
from app.economy.daily_tasks.catalog import active_daily_tasks, get_daily_task
from app.economy.daily_tasks.selection import select_tasks
from app.economy.daily_tasks.types import (
    DailyTasksSummary,
    DailyTaskView,
    SocialNetwork,
    TaskCategory,
    TaskDifficulty,
    TaskProgressResult,
)
from app.economy.errors import TaskAlreadyCompletedError, TaskNotFoundError
from app.economy.events import DailyTaskCompleted, LoyaltyEvent
from app.economy.ledger.service import LedgerService
from app.economy.ledger.types import LedgerSource
from app.economy.streak.rules import day_qualifies
from app.economy.streak.service import StreakService

logger = structlog.get_logger(__name__)


def _to_view(instance: DailyTaskInstance) -> DailyTaskView:
    definition = get_daily_task(instance.task_code)
    target = max(1, instance.target_value)
    return DailyTaskView(
        code=instance.task_code,
        name=definition.name if definition is not None else instance.task_code,
        difficulty=TaskDifficulty(instance.difficulty),
        category=definition.category if definition is not None else TaskCategory.VISIT,
        task_date=instance.task_date,
        target_value=instance.target_value,
        reward_points=instance.reward_points,
        progress=instance.progress,
        progress_percent=min(100, round(instance.progress * 100 / target)),
        is_completed=instance.is_completed,
        completed_at=instance.completed_at,
        points_earned=instance.points_earned,
    )


class DailyTaskService:
    @staticmethod
    async def generate_for_date(
        session: AsyncSession,
        *,
        account_id: int,
        task_date: date,
        rng: random.Random,
        now_utc: datetime,
    ) -> list[DailyTaskInstance]:
        account = await LedgerService.lock_account(session, account_id)
        existing = await DailyTasksRepo.list_for_date(
            session,
            account_id=account_id,
            task_date=task_date,
        )
        if existing:
            return existing

        linked: set[SocialNetwork] = set()
        if account.vk_user_id:
            linked.add(SocialNetwork.VK)
        if account.instagram_user_id:
            linked.add(SocialNetwork.INSTAGRAM)

        selected = select_tasks(
            active_daily_tasks(),
            tier=account.tier,
            linked_networks=frozenset(linked),
            rng=rng,
        )
        instances = await DailyTasksRepo.create_many(
            session,
            instances=[
                DailyTaskInstance(
                    account_id=account_id,
                    task_code=definition.code,
                    task_date=task_date,
                    difficulty=definition.difficulty.value,
                    target_value=definition.target_value,
                    reward_points=definition.reward_points,
                    progress=0,
                    is_completed=False,
                    points_earned=0,
                    position=position,
                    created_at=now_utc,
                )
                for position, definition in enumerate(selected)
            ],
        )
        logger.info(
            "daily_tasks_generated",
            account_id=account_id,
            task_date=task_date.isoformat(),
            task_codes=[item.task_code for item in instances],
        )
        return instances

    @staticmethod
    async def get_daily_tasks(
        session: AsyncSession,
        *,
        account_id: int,
        task_date: date,
        rng: random.Random,
        now_utc: datetime,
    ) -> DailyTasksSummary:
        instances = await DailyTaskService.generate_for_date(
            session,
            account_id=account_id,
            task_date=task_date,
            rng=rng,
            now_utc=now_utc,
        )
        views = tuple(_to_view(item) for item in instances)
        return DailyTasksSummary(
            account_id=account_id,
            task_date=task_date,
            tasks=views,
            completed_count=sum(1 for item in views if item.is_completed),
            total_count=len(views),
            points_available=sum(item.reward_points for item in views if not item.is_completed),
            points_earned=sum(item.points_earned for item in views),
        )

    @staticmethod
    async def update_progress(
        session: AsyncSession,
        *,
        account_id: int,
        task_code: str,
        increment: int,
        task_date: date,
        now_utc: datetime,
        events: list[LoyaltyEvent],
    ) -> TaskProgressResult:
        if isinstance(increment, bool) or not isinstance(increment, int) or increment <= 0:
            raise ValueError("increment must be a positive integer")

        await LedgerService.lock_account(session, account_id)
        code = task_code.strip().upper()
        instance = await DailyTasksRepo.get_for_update(
            session,
            account_id=account_id,
            task_code=code,
            task_date=task_date,
        )
        if instance is None:
            raise TaskNotFoundError(code)
        if instance.is_completed:
            raise TaskAlreadyCompletedError(code)

        instance.progress = min(instance.target_value, instance.progress + increment)
        if instance.progress < instance.target_value:
            await session.flush()
            return TaskProgressResult(
                account_id=account_id,
                task_code=code,
                task_date=task_date,
                progress=instance.progress,
                target_value=instance.target_value,
                completed=False,
                points_earned=0,
                current_streak=None,
            )

        instance.is_completed = True
        instance.completed_at = now_utc
        instance.points_earned = instance.reward_points
        await session.flush()

        await LedgerService.credit(
            session,
            account_id=account_id,
            amount=instance.reward_points,
            source=LedgerSource.DAILY_TASK.value,
            reason=f"daily_task_{code.lower()}",
            idempotency_key=f"daily_task:{instance.id}",
            metadata={"task_code": code, "task_date": task_date.isoformat()},
            now_utc=now_utc,
            events=events,
        )
        events.append(
            DailyTaskCompleted(
                account_id=account_id,
                task_code=code,
                task_date=task_date,
                reward_points=instance.reward_points,
            )
        )

        current_streak: int | None = None
        day_instances = await DailyTasksRepo.list_for_date(
            session,
            account_id=account_id,
            task_date=task_date,
        )
        completed_easy = sum(
            1
            for item in day_instances
            if item.is_completed and item.difficulty == TaskDifficulty.EASY.value
        )
        if day_qualifies(completed_easy):
            streak = await StreakService.update(
                session,
                account_id=account_id,
                day=task_date,
                now_utc=now_utc,
                events=events,
            )
            current_streak = streak.current_streak

        logger.info(
            "daily_task_completed",
            account_id=account_id,
            task_code=code,
            task_date=task_date.isoformat(),
            reward_points=instance.reward_points,
        )
        return TaskProgressResult(
            account_id=account_id,
            task_code=code,
            task_date=task_date,
            progress=instance.progress,
            target_value=instance.target_value,
            completed=True,
            points_earned=instance.reward_points,
            current_streak=current_streak,
        )

    @staticmethod
    async def list_active_account_ids(
        session: AsyncSession,
        *,
        active_since_utc: datetime,
        limit: int,
    ) -> list[int]:
        return await AccountsRepo.list_ids_updated_since(
            session,
            since_utc=active_since_utc,
            limit=limit,
        )
