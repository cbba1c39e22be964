from __future__ import annotations

from app.economy.daily_tasks.types import (
    DailyTaskDefinition,
    SocialNetwork,
    TaskCategory,
    TaskDifficulty,
)

MANDATORY_TASK_CODES: tuple[str, ...] = ("DAILY_CHECKIN", "DAILY_PROFILE_VIEW")

DAILY_TASKS: tuple[DailyTaskDefinition, ...] = (
    DailyTaskDefinition(
        code="DAILY_CHECKIN",
        name="Daily check-in",
        difficulty=TaskDifficulty.EASY,
        category=TaskCategory.VISIT,
        target_value=1,
        reward_points=10,
    ),
    DailyTaskDefinition(
        code="DAILY_PROFILE_VIEW",
        name="Check your profile",
        difficulty=TaskDifficulty.EASY,
        category=TaskCategory.VISIT,
        target_value=1,
        reward_points=5,
    ),
    DailyTaskDefinition(
        code="DAILY_VK_ACTIVITY",
        name="VK activity",
        difficulty=TaskDifficulty.EASY,
        category=TaskCategory.SOCIAL,
        target_value=1,
        reward_points=15,
        required_network=SocialNetwork.VK,
    ),
    DailyTaskDefinition(
        code="DAILY_INSTAGRAM_ACTIVITY",
        name="Instagram activity",
        difficulty=TaskDifficulty.MEDIUM,
        category=TaskCategory.SOCIAL,
        target_value=1,
        reward_points=20,
        required_network=SocialNetwork.INSTAGRAM,
    ),
    DailyTaskDefinition(
        code="DAILY_REFERRAL_SHARE",
        name="Share with friends",
        difficulty=TaskDifficulty.MEDIUM,
        category=TaskCategory.SOCIAL,
        target_value=1,
        reward_points=25,
    ),
    DailyTaskDefinition(
        code="DAILY_WALK_VIEW",
        name="Browse upcoming events",
        difficulty=TaskDifficulty.EASY,
        category=TaskCategory.VISIT,
        target_value=3,
        reward_points=15,
    ),
    DailyTaskDefinition(
        code="DAILY_PURCHASE_TASK",
        name="Make a purchase",
        difficulty=TaskDifficulty.HARD,
        category=TaskCategory.PURCHASE,
        target_value=1,
        reward_points=50,
    ),
    DailyTaskDefinition(
        code="DAILY_POINTS_SPEND",
        name="Spend points",
        difficulty=TaskDifficulty.MEDIUM,
        category=TaskCategory.PURCHASE,
        target_value=1,
        reward_points=30,
    ),
    DailyTaskDefinition(
        code="WEEKLY_ACHIEVEMENT_HUNT",
        name="Achievement hunt",
        difficulty=TaskDifficulty.HARD,
        category=TaskCategory.VISIT,
        target_value=1,
        reward_points=100,
    ),
    DailyTaskDefinition(
        code="WEEKLY_STATUS_BOOST",
        name="Status boost",
        difficulty=TaskDifficulty.HARD,
        category=TaskCategory.VISIT,
        target_value=1,
        reward_points=75,
    ),
)
_DAILY_TASKS_BY_CODE: dict[str, DailyTaskDefinition] = {item.code: item for item in DAILY_TASKS}


def get_daily_task(code: str) -> DailyTaskDefinition | None:
    return _DAILY_TASKS_BY_CODE.get(code.strip().upper())


def active_daily_tasks() -> tuple[DailyTaskDefinition, ...]:
    return tuple(item for item in DAILY_TASKS if item.is_active)
