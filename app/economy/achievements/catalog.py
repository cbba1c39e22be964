from __future__ import annotations

from app.economy.achievements.types import (
    AchievementCategory,
    AchievementDefinition,
    ConditionKind,
    ProgressSourceKind,
)

ACHIEVEMENTS: tuple[AchievementDefinition, ...] = (
    AchievementDefinition(
        code="FIRST_PURCHASE",
        name="First purchase",
        description="Make your first purchase.",
        category=AchievementCategory.PURCHASE,
        condition_kind=ConditionKind.COUNT,
        source=ProgressSourceKind.PURCHASE_COUNT,
        target_value=1,
        reward_points=100,
    ),
    AchievementDefinition(
        code="PURCHASE_5",
        name="Regular customer",
        description="Make 5 purchases.",
        category=AchievementCategory.PURCHASE,
        condition_kind=ConditionKind.COUNT,
        source=ProgressSourceKind.PURCHASE_COUNT,
        target_value=5,
        reward_points=200,
    ),
    AchievementDefinition(
        code="PURCHASE_10",
        name="Loyal customer",
        description="Make 10 purchases.",
        category=AchievementCategory.PURCHASE,
        condition_kind=ConditionKind.COUNT,
        source=ProgressSourceKind.PURCHASE_COUNT,
        target_value=10,
        reward_points=500,
    ),
    AchievementDefinition(
        code="FIRST_REFERRAL",
        name="First friend",
        description="Invite your first friend.",
        category=AchievementCategory.REFERRAL,
        condition_kind=ConditionKind.COUNT,
        source=ProgressSourceKind.REFERRAL_COUNT,
        target_value=1,
        reward_points=150,
    ),
    AchievementDefinition(
        code="REFERRAL_5",
        name="Community builder",
        description="Invite 5 friends.",
        category=AchievementCategory.REFERRAL,
        condition_kind=ConditionKind.COUNT,
        source=ProgressSourceKind.REFERRAL_COUNT,
        target_value=5,
        reward_points=300,
    ),
    AchievementDefinition(
        code="REFERRAL_10",
        name="Ambassador",
        description="Invite 10 friends.",
        category=AchievementCategory.REFERRAL,
        condition_kind=ConditionKind.COUNT,
        source=ProgressSourceKind.REFERRAL_COUNT,
        target_value=10,
        reward_points=1000,
    ),
    AchievementDefinition(
        code="POINTS_1000",
        name="Point collector",
        description="Hold 1000 points.",
        category=AchievementCategory.POINTS,
        condition_kind=ConditionKind.THRESHOLD,
        source=ProgressSourceKind.POINT_BALANCE,
        target_value=1000,
        reward_points=100,
    ),
    AchievementDefinition(
        code="POINTS_5000",
        name="Point hoarder",
        description="Hold 5000 points.",
        category=AchievementCategory.POINTS,
        condition_kind=ConditionKind.THRESHOLD,
        source=ProgressSourceKind.POINT_BALANCE,
        target_value=5000,
        reward_points=500,
    ),
    AchievementDefinition(
        code="STATUS_SILVER",
        name="Silver status",
        description="Reach the Silver tier.",
        category=AchievementCategory.STATUS,
        condition_kind=ConditionKind.MILESTONE,
        source=ProgressSourceKind.TIER_REACHED,
        target_value=1,
        reward_points=250,
        required_tier="SILVER",
    ),
    AchievementDefinition(
        code="STATUS_GOLD",
        name="Gold status",
        description="Reach the Gold tier.",
        category=AchievementCategory.STATUS,
        condition_kind=ConditionKind.MILESTONE,
        source=ProgressSourceKind.TIER_REACHED,
        target_value=1,
        reward_points=500,
        required_tier="GOLD",
    ),
    AchievementDefinition(
        code="STATUS_PLATINUM",
        name="Platinum status",
        description="Reach the Platinum tier.",
        category=AchievementCategory.STATUS,
        condition_kind=ConditionKind.MILESTONE,
        source=ProgressSourceKind.TIER_REACHED,
        target_value=1,
        reward_points=1000,
        required_tier="PLATINUM",
    ),
    AchievementDefinition(
        code="SOCIAL_VK_CONNECT",
        name="VK connected",
        description="Link your VK account.",
        category=AchievementCategory.SOCIAL,
        condition_kind=ConditionKind.MILESTONE,
        source=ProgressSourceKind.VK_LINKED,
        target_value=1,
        reward_points=50,
    ),
    AchievementDefinition(
        code="SOCIAL_INSTAGRAM_CONNECT",
        name="Instagram connected",
        description="Link your Instagram account.",
        category=AchievementCategory.SOCIAL,
        condition_kind=ConditionKind.MILESTONE,
        source=ProgressSourceKind.INSTAGRAM_LINKED,
        target_value=1,
        reward_points=50,
    ),
)
_ACHIEVEMENTS_BY_CODE: dict[str, AchievementDefinition] = {item.code: item for item in ACHIEVEMENTS}


def get_achievement(code: str) -> AchievementDefinition | None:
    return _ACHIEVEMENTS_BY_CODE.get(code.strip().upper())


def active_achievements(
    category: AchievementCategory | None = None,
) -> tuple[AchievementDefinition, ...]:
    return tuple(
        item
        for item in ACHIEVEMENTS
        if item.is_active and (category is None or item.category == category)
    )
