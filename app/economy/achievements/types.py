from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class AchievementCategory(str, Enum):
    PURCHASE = "purchase"
    REFERRAL = "referral"
    POINTS = "points"
    STATUS = "status"
    SOCIAL = "social"


class ConditionKind(str, Enum):
    COUNT = "count"
    THRESHOLD = "threshold"
    MILESTONE = "milestone"


class ProgressSourceKind(str, Enum):
    PURCHASE_COUNT = "purchase_count"
    REFERRAL_COUNT = "referral_count"
    POINT_BALANCE = "point_balance"
    TIER_REACHED = "tier_reached"
    VK_LINKED = "vk_linked"
    INSTAGRAM_LINKED = "instagram_linked"


@dataclass(frozen=True, slots=True)
class AchievementDefinition:
    code: str
    name: str
    description: str
    category: AchievementCategory
    condition_kind: ConditionKind
    source: ProgressSourceKind
    target_value: int
    reward_points: int
    required_tier: str | None = None
    is_active: bool = True

    def is_met(self, progress: int) -> bool:
        return progress >= self.target_value


@dataclass(frozen=True, slots=True)
class AchievementView:
    code: str
    name: str
    description: str
    category: AchievementCategory
    target_value: int
    reward_points: int
    current_progress: int
    progress_percent: int
    is_completed: bool
    unlocked_at: datetime | None


@dataclass(frozen=True, slots=True)
class AchievementStats:
    account_id: int
    total: int
    completed: int
    points_earned: int
    completion_percent: int


@dataclass(frozen=True, slots=True)
class AchievementCheckResult:
    account_id: int
    checked: int
    newly_unlocked: tuple[str, ...]
    points_awarded: int
