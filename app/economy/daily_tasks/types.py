from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum


class TaskDifficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class TaskCategory(str, Enum):
    VISIT = "visit"
    SOCIAL = "social"
    PURCHASE = "purchase"


class SocialNetwork(str, Enum):
    VK = "vk"
    INSTAGRAM = "instagram"


@dataclass(frozen=True, slots=True)
class DailyTaskDefinition:
    code: str
    name: str
    difficulty: TaskDifficulty
    category: TaskCategory
    target_value: int
    reward_points: int
    required_network: SocialNetwork | None = None
    is_active: bool = True


@dataclass(frozen=True, slots=True)
class DailyTaskView:
    code: str
    name: str
    difficulty: TaskDifficulty
    category: TaskCategory
    task_date: date
    target_value: int
    reward_points: int
    progress: int
    progress_percent: int
    is_completed: bool
    completed_at: datetime | None
    points_earned: int


@dataclass(frozen=True, slots=True)
class DailyTasksSummary:
    account_id: int
    task_date: date
    tasks: tuple[DailyTaskView, ...]
    completed_count: int
    total_count: int
    points_available: int
    points_earned: int


@dataclass(frozen=True, slots=True)
class TaskProgressResult:
    account_id: int
    task_code: str
    task_date: date
    progress: int
    target_value: int
    completed: bool
    points_earned: int
    current_streak: int | None
