from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum


class StreakTransition(str, Enum):
    STARTED = "STARTED"
    EXTENDED = "EXTENDED"
    RESET = "RESET"
    ALREADY_COUNTED = "ALREADY_COUNTED"


@dataclass(slots=True)
class StreakSnapshot:
    current_streak: int
    longest_streak: int
    last_active_date: date | None
    total_active_days: int
    streak_bonus_earned: int


@dataclass(frozen=True, slots=True)
class StreakUpdateResult:
    account_id: int
    transition: StreakTransition
    current_streak: int
    longest_streak: int
    is_new_record: bool
    milestone_bonus: int


@dataclass(frozen=True, slots=True)
class StreakView:
    account_id: int
    current_streak: int
    longest_streak: int
    last_active_date: date | None
    total_active_days: int
    streak_bonus_earned: int
    next_milestone_days: int | None
    days_to_next_milestone: int | None
