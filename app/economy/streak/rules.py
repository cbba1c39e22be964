from __future__ import annotations

from dataclasses import replace
from datetime import date, timedelta

from app.economy.streak.constants import STREAK_MILESTONE_BONUSES, STREAK_QUALIFYING_EASY_TASKS
from app.economy.streak.types import StreakSnapshot, StreakTransition


def day_qualifies(completed_easy_tasks: int) -> bool:
    return completed_easy_tasks >= STREAK_QUALIFYING_EASY_TASKS


def register_active_day(
    snapshot: StreakSnapshot, *, day: date
) -> tuple[StreakSnapshot, StreakTransition]:
    last = snapshot.last_active_date
    if last is not None and day <= last:
        return snapshot, StreakTransition.ALREADY_COUNTED

    if last is None or snapshot.current_streak <= 0:
        current_streak, transition = 1, StreakTransition.STARTED
    elif last == day - timedelta(days=1):
        current_streak, transition = snapshot.current_streak + 1, StreakTransition.EXTENDED
    else:
        current_streak, transition = 1, StreakTransition.RESET

    updated = replace(
        snapshot,
        current_streak=current_streak,
        longest_streak=max(snapshot.longest_streak, current_streak),
        last_active_date=day,
        total_active_days=snapshot.total_active_days + 1,
    )
    return updated, transition


def milestone_bonus(current_streak: int) -> int:
    return STREAK_MILESTONE_BONUSES.get(current_streak, 0)


def streak_run_start(day: date, current_streak: int) -> date:
    return day - timedelta(days=max(0, current_streak - 1))


def effective_current_streak(snapshot: StreakSnapshot, *, today: date) -> int:
    """Stored streak until a full day is missed, then zero."""
    if snapshot.last_active_date is None:
        return 0
    if snapshot.last_active_date >= today - timedelta(days=1):
        return snapshot.current_streak
    return 0


def next_milestone(current_streak: int) -> int | None:
    for days in sorted(STREAK_MILESTONE_BONUSES):
        if days > current_streak:
            return days
    return None
