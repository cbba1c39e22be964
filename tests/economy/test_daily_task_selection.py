from __future__ import annotations

import random

import pytest

from app.economy.daily_tasks.catalog import DAILY_TASKS, MANDATORY_TASK_CODES, get_daily_task
from app.economy.daily_tasks.selection import (
    MAX_TASKS_PER_DAY,
    MIN_TASKS_PER_DAY,
    hard_task_probability,
    select_tasks,
)
from app.economy.daily_tasks.types import SocialNetwork, TaskDifficulty
from app.economy.status.types import Tier


class FixedRandom(random.Random):
    def __init__(self, value: float) -> None:
        super().__init__(0)
        self._value = value

    def random(self) -> float:
        return self._value


def _codes(tasks) -> list[str]:
    return [task.code for task in tasks]


def test_catalog_values() -> None:
    assert len(DAILY_TASKS) == 10
    walk = get_daily_task("daily_walk_view")
    assert walk is not None
    assert walk.target_value == 3
    assert walk.reward_points == 15
    assert get_daily_task("DAILY_VK_ACTIVITY").required_network == SocialNetwork.VK
    assert get_daily_task("UNKNOWN") is None


@pytest.mark.parametrize("seed", range(25))
def test_selection_invariants_without_linked_networks(seed: int) -> None:
    selected = select_tasks(
        DAILY_TASKS,
        tier=Tier.BRONZE,
        linked_networks=frozenset(),
        rng=random.Random(seed),
    )
    codes = _codes(selected)

    assert set(MANDATORY_TASK_CODES).issubset(codes)
    assert MIN_TASKS_PER_DAY <= len(selected) <= MAX_TASKS_PER_DAY
    assert len(set(codes)) == len(codes)
    assert all(task.required_network is None for task in selected)
    assert sum(1 for task in selected if task.difficulty == TaskDifficulty.MEDIUM) == 1


def test_social_tasks_follow_linked_networks() -> None:
    selected = select_tasks(
        DAILY_TASKS,
        tier=Tier.BRONZE,
        linked_networks=frozenset({SocialNetwork.VK}),
        rng=random.Random(3),
    )
    codes = _codes(selected)

    assert "DAILY_VK_ACTIVITY" in codes
    assert "DAILY_INSTAGRAM_ACTIVITY" not in codes


def test_selection_is_deterministic_for_seed() -> None:
    first = select_tasks(DAILY_TASKS, tier=Tier.GOLD, linked_networks=frozenset(), rng=random.Random(42))
    second = select_tasks(DAILY_TASKS, tier=Tier.GOLD, linked_networks=frozenset(), rng=random.Random(42))
    assert _codes(first) == _codes(second)


def test_no_hard_roll_tops_up_to_minimum() -> None:
    selected = select_tasks(
        DAILY_TASKS,
        tier=Tier.BRONZE,
        linked_networks=frozenset(),
        rng=FixedRandom(0.99),
    )
    codes = _codes(selected)

    assert len(selected) == MIN_TASKS_PER_DAY
    assert "DAILY_WALK_VIEW" in codes
    assert sum(1 for task in selected if task.difficulty == TaskDifficulty.HARD) == 1


def test_all_hard_rolls_are_capped() -> None:
    selected = select_tasks(
        DAILY_TASKS,
        tier=Tier.PLATINUM,
        linked_networks=frozenset({SocialNetwork.VK, SocialNetwork.INSTAGRAM}),
        rng=FixedRandom(0.0),
    )
    codes = _codes(selected)

    assert len(selected) == MAX_TASKS_PER_DAY
    assert codes[:2] == list(MANDATORY_TASK_CODES)
    assert "DAILY_VK_ACTIVITY" in codes
    assert "DAILY_INSTAGRAM_ACTIVITY" in codes


def test_hard_task_probability_scales_with_tier() -> None:
    assert hard_task_probability(Tier.BRONZE) == pytest.approx(0.3)
    assert hard_task_probability(Tier.SILVER) == pytest.approx(0.36)
    assert hard_task_probability(Tier.GOLD) == pytest.approx(0.45)
    assert hard_task_probability("PLATINUM") == pytest.approx(0.6)
