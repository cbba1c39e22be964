from __future__ import annotations

import random
from collections.abc import Sequence

from app.economy.daily_tasks.catalog import MANDATORY_TASK_CODES
from app.economy.daily_tasks.types import DailyTaskDefinition, SocialNetwork, TaskDifficulty
from app.economy.status.types import Tier

MIN_TASKS_PER_DAY = 5
MAX_TASKS_PER_DAY = 7
HARD_TASK_BASE_PROBABILITY = 0.3
HARD_TASK_TIER_MULTIPLIERS: dict[Tier, float] = {
    Tier.BRONZE: 1.0,
    Tier.SILVER: 1.2,
    Tier.GOLD: 1.5,
    Tier.PLATINUM: 2.0,
}


def hard_task_probability(tier: Tier | str) -> float:
    return HARD_TASK_BASE_PROBABILITY * HARD_TASK_TIER_MULTIPLIERS[Tier(tier)]


def select_tasks(
    definitions: Sequence[DailyTaskDefinition],
    *,
    tier: Tier | str,
    linked_networks: frozenset[SocialNetwork],
    rng: random.Random,
) -> list[DailyTaskDefinition]:
    selected: list[DailyTaskDefinition] = []
    selected_codes: set[str] = set()

    def _add(definition: DailyTaskDefinition) -> None:
        selected.append(definition)
        selected_codes.add(definition.code)

    def _remaining(difficulty: TaskDifficulty) -> list[DailyTaskDefinition]:
        return [
            item
            for item in definitions
            if item.difficulty == difficulty
            and item.code not in selected_codes
            and item.required_network is None
        ]

    for definition in definitions:
        if definition.code in MANDATORY_TASK_CODES:
            _add(definition)

    for definition in definitions:
        if definition.required_network is None or definition.code in selected_codes:
            continue
        if definition.required_network in linked_networks:
            _add(definition)

    medium_pool = _remaining(TaskDifficulty.MEDIUM)
    if medium_pool:
        _add(rng.choice(medium_pool))

    probability = hard_task_probability(tier)
    for definition in _remaining(TaskDifficulty.HARD):
        if rng.random() < probability:
            _add(definition)

    for difficulty in (TaskDifficulty.EASY, TaskDifficulty.HARD):
        for definition in _remaining(difficulty):
            if len(selected) >= MIN_TASKS_PER_DAY:
                break
            _add(definition)

    return selected[:MAX_TASKS_PER_DAY]
