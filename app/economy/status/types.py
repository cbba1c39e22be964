from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Tier(str, Enum):
    BRONZE = "BRONZE"
    SILVER = "SILVER"
    GOLD = "GOLD"
    PLATINUM = "PLATINUM"


@dataclass(frozen=True, slots=True)
class TierLevel:
    tier: Tier
    name: str
    min_points: int
    cashback_percent: int


@dataclass(frozen=True, slots=True)
class StatusView:
    account_id: int
    balance: int
    tier: Tier
    tier_name: str
    cashback_percent: int
    next_tier: Tier | None
    next_tier_min_points: int | None
    points_to_next_tier: int
