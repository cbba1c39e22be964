from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from app.economy.status.types import Tier, TierLevel

TIER_LEVELS: tuple[TierLevel, ...] = (
    TierLevel(tier=Tier.BRONZE, name="Bronze", min_points=0, cashback_percent=5),
    TierLevel(tier=Tier.SILVER, name="Silver", min_points=500, cashback_percent=10),
    TierLevel(tier=Tier.GOLD, name="Gold", min_points=1500, cashback_percent=15),
    TierLevel(tier=Tier.PLATINUM, name="Platinum", min_points=3000, cashback_percent=20),
)
_LEVELS_BY_TIER: dict[Tier, TierLevel] = {level.tier: level for level in TIER_LEVELS}


def get_tier_level(tier: Tier | str) -> TierLevel:
    return _LEVELS_BY_TIER[Tier(tier)]


def calculate_tier(balance: int) -> Tier:
    resolved = TIER_LEVELS[0]
    for level in TIER_LEVELS:
        if balance >= level.min_points:
            resolved = level
    return resolved.tier


def calculate_cashback(tier: Tier | str) -> int:
    return get_tier_level(tier).cashback_percent


def next_tier_level(tier: Tier | str) -> TierLevel | None:
    index = TIER_LEVELS.index(get_tier_level(tier))
    if index + 1 >= len(TIER_LEVELS):
        return None
    return TIER_LEVELS[index + 1]


def points_to_next_tier(balance: int) -> int:
    upcoming = next_tier_level(calculate_tier(balance))
    if upcoming is None:
        return 0
    return max(0, upcoming.min_points - balance)


def cashback_points(amount: int, cashback_percent: int) -> int:
    """Half-up rounding of amount * percent / 100."""
    raw = Decimal(amount) * Decimal(cashback_percent) / Decimal(100)
    return int(raw.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
