from __future__ import annotations

from collections.abc import Mapping
from dataclasses import asdict, dataclass, field, fields
from datetime import date
from typing import Any, ClassVar


@dataclass(frozen=True, slots=True)
class LoyaltyEvent:
    event_type: ClassVar[str] = "loyalty_event"

    account_id: int

    def payload(self) -> dict[str, Any]:
        data = asdict(self)
        for key, value in data.items():
            if isinstance(value, date):
                data[key] = value.isoformat()
        return data


@dataclass(frozen=True, slots=True)
class PointsPosted(LoyaltyEvent):
    event_type: ClassVar[str] = "points_posted"

    delta: int
    balance_after: int
    source: str
    reason: str


@dataclass(frozen=True, slots=True)
class TierChanged(LoyaltyEvent):
    event_type: ClassVar[str] = "tier_changed"

    old_tier: str
    new_tier: str


@dataclass(frozen=True, slots=True)
class ReferralActivated(LoyaltyEvent):
    event_type: ClassVar[str] = "referral_activated"

    owner_account_id: int
    code: str
    referrer_bonus: int
    referee_bonus: int


@dataclass(frozen=True, slots=True)
class AchievementUnlocked(LoyaltyEvent):
    event_type: ClassVar[str] = "achievement_unlocked"

    achievement_code: str
    reward_points: int


@dataclass(frozen=True, slots=True)
class DailyTaskCompleted(LoyaltyEvent):
    event_type: ClassVar[str] = "daily_task_completed"

    task_code: str
    task_date: date
    reward_points: int


@dataclass(frozen=True, slots=True)
class StreakMilestoneReached(LoyaltyEvent):
    event_type: ClassVar[str] = "streak_milestone_reached"

    streak_days: int
    bonus_points: int


@dataclass(frozen=True, slots=True)
class PurchaseRecorded(LoyaltyEvent):
    event_type: ClassVar[str] = "purchase_recorded"

    purchase_id: int
    external_order_id: str
    amount: int
    award_points: int


@dataclass(frozen=True, slots=True)
class SocialAccountLinked(LoyaltyEvent):
    event_type: ClassVar[str] = "social_account_linked"

    network: str
    external_id: str = field(default="")


EVENT_TYPES: dict[str, type[LoyaltyEvent]] = {
    event_cls.event_type: event_cls
    for event_cls in (
        PointsPosted,
        TierChanged,
        ReferralActivated,
        AchievementUnlocked,
        DailyTaskCompleted,
        StreakMilestoneReached,
        PurchaseRecorded,
        SocialAccountLinked,
    )
}


def event_from_payload(event_type: str, payload: Mapping[str, Any]) -> LoyaltyEvent:
    """Rebuilds an event from the JSON payload stored in the outbox."""
    event_cls = EVENT_TYPES.get(event_type)
    if event_cls is None:
        raise ValueError(f"unknown event type: {event_type}")

    values: dict[str, Any] = {}
    for item in fields(event_cls):
        if item.name not in payload:
            continue
        value = payload[item.name]
        if item.type == "date" and isinstance(value, str):
            value = date.fromisoformat(value)
        values[item.name] = value
    return event_cls(**values)
