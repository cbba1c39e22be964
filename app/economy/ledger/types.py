from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class LedgerSource(str, Enum):
    PURCHASE = "purchase"
    REFERRAL = "referral"
    ACHIEVEMENT = "achievement"
    DAILY_TASK = "daily_task"
    STREAK = "streak"
    ADMIN = "admin"
    SOCIAL = "social"
    SYSTEM = "system"


@dataclass(frozen=True, slots=True)
class PostingResult:
    account_id: int
    entry_id: int | None
    delta: int
    balance_after: int
    tier: str
    idempotent_replay: bool


@dataclass(frozen=True, slots=True)
class LedgerEntryView:
    entry_id: int
    delta: int
    source: str
    reason: str
    balance_after: int
    created_at: datetime
    metadata: dict[str, object]


@dataclass(frozen=True, slots=True)
class ReconcileResult:
    account_id: int
    cached_balance: int
    ledger_balance: int
    drift: int
    corrected: bool
