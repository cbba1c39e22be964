from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class ReferralCodeStatus(str, Enum):
    VALID = "VALID"
    NOT_FOUND = "NOT_FOUND"
    ALREADY_USED = "ALREADY_USED"


@dataclass(frozen=True, slots=True)
class ReferralCodeView:
    code: str
    owner_account_id: int
    created_at: datetime
    invite_url: str
    reused_existing: bool


@dataclass(frozen=True, slots=True)
class ReferralValidation:
    status: ReferralCodeStatus
    code: str
    owner_account_id: int | None = None

    @property
    def is_valid(self) -> bool:
        return self.status == ReferralCodeStatus.VALID


@dataclass(frozen=True, slots=True)
class ReferralActivationResult:
    code: str
    owner_account_id: int
    referee_account_id: int
    referrer_bonus: int
    referee_bonus: int
    owner_balance: int
    referee_balance: int


@dataclass(frozen=True, slots=True)
class ReferralActivationView:
    code: str
    referee_account_id: int
    activated_at: datetime | None
    bonus_amount: int
    bonus_paid: bool


@dataclass(frozen=True, slots=True)
class ReferralStats:
    account_id: int
    current_code: str | None
    invite_url: str | None
    total_referrals: int
    total_earned: int
    recent_activations: tuple[ReferralActivationView, ...]
