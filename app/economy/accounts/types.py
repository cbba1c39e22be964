from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True, slots=True)
class AccountView:
    account_id: int
    external_user_id: str
    balance: int
    tier: str
    vk_user_id: str | None
    instagram_user_id: str | None
    created_at: datetime
    created: bool = False
