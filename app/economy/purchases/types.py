from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True, slots=True)
class PurchaseRecordResult:
    purchase_id: int
    account_id: int
    external_order_id: str
    amount: int
    cashback_percent: int
    award_points: int
    pending_job_id: int | None
    credit_due_at: datetime | None
    idempotent_replay: bool
