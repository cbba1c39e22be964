from app.db.models.accounts import Account
from app.db.models.achievement_progress import AchievementProgress
from app.db.models.daily_task_instances import DailyTaskInstance
from app.db.models.ledger_entries import LedgerEntry
from app.db.models.outbox_events import OutboxEvent
from app.db.models.pending_jobs import PendingJob
from app.db.models.purchases import Purchase
from app.db.models.referral_codes import ReferralCode
from app.db.models.streak_records import StreakRecord

__all__ = [
    "Account",
    "AchievementProgress",
    "DailyTaskInstance",
    "LedgerEntry",
    "OutboxEvent",
    "PendingJob",
    "Purchase",
    "ReferralCode",
    "StreakRecord",
]
