from app.economy.accounts import AccountService
from app.economy.achievements import AchievementService
from app.economy.daily_tasks import DailyTaskService
from app.economy.ledger import LedgerService
from app.economy.pending_jobs import PendingJobService
from app.economy.purchases import PurchaseService
from app.economy.referrals import ReferralService
from app.economy.status import StatusService
from app.economy.streak import StreakService

__all__ = [
    "AccountService",
    "AchievementService",
    "DailyTaskService",
    "LedgerService",
    "PendingJobService",
    "PurchaseService",
    "ReferralService",
    "StatusService",
    "StreakService",
]
