from app.db.repo.accounts_repo import AccountsRepo
from app.db.repo.achievement_progress_repo import AchievementProgressRepo
from app.db.repo.daily_tasks_repo import DailyTasksRepo
from app.db.repo.ledger_repo import LedgerRepo
from app.db.repo.outbox_events_repo import OutboxEventsRepo
from app.db.repo.pending_jobs_repo import PendingJobsRepo
from app.db.repo.purchases_repo import PurchasesRepo
from app.db.repo.referral_codes_repo import ReferralCodesRepo
from app.db.repo.streak_repo import StreakRepo

__all__ = [
    "AccountsRepo",
    "AchievementProgressRepo",
    "DailyTasksRepo",
    "LedgerRepo",
    "OutboxEventsRepo",
    "PendingJobsRepo",
    "PurchasesRepo",
    "ReferralCodesRepo",
    "StreakRepo",
]
