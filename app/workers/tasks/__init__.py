from app.workers.tasks.daily_tasks import generate_daily_tasks_for_active_accounts
from app.workers.tasks.outbox import deliver_outbox_events
from app.workers.tasks.pending_jobs import process_due_pending_jobs
from app.workers.tasks.reconciliation import run_balance_reconciliation

__all__ = [
    "deliver_outbox_events",
    "generate_daily_tasks_for_active_accounts",
    "process_due_pending_jobs",
    "run_balance_reconciliation",
]
