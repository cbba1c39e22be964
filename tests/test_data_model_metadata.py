from __future__ import annotations

from sqlalchemy import CheckConstraint, UniqueConstraint

from app.db.models import (  # noqa: F401
    Account,
    AchievementProgress,
    DailyTaskInstance,
    LedgerEntry,
    OutboxEvent,
    PendingJob,
    Purchase,
    ReferralCode,
    StreakRecord,
)
from app.db.models.base import Base


def test_all_loyalty_tables_registered() -> None:
    expected_tables = {
        "accounts",
        "ledger_entries",
        "referral_codes",
        "achievement_progress",
        "daily_task_instances",
        "streak_records",
        "purchases",
        "pending_jobs",
        "outbox_events",
    }
    assert expected_tables == set(Base.metadata.tables)


def _check_names(table_name: str) -> set[str | None]:
    table = Base.metadata.tables[table_name]
    return {
        constraint.name for constraint in table.constraints if isinstance(constraint, CheckConstraint)
    }


def test_critical_constraints_present() -> None:
    assert "ck_accounts_balance_non_negative" in _check_names("accounts")
    assert "ck_ledger_entries_delta_non_zero" in _check_names("ledger_entries")
    assert "ck_referral_codes_no_self_referral" in _check_names("referral_codes")
    assert "ck_pending_jobs_status" in _check_names("pending_jobs")

    ledger = Base.metadata.tables["ledger_entries"]
    assert ledger.c.idempotency_key.unique is True

    referral_codes = Base.metadata.tables["referral_codes"]
    assert referral_codes.c.code.unique is True
    assert referral_codes.c.activated_by_account_id.unique is True

    progress = Base.metadata.tables["achievement_progress"]
    progress_unique = {
        constraint.name
        for constraint in progress.constraints
        if isinstance(constraint, UniqueConstraint)
    }
    assert "uq_achievement_progress_account_achievement" in progress_unique

    daily = Base.metadata.tables["daily_task_instances"]
    daily_unique = {
        constraint.name for constraint in daily.constraints if isinstance(constraint, UniqueConstraint)
    }
    assert "uq_daily_task_instances_account_task_date" in daily_unique

    pending_jobs = Base.metadata.tables["pending_jobs"]
    assert "idx_pending_jobs_status_due" in {index.name for index in pending_jobs.indexes}
