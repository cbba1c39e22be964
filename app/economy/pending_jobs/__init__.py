from app.economy.pending_jobs.service import PendingJobService

__all__ = ["PendingJobService"]
