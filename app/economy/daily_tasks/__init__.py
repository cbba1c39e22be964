from app.economy.daily_tasks.service import DailyTaskService

__all__ = ["DailyTaskService"]
