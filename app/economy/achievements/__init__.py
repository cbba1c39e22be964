from app.economy.achievements.service import AchievementService

__all__ = ["AchievementService"]
