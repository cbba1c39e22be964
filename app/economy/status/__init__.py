from app.economy.status.service import StatusService

__all__ = ["StatusService"]
