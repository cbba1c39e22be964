from app.economy.accounts.service import AccountService

__all__ = ["AccountService"]
