from app.economy.purchases.service import PurchaseService

__all__ = ["PurchaseService"]
