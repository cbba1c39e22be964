from __future__ import annotations

from app.db.session import SessionLocal
from app.services.loyalty_engine import LoyaltyEngine


def build_worker_engine() -> LoyaltyEngine:
    return LoyaltyEngine(SessionLocal)
