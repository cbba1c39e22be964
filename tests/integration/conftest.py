from __future__ import annotations

from collections.abc import Callable
from datetime import datetime

import pytest
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import app.db.models  # noqa: F401
from app.core.config import Settings
from app.db.models.base import Base
from app.services.loyalty_engine import LoyaltyEngine
from tests.integration.loyalty_fixtures import UTC, FixedClock, FixedRandom, RecordingNotifier


@pytest.fixture
async def session_factory():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, _connection_record) -> None:
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)

    await engine.dispose()


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(datetime(2026, 3, 2, 10, 0, tzinfo=UTC))


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None)


@pytest.fixture
def build_engine(session_factory, clock, notifier, settings) -> Callable[..., LoyaltyEngine]:
    def _build(**overrides: object) -> LoyaltyEngine:
        options: dict[str, object] = {
            "notifier": notifier,
            "settings": settings,
            "clock": clock,
            "rng": FixedRandom(0.99),
        }
        options.update(overrides)
        return LoyaltyEngine(session_factory, **options)

    return _build


@pytest.fixture
def engine(build_engine) -> LoyaltyEngine:
    return build_engine()


@pytest.fixture
async def file_db(tmp_path):
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'loyalty.db'}",
        connect_args={"timeout": 0.1},
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _configure_connection(dbapi_connection, _connection_record) -> None:
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _begin_immediate(conn) -> None:
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def file_session_factory(file_db) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(file_db, expire_on_commit=False, class_=AsyncSession)


@pytest.fixture
def file_engine(file_session_factory, clock, notifier) -> LoyaltyEngine:
    return LoyaltyEngine(
        file_session_factory,
        notifier=notifier,
        settings=Settings(_env_file=None, LOYALTY_TRANSACTION_MAX_ATTEMPTS=50),
        clock=clock,
        rng=FixedRandom(0.99),
    )
