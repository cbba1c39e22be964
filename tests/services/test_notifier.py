from __future__ import annotations

import json
from types import SimpleNamespace

import httpx
import pytest

from app.economy.events import AchievementUnlocked, PointsPosted, TierChanged
from app.services.notifier import (
    CompositeNotifier,
    LoggingNotifier,
    WebhookNotifier,
    build_default_notifier,
)


class _FailingNotifier:
    def __init__(self) -> None:
        self.calls = 0

    async def notify(self, event) -> None:
        self.calls += 1
        raise RuntimeError("crm unavailable")


class _RecordingNotifier:
    def __init__(self) -> None:
        self.events: list[object] = []

    async def notify(self, event) -> None:
        self.events.append(event)


def _settings(**overrides: object) -> SimpleNamespace:
    base = {"app_env": "test", "crm_sync_webhook_url": "", "notify_timeout_seconds": 1.0}
    base.update(overrides)
    return SimpleNamespace(**base)


def test_event_payload_is_json_ready() -> None:
    event = TierChanged(account_id=7, old_tier="BRONZE", new_tier="SILVER")

    assert event.event_type == "tier_changed"
    assert event.payload() == {"account_id": 7, "old_tier": "BRONZE", "new_tier": "SILVER"}


@pytest.mark.asyncio
async def test_webhook_notifier_posts_event_body() -> None:
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json={"ok": True})

    notifier = WebhookNotifier(
        url="https://crm.example/hooks/loyalty",
        app_env="test",
        transport=httpx.MockTransport(handler),
    )
    await notifier.notify(
        PointsPosted(account_id=3, delta=50, balance_after=50, source="referral", reason="referrer_bonus")
    )

    assert len(requests) == 1
    body = json.loads(requests[0].content)
    assert body["event"] == "points_posted"
    assert body["account_id"] == 3
    assert body["payload"]["delta"] == 50
    assert body["app_env"] == "test"


@pytest.mark.asyncio
async def test_webhook_notifier_raises_on_http_error() -> None:
    notifier = WebhookNotifier(
        url="https://crm.example/hooks/loyalty",
        transport=httpx.MockTransport(lambda request: httpx.Response(503)),
    )
    with pytest.raises(httpx.HTTPStatusError):
        await notifier.notify(AchievementUnlocked(account_id=1, achievement_code="FIRST_PURCHASE", reward_points=100))


@pytest.mark.asyncio
async def test_composite_notifier_reaches_every_notifier_before_raising() -> None:
    recording = _RecordingNotifier()
    composite = CompositeNotifier([_FailingNotifier(), recording])
    event = TierChanged(account_id=2, old_tier="SILVER", new_tier="GOLD")

    with pytest.raises(RuntimeError):
        await composite.notify(event)
    assert recording.events == [event]


def test_build_default_notifier_uses_webhook_only_when_configured() -> None:
    assert isinstance(build_default_notifier(_settings()), LoggingNotifier)
    assert isinstance(
        build_default_notifier(_settings(crm_sync_webhook_url="https://crm.example/hook")),
        CompositeNotifier,
    )
