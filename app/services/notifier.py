from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timezone
from typing import Any, Protocol

import httpx
import structlog

from app.core.config import Settings
from app.economy.events import LoyaltyEvent

logger = structlog.get_logger(__name__)


class Notifier(Protocol):
    async def notify(self, event: LoyaltyEvent) -> None: ...


class LoggingNotifier:
    async def notify(self, event: LoyaltyEvent) -> None:
        logger.info(
            "loyalty_event",
            event_type=event.event_type,
            account_id=event.account_id,
            payload=event.payload(),
        )


class WebhookNotifier:
    """Posts events as JSON to the CRM sync webhook."""

    def __init__(
        self,
        *,
        url: str,
        app_env: str = "dev",
        timeout_seconds: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._url = url
        self._app_env = app_env
        self._timeout_seconds = timeout_seconds
        self._transport = transport

    def build_body(self, event: LoyaltyEvent) -> dict[str, Any]:
        return {
            "event": event.event_type,
            "account_id": event.account_id,
            "payload": event.payload(),
            "app_env": self._app_env,
            "sent_at": datetime.now(timezone.utc).isoformat(),
        }

    async def notify(self, event: LoyaltyEvent) -> None:
        async with httpx.AsyncClient(
            timeout=self._timeout_seconds,
            transport=self._transport,
        ) as client:
            response = await client.post(self._url, json=self.build_body(event))
            response.raise_for_status()


class CompositeNotifier:
    def __init__(self, notifiers: Sequence[Notifier]) -> None:
        self._notifiers = tuple(notifiers)

    async def notify(self, event: LoyaltyEvent) -> None:
        errors: list[Exception] = []
        for notifier in self._notifiers:
            try:
                await notifier.notify(event)
            except Exception as exc:
                errors.append(exc)
        if errors:
            raise errors[0]


def build_default_notifier(settings: Settings) -> Notifier:
    webhook_url = settings.crm_sync_webhook_url.strip()
    if not webhook_url:
        return LoggingNotifier()
    return CompositeNotifier(
        [
            LoggingNotifier(),
            WebhookNotifier(
                url=webhook_url,
                app_env=settings.app_env,
                timeout_seconds=settings.notify_timeout_seconds,
            ),
        ]
    )

