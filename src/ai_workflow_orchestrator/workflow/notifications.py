"""Notification sinks for ``notify`` steps."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any, Protocol

import requests

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class NotificationReceipt:
    accepted: bool
    timestamp: datetime
    detail: str = ""


class NotificationSink(Protocol):
    async def send(self, payload: Mapping[str, Any]) -> NotificationReceipt: ...


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


class LoggingNotificationSink:
    """Writes notifications to the log. Always accepts."""

    def __init__(self, clock: Callable[[], datetime] | None = None) -> None:
        self._clock = clock or _utc_now

    async def send(self, payload: Mapping[str, Any]) -> NotificationReceipt:
        logger.info(
            "Workflow notification",
            extra={
                "workflow_id": payload.get("workflow_id"),
                "step": payload.get("step"),
                "channel": payload.get("channel"),
                "notification": payload.get("message"),
            },
        )
        return NotificationReceipt(accepted=True, timestamp=self._clock())


class WebhookNotificationSink:
    """POSTs each notification as JSON to a webhook URL.

    A non-2xx response is reported as a rejected receipt; transport errors
    propagate to the caller.
    """

    def __init__(
        self,
        url: str,
        *,
        timeout_seconds: float = 30.0,
        session: requests.Session | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        if not url:
            raise ValueError("Webhook URL is required")
        self._url = url
        self._timeout = timeout_seconds
        self._session = session or requests.Session()
        self._session.headers.update(
            {"Content-Type": "application/json", "User-Agent": "ai-workflow-orchestrator"}
        )
        self._clock = clock or _utc_now

    async def send(self, payload: Mapping[str, Any]) -> NotificationReceipt:
        # requests is blocking; keep it off the event loop.
        return await asyncio.to_thread(self._post, dict(payload))

    def _post(self, payload: dict[str, Any]) -> NotificationReceipt:
        resp = self._session.post(self._url, json=payload, timeout=self._timeout)
        if not resp.ok:
            logger.warning(
                "Webhook rejected notification",
                extra={"status_code": resp.status_code, "channel": payload.get("channel")},
            )
            return NotificationReceipt(
                accepted=False, timestamp=self._clock(), detail=f"HTTP {resp.status_code}"
            )
        return NotificationReceipt(accepted=True, timestamp=self._clock())

    def close(self) -> None:
        self._session.close()
