"""Outbound receipt e-mails and shift summaries.

Delivery goes through a webhook relay (the messaging provider sits behind it).
Every send is best-effort: failures are logged and reported as ``False``, they
never reach the request that triggered them.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

import httpx

from app.gymdesk.core.config import settings
from app.gymdesk.core.logging import log_json

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    def __init__(
        self,
        base_url: str | None = None,
        timeout_seconds: float | None = None,
        enabled: bool | None = None,
        transport: Callable[..., httpx.Response] | None = None,
    ) -> None:
        self.base_url = (base_url if base_url is not None else settings.NOTIFICATIONS_WEBHOOK_BASE_URL).rstrip("/")
        self.timeout_seconds = timeout_seconds if timeout_seconds is not None else settings.NOTIFICATIONS_TIMEOUT_SEC
        self.enabled = settings.NOTIFICATIONS_ENABLED if enabled is None else enabled
        self.transport = transport or httpx.request

    def send_receipt(self, email: str, sale_summary: dict[str, Any]) -> bool:
        return self._post("/receipts", {"to": email, "receipt": sale_summary}, kind="receipt")

    def send_shift_summary(self, phone: str, shift_summary: dict[str, Any]) -> bool:
        return self._post("/shift-summaries", {"to": phone, "summary": shift_summary}, kind="shift_summary")

    def _post(self, path: str, body: dict[str, Any], *, kind: str) -> bool:
        if not self.enabled or not self.base_url:
            return False
        try:
            response = self.transport(
                "POST",
                f"{self.base_url}{path}",
                timeout=self.timeout_seconds,
                json=body,
            )
        except httpx.HTTPError as exc:
            log_json(
                logger,
                {"event": "notification_failed", "kind": kind, "error_class": exc.__class__.__name__},
                level=logging.WARNING,
            )
            return False
        if response.status_code >= 400:
            log_json(
                logger,
                {"event": "notification_rejected", "kind": kind, "status_code": response.status_code},
                level=logging.WARNING,
            )
            return False
        return True


def get_notification_dispatcher() -> NotificationDispatcher:
    return NotificationDispatcher()
