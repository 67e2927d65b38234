"""Webhook notification channel.

POSTs a JSON body to ``notification_webhook_url``.  The message is
HTML-escaped because receivers commonly render it inside an admin page.
"""

from __future__ import annotations

import html

import httpx
import structlog

from chunkwise.interfaces.notification_provider import INotificationProvider
from chunkwise.models.notification import Notification
from chunkwise.utils.errors import ProviderUnavailableError

logger = structlog.get_logger(logger_name=__name__)

_TIMEOUT = 10.0


class WebhookNotificationProvider(INotificationProvider):

    def __init__(self, url: str, client: httpx.AsyncClient | None = None) -> None:
        self._url = url
        self._client = client

    async def send(self, notification: Notification) -> None:
        payload = {
            "type": notification.type.value,
            "tenant_id": notification.tenant_id,
            "document_id": notification.document_id,
            "pending_count": notification.pending_count,
            "message": html.escape(notification.message),
        }
        try:
            if self._client is not None:
                response = await self._client.post(self._url, json=payload, timeout=_TIMEOUT)
            else:
                async with httpx.AsyncClient(timeout=_TIMEOUT) as client:
                    response = await client.post(self._url, json=payload)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise ProviderUnavailableError(
                message=f"Notification webhook failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        logger.info(
            "webhook_notification_sent",
            type=notification.type.value,
            document_id=notification.document_id,
            status_code=response.status_code,
        )

    def get_provider_name(self) -> str:
        return "webhook_notification"
