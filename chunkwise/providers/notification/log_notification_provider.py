"""Notification channel that writes to the structured log."""

from __future__ import annotations

import structlog

from chunkwise.interfaces.notification_provider import INotificationProvider
from chunkwise.models.notification import Notification

logger = structlog.get_logger(logger_name=__name__)


class LogNotificationProvider(INotificationProvider):
    """Used when no webhook is configured; administrators read the log stream."""

    async def send(self, notification: Notification) -> None:
        logger.info(
            "admin_notification",
            type=notification.type.value,
            tenant_id=notification.tenant_id,
            document_id=notification.document_id,
            pending_count=notification.pending_count,
            message=notification.message,
        )

    def get_provider_name(self) -> str:
        return "log_notification"
