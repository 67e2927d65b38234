"""Administrator notification adapters."""

from chunkwise.providers.notification.log_notification_provider import LogNotificationProvider
from chunkwise.providers.notification.webhook_notification_provider import (
    WebhookNotificationProvider,
)

__all__ = ["LogNotificationProvider", "WebhookNotificationProvider"]
