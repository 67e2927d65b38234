"""Abstract base class for administrator notification channels."""

from __future__ import annotations

from abc import ABC, abstractmethod

from chunkwise.models.notification import Notification


# Concrete implementations: LogNotificationProvider, WebhookNotificationProvider
# Located in: chunkwise/providers/notification/
class INotificationProvider(ABC):

    @abstractmethod
    async def send(self, notification: Notification) -> None:
        """Deliver *notification* to the tenant's administrators.

        Raises
        ------
        chunkwise.utils.errors.ProviderUnavailableError
            If the channel could not be reached.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this channel."""
