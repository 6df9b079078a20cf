"""Port interface for delivering agent notifications."""

from abc import ABC, abstractmethod


class NotificationPort(ABC):
    @abstractmethod
    async def notify(self, user_id: str, order_id: str, message: str) -> None:
        """Fire-and-forget delivery. Callers treat any exception as non-fatal."""
        ...
