"""NotificationPort backed by the notifications table.

Writes in a session of its own so a failed notification can never roll back
the assignment that triggered it.
"""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.adapters.persistence.models import NotificationModel
from app.application.ports.notification_port import NotificationPort

logger = logging.getLogger(__name__)


class SqlNotificationSink(NotificationPort):
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        notification_type: str = "ORDER_ASSIGNED",
        title: str = "New Order Assigned",
    ):
        self._session_factory = session_factory
        self._type = notification_type
        self._title = title

    async def notify(self, user_id: str, order_id: str, message: str) -> None:
        async with self._session_factory() as session:
            session.add(
                NotificationModel(
                    user_id=user_id,
                    type=self._type,
                    title=self._title,
                    message=message,
                    related_order_id=order_id,
                )
            )
            await session.commit()
        logger.debug("Notified user %s about order %s", user_id, order_id)
