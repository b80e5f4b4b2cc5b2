"""
Service for in-app game outcome notifications.

Notifications are fire-and-forget: they are written after the settlement commit
and a failure here never reaches the player whose submission triggered it.
"""

import logging
from typing import Iterable, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from backend.models.base import NotificationSeverity
from backend.models.notification import Notification

logger = logging.getLogger(__name__)

MAX_TITLE_LENGTH = 120


class NotificationService:
    """Creates user notifications."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def notify(
        self,
        user_id: UUID,
        title: str,
        message: str,
        severity: NotificationSeverity = NotificationSeverity.INFO,
    ) -> Optional[Notification]:
        """Create a single notification. Returns None if it could not be stored."""
        return (await self.notify_many([(user_id, title, message, severity)]) or [None])[0]

    async def notify_many(
        self,
        items: Iterable[tuple[UUID, str, str, NotificationSeverity]],
    ) -> list[Notification]:
        """Create notifications in one commit.

        Errors are logged and swallowed; the session is rolled back so the caller can
        keep using it.
        """
        notifications = [
            Notification(
                user_id=user_id,
                title=title[:MAX_TITLE_LENGTH],
                message=message,
                severity=NotificationSeverity(severity).value,
            )
            for user_id, title, message, severity in items
        ]
        if not notifications:
            return []

        try:
            self.db.add_all(notifications)
            await self.db.commit()
        except Exception as e:
            logger.error(f"Failed to store {len(notifications)} notification(s): {e}", exc_info=True)
            try:
                await self.db.rollback()
            except Exception as rollback_error:
                logger.error(f"Rollback after notification failure also failed: {rollback_error}")
            return []

        logger.info(f"Created {len(notifications)} notification(s)")
        return notifications
