from __future__ import annotations

from typing import Any, Dict, Optional

from loguru import logger
from sqlalchemy.orm import Session

from src.config import get_settings
from src.models.notification import Notification, NotificationType
from src.notifications.push import PushSender


class NotificationSender:
    """Deliver a notification to one user: inbox record plus push, when configured."""

    def __init__(self, session: Session):
        self.session = session
        self.settings = get_settings()

    def send(
        self,
        user_id: int,
        type: NotificationType,
        title: str,
        message: str,
        data: Optional[Dict[str, Any]] = None,
    ) -> bool:
        """Send a notification.

        The inbox write raises on database errors so the calling job is retried;
        push delivery is best-effort.

        Returns:
            True if every configured channel accepted the notification.
        """
        if not self.settings.notification_enabled:
            logger.info(f"Notifications are disabled, skipping {type.value} for user {user_id}")
            return False

        notification = Notification(
            user_id=user_id,
            type=type,
            title=title,
            message=message,
            data=data or {},
        )
        self.session.add(notification)
        self.session.commit()

        if PushSender.is_configured():
            pushed = PushSender().send(user_id, title, message, data)
            if not pushed:
                logger.warning(f"Push delivery failed for {type.value} to user {user_id}")
            return pushed

        return True
