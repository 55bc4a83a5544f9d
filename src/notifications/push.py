from __future__ import annotations

from typing import Any, Dict, Optional

import httpx
from loguru import logger

from src.config import get_settings

SEND_MESSAGE_TIMEOUT = 10  # seconds


class PushSender:
    """Forward notifications to the push gateway webhook."""

    def __init__(self):
        settings = get_settings()
        self.webhook_url = settings.push_webhook_url

    @classmethod
    def is_configured(cls) -> bool:
        settings = get_settings()
        return bool(settings.push_webhook_url)

    def send(
        self,
        user_id: int,
        title: str,
        message: str,
        data: Optional[Dict[str, Any]] = None,
    ) -> bool:
        """Post one notification to the push gateway.

        Returns:
            True if accepted by the gateway, False otherwise.
        """
        payload = {
            "user_id": user_id,
            "title": title,
            "message": message,
            "data": data or {},
        }

        try:
            with httpx.Client(timeout=SEND_MESSAGE_TIMEOUT) as client:
                response = client.post(self.webhook_url, json=payload)
                response.raise_for_status()

            logger.info(f"Push notification sent to user {user_id}")
            return True
        except httpx.HTTPStatusError as e:
            logger.error(
                f"Push gateway error: {e.response.status_code} - {e.response.text}"
            )
            return False
        except httpx.RequestError as e:
            logger.error(f"Push gateway request failed: {e}")
            return False
