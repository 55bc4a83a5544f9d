"""Process-wide access to the singleton notification strategy.

Loaded at startup and refreshed whenever this process upserts the content row.
A standalone worker never sees those refreshes, so its job handlers reload the
strategy through this store before reading it.
"""
from __future__ import annotations

import threading
from functools import lru_cache
from typing import Optional

from loguru import logger
from sqlalchemy.orm import Session

from src.content.schemas import NotificationStrategy
from src.models.content import Content


class StrategyStore:
    def __init__(self):
        self._lock = threading.Lock()
        self._strategy: Optional[NotificationStrategy] = None
        self._loaded = False

    def load(self, session: Session) -> Optional[NotificationStrategy]:
        content = session.query(Content).order_by(Content.id).first()
        strategy = None
        if content is not None and content.notification_strategy:
            strategy = NotificationStrategy.model_validate(content.notification_strategy)
        self.refresh(strategy)
        logger.info(f"Notification strategy loaded (configured={strategy is not None})")
        return strategy

    def refresh(self, strategy: Optional[NotificationStrategy]) -> None:
        with self._lock:
            self._strategy = strategy
            self._loaded = True

    def current(self, session: Optional[Session] = None) -> Optional[NotificationStrategy]:
        """Return the cached strategy, loading it first if a session is given and nothing is cached."""
        if not self._loaded and session is not None:
            return self.load(session)
        return self._strategy

    def clear(self) -> None:
        with self._lock:
            self._strategy = None
            self._loaded = False


@lru_cache
def get_strategy_store() -> StrategyStore:
    return StrategyStore()
