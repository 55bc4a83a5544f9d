from __future__ import annotations

from typing import Any, Dict, Optional

from sqlalchemy import JSON, String
from sqlalchemy.orm import Mapped, mapped_column

from src.db.database import Base
from src.models.base import TimestampMixin


class Content(Base, TimestampMixin):
    """Singleton application content row; owns the notification strategy."""

    __tablename__ = "content"

    id: Mapped[int] = mapped_column(primary_key=True)
    app_name: Mapped[Optional[str]] = mapped_column(String(100))
    organization_name: Mapped[Optional[str]] = mapped_column(String(255))
    our_mission: Mapped[Optional[str]] = mapped_column(String(2000))
    notification_strategy: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON)

    def __repr__(self) -> str:
        return f"<Content {self.id}:{self.app_name}>"
