from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, String, func
from sqlalchemy.orm import Mapped, mapped_column

from src.db.database import Base


class InvitationHistory(Base):
    __tablename__ = "invitation_history"

    id: Mapped[int] = mapped_column(primary_key=True)
    type: Mapped[str] = mapped_column(String(20), default="sms", nullable=False)
    campaign_id: Mapped[Optional[int]] = mapped_column(ForeignKey("campaigns.id"))
    from_user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    from_phone: Mapped[str] = mapped_column(String(30), nullable=False)
    to_phone: Mapped[str] = mapped_column(String(30), nullable=False)
    to_name: Mapped[Optional[str]] = mapped_column(String(100))
    is_donated: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), nullable=False
    )

    def __repr__(self) -> str:
        return f"<InvitationHistory {self.from_phone} -> {self.to_phone}>"
