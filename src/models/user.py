from __future__ import annotations

from typing import Optional

from sqlalchemy import Float, String
from sqlalchemy.orm import Mapped, mapped_column

from src.db.database import Base
from src.models.base import TimestampMixin


class User(Base, TimestampMixin):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(255), unique=True)
    contact: Mapped[Optional[str]] = mapped_column(String(30))
    role: Mapped[str] = mapped_column(String(20), default="user")  # user / admin / organization

    # Aggregate counters, only ever changed through SQL-side increments
    total_raised: Mapped[float] = mapped_column(Float, default=0, nullable=False)
    total_donated: Mapped[float] = mapped_column(Float, default=0, nullable=False)
    total_invited: Mapped[int] = mapped_column(default=0, nullable=False)

    def __repr__(self) -> str:
        return f"<User {self.id}:{self.name}>"
