"""
TrialDoc Backend - User SQLAlchemy Model
==========================================

What:  ORM model for the `users` table.
Who:   Written by AuthService.register(), read by AuthService.login().

`password` holds the bcrypt hash only. Users are never updated or deleted
by this service.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Text, text
from sqlalchemy.dialects.postgresql import TIMESTAMP
from sqlalchemy.orm import Mapped, mapped_column

from trialdoc.database import Base


class User(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    username: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    password: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )

    def __repr__(self) -> str:
        # Never include the password hash
        return f"<User(id={self.id}, username='{self.username}')>"
