"""
PlaceShare Backend: User SQLAlchemy Model
===========================================

What:  ORM model for the `users` table.
Who:   Written by UserService (signup), read by UserService (login, listing)
       and PlaceService (owner existence checks).

Table Design:
    - id: UUID primary key
    - email: unique, stored lower-cased so lookups are case-insensitive
    - password_hash: bcrypt hash, never serialized
    - image: relative path of the avatar inside the storage root

    A user's ordered list of places is NOT a column here. It lives in
    `user_places` (see models/place.py) and is only written by the place
    create/delete transactions.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, String, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column

from placeshare.database import Base


class User(Base):
    """A registered account that can own places."""

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    email: Mapped[str] = mapped_column(
        String(320),
        nullable=False,
        unique=True,
        index=True,
    )

    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    image: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Relative path from storage root to the avatar image",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}')>"
