"""
PlaceShare Backend: Place and Owner-List SQLAlchemy Models
============================================================

What:  ORM models for the `places` table and the `user_places` owner list.
Who:   Written and read by PlaceService.

Ownership is recorded twice:
    places.creator_id      → the place's single creator (immutable)
    user_places(user, pos) → the creator's ordered list of place ids

The two sides are kept consistent only by PlaceService.create and
PlaceService.delete, which always write both inside one transaction.

Immutable after creation: address, lat/lng, image, creator_id.
Mutable via PlaceService.update: title, description.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Uuid,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from placeshare.database import Base


class Place(Base):
    """A user-submitted location with a geocoded address and a photo."""

    __tablename__ = "places"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    title: Mapped[str] = mapped_column(String(255), nullable=False)

    description: Mapped[str] = mapped_column(Text, nullable=False)

    address: Mapped[str] = mapped_column(String(500), nullable=False)

    # Location, resolved from `address` once at creation
    lat: Mapped[float] = mapped_column(Float, nullable=False)
    lng: Mapped[float] = mapped_column(Float, nullable=False)

    image: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Relative path from storage root to the place image",
    )

    creator_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id"),
        nullable=False,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )

    __table_args__ = (
        Index("idx_places_creator_id", "creator_id"),
    )

    def __repr__(self) -> str:
        return f"<Place(id={self.id}, title='{self.title}', creator_id={self.creator_id})>"


class UserPlace(Base):
    """
    One entry of a user's ordered place list.

    `position` grows monotonically per user; gaps left by deletions are
    never compacted, only the relative order matters.
    """

    __tablename__ = "user_places"

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id"),
        primary_key=True,
    )

    place_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("places.id"),
        primary_key=True,
    )

    position: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (
        Index("idx_user_places_user_position", "user_id", "position"),
    )

    def __repr__(self) -> str:
        return f"<UserPlace(user_id={self.user_id}, place_id={self.place_id}, position={self.position})>"
