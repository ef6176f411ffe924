"""
PlaceShare Backend: Place Request/Response Schemas
====================================================

What:  Pydantic models for the /api/places contract, plus `serialize_place`,
       the one function that turns a Place row into its API value record.
How:   Response records are frozen. Identifiers are rendered as strings by
       `serialize_place` itself; no model relies on implicit str() of ORM
       objects.
"""

from typing import List

from pydantic import BaseModel, Field

from placeshare.models.place import Place


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class Location(BaseModel):
    """Coordinates resolved from a place's address."""
    lat: float = Field(description="Latitude in decimal degrees")
    lng: float = Field(description="Longitude in decimal degrees")

    model_config = {"frozen": True}


class PlaceOut(BaseModel):
    """
    What:  Full representation of a place.
    Who:   Nested in every /api/places response.
    """
    id: str = Field(description="Place identifier (UUID string)")
    title: str
    description: str
    address: str
    location: Location
    image: str = Field(description="Storage path of the place image, relative to /uploads")
    creator: str = Field(description="Identifier of the user who created the place")

    model_config = {"frozen": True}


class PlaceEnvelope(BaseModel):
    """Body of single-place responses: {"place": {...}}."""
    place: PlaceOut


class PlaceListEnvelope(BaseModel):
    """Body of GET /api/places/user/{uid}: {"places": [...]}."""
    places: List[PlaceOut]


class MessageResponse(BaseModel):
    """Acknowledgement with no payload, e.g. after a delete."""
    message: str


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class PlaceUpdateRequest(BaseModel):
    """
    Body of PATCH /api/places/{pid}.

    Only title and description are editable. Content rules (non-empty title,
    description of at least 5 characters) are enforced by PlaceService so
    that every caller gets the same ValidationError.
    """
    title: str = Field(description="New title (non-empty)")
    description: str = Field(description="New description (at least 5 characters)")


# ══════════════════════════════════════════════════════════════════════════
# Serialization
# ══════════════════════════════════════════════════════════════════════════


def serialize_place(place: Place) -> PlaceOut:
    """Render a Place row as its immutable API record."""
    return PlaceOut(
        id=str(place.id),
        title=place.title,
        description=place.description,
        address=place.address,
        location=Location(lat=place.lat, lng=place.lng),
        image=place.image,
        creator=str(place.creator_id),
    )
