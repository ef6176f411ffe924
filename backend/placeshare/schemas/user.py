"""
PlaceShare Backend: User Request/Response Schemas
===================================================

What:  Pydantic models for /api/users. The password hash never appears in
       any response model.
"""

from typing import List

from pydantic import BaseModel, Field


class UserOut(BaseModel):
    """
    What:  Public representation of a user.
    Who:   Returned as items of GET /api/users.
    """
    id: str = Field(description="User identifier (UUID string)")
    name: str
    email: str
    image: str = Field(description="Storage path of the avatar, relative to /uploads")
    places: List[str] = Field(
        default_factory=list,
        description="Identifiers of the places this user owns, in creation order",
    )

    model_config = {"frozen": True}


class UserListResponse(BaseModel):
    users: List[UserOut]


class LoginRequest(BaseModel):
    """Body of POST /api/users/login."""
    email: str
    password: str


class AuthResponse(BaseModel):
    """
    What:  Returned by signup (201) and login (200).
    How:   `token` is an HS256 JWT to be sent as `Authorization: Bearer <token>`.
    """
    userId: str
    email: str
    token: str
