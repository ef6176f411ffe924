"""
PlaceShare Backend: User Service (Business Logic)
===================================================

What:  Account listing, signup and login.
How:   Passwords are hashed with bcrypt, successful signup and login both
       return a fresh access token. Emails are normalized to lower case
       before they are stored or looked up.
Who:   Called by the /api/users route handlers. PlaceService never calls
       into this module; it reads the User table directly.
"""

import logging
import re
import uuid
from collections import defaultdict
from typing import Dict, List

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from placeshare.exceptions import (
    AuthenticationError,
    StoreUnavailableError,
    ValidationError,
)
from placeshare.models.place import UserPlace
from placeshare.models.user import User
from placeshare.schemas.user import AuthResponse, UserOut
from placeshare.security import create_access_token, hash_password, verify_password

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6
# bcrypt refuses longer input
MAX_PASSWORD_BYTES = 72

# local@domain.tld, deliberately loose
EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


class UserService:
    """Business logic layer for user accounts."""

    async def list_users(self, db: AsyncSession) -> List[UserOut]:
        """
        Return every user with the ids of the places they own.

        Place ids come from `user_places`, in list order.
        """
        try:
            users = list((await db.execute(select(User).order_by(User.created_at))).scalars().all())
            entries = (
                await db.execute(
                    select(UserPlace.user_id, UserPlace.place_id).order_by(
                        UserPlace.user_id, UserPlace.position
                    )
                )
            ).all()
        except SQLAlchemyError as e:
            logger.error("Database error listing users: %s", str(e))
            raise StoreUnavailableError(
                message="Fetching users failed, please try again later.",
            )

        places_by_user: Dict[uuid.UUID, List[str]] = defaultdict(list)
        for user_id, place_id in entries:
            places_by_user[user_id].append(str(place_id))

        return [
            UserOut(
                id=str(user.id),
                name=user.name,
                email=user.email,
                image=user.image,
                places=places_by_user.get(user.id, []),
            )
            for user in users
        ]

    async def signup(
        self,
        db: AsyncSession,
        name: str,
        email: str,
        password: str,
        image_path: str,
    ) -> AuthResponse:
        """
        Register a new account.

        Raises:
            ValidationError: empty name, malformed email, password too short or too long,
                or an email that is already registered
            StoreUnavailableError: the insert failed for any other reason
        """
        email = normalize_email(email)

        problems: Dict[str, str] = {}
        if not name or not name.strip():
            problems["name"] = "must not be empty"
        if not EMAIL_PATTERN.match(email):
            problems["email"] = "must be a valid email address"
        if not password or len(password) < MIN_PASSWORD_LENGTH:
            problems["password"] = f"must be at least {MIN_PASSWORD_LENGTH} characters"
        elif len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
            problems["password"] = f"must be at most {MAX_PASSWORD_BYTES} bytes"
        if problems:
            raise ValidationError(context={"fields": problems})

        try:
            existing = (
                await db.execute(select(User).where(User.email == email))
            ).scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Database error checking email during signup: %s", str(e))
            raise StoreUnavailableError(message="Signing up failed, please try again later.")

        if existing is not None:
            raise ValidationError(
                message="User exists already, please login instead.",
                field="email",
            )

        user = User(
            name=name.strip(),
            email=email,
            password_hash=hash_password(password),
            image=image_path,
        )

        try:
            db.add(user)
            await db.commit()
        except IntegrityError:
            # Lost a race against a concurrent signup with the same email
            await db.rollback()
            raise ValidationError(
                message="User exists already, please login instead.",
                field="email",
            )
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error("Database error creating user: %s", str(e))
            raise StoreUnavailableError(message="Signing up failed, please try again later.")

        logger.info("User %s signed up", user.id)
        return AuthResponse(
            userId=str(user.id),
            email=user.email,
            token=create_access_token(user.id, user.email),
        )

    async def login(self, db: AsyncSession, email: str, password: str) -> AuthResponse:
        """
        Exchange credentials for an access token.

        Unknown email and wrong password produce the same error.
        """
        email = normalize_email(email)

        try:
            user = (
                await db.execute(select(User).where(User.email == email))
            ).scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Database error during login: %s", str(e))
            raise StoreUnavailableError(message="Logging in failed, please try again later.")

        if user is None or not verify_password(password or "", user.password_hash):
            logger.info("Rejected login attempt")
            raise AuthenticationError(message="Invalid credentials, could not log you in.")

        return AuthResponse(
            userId=str(user.id),
            email=user.email,
            token=create_access_token(user.id, user.email),
        )


user_service = UserService()
