"""
PlaceShare Backend: Place Service (Business Logic)
=====================================================

What:  The five place operations: get by id, get by owner, create, update,
       delete. Validation, ownership checks and the place/owner-list
       consistency rule all live here.
How:   Every method receives the request's AsyncSession. Create and delete
       change two records (the place row and the owner's `user_places`
       entry) and run both writes inside `with_transaction`, so either both
       land or neither does.
Who:   Called by the /api/places route handlers.

Error Handling Strategy:
    ValidationError       bad title / description / address
    GeocodeError          raised by the geocoder, propagated unchanged
    NotFoundError         missing place, missing user, owner without places
    ForbiddenError        requester is not the creator
    StoreUnavailableError any SQLAlchemyError, after rollback
    Nothing is retried here.

The one swallowed failure is the removal of a deleted place's image file,
which FileService.cleanup_file logs instead of raising.
"""

import logging
import uuid
from typing import Dict, List, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from placeshare.database import with_transaction
from placeshare.exceptions import (
    ForbiddenError,
    NotFoundError,
    StoreUnavailableError,
    ValidationError,
)
from placeshare.models.place import Place, UserPlace
from placeshare.models.user import User
from placeshare.schemas.place import MessageResponse, PlaceOut, serialize_place
from placeshare.services.file_service import file_service
from placeshare.services.google_geocoder import geocoder

logger = logging.getLogger(__name__)

MIN_DESCRIPTION_LENGTH = 5


class PlaceService:
    """
    Business logic layer for place operations.

    Stateless: the session, the geocoder and the file service are the only
    collaborators, and none of them is mutated between calls.
    """

    # ── Validation ────────────────────────────────────────────────────────

    @staticmethod
    def validate_content(
        title: Optional[str],
        description: Optional[str],
        address: Optional[str] = None,
        require_address: bool = False,
    ) -> None:
        """
        Check the user-editable fields of a place.

        Rules: title non-empty, description at least 5 characters and,
        when `require_address` is set, address non-empty. A whitespace-only title or
        address counts as empty; the description is measured as given.

        Raises:
            ValidationError listing every failing field in its context.
        """
        problems: Dict[str, str] = {}
        if not title or not title.strip():
            problems["title"] = "must not be empty"
        if description is None or len(description) < MIN_DESCRIPTION_LENGTH:
            problems["description"] = f"must be at least {MIN_DESCRIPTION_LENGTH} characters"
        if require_address and (not address or not address.strip()):
            problems["address"] = "must not be empty"

        if problems:
            raise ValidationError(
                message="Invalid inputs passed, please check your data.",
                context={"fields": problems},
            )

    # ── Reads ─────────────────────────────────────────────────────────────

    async def get_by_id(self, db: AsyncSession, place_id: uuid.UUID) -> PlaceOut:
        """
        Fetch a single place.

        Raises:
            NotFoundError: no place with this id
            StoreUnavailableError: the lookup failed
        """
        try:
            place = await db.get(Place, place_id)
        except SQLAlchemyError as e:
            logger.error("Database error fetching place %s: %s", place_id, str(e))
            raise StoreUnavailableError(
                message="Something went wrong, could not find a place.",
                context={"place_id": str(place_id)},
            )

        if place is None:
            raise NotFoundError(
                resource="place",
                resource_id=str(place_id),
                message="Could not find a place for the provided id.",
            )

        return serialize_place(place)

    async def get_by_owner(self, db: AsyncSession, user_id: uuid.UUID) -> List[PlaceOut]:
        """
        List the places in a user's place list, in list order.

        A user that exists but owns no places is reported as NotFoundError,
        exactly like an unknown user. Callers must not expect an empty list.

        Raises:
            NotFoundError: unknown user, or user with zero places
            StoreUnavailableError: the lookup failed
        """
        try:
            user = await db.get(User, user_id)
            places: List[Place] = []
            if user is not None:
                result = await db.execute(
                    select(Place)
                    .join(UserPlace, UserPlace.place_id == Place.id)
                    .where(UserPlace.user_id == user_id)
                    .order_by(UserPlace.position)
                )
                places = list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error("Database error listing places of user %s: %s", user_id, str(e))
            raise StoreUnavailableError(
                message="Fetching places failed, please try again later.",
                context={"user_id": str(user_id)},
            )

        if user is None or not places:
            raise NotFoundError(
                resource="places",
                resource_id=str(user_id),
                message="Could not find places for the provided user id.",
            )

        return [serialize_place(place) for place in places]

    # ── Writes ────────────────────────────────────────────────────────────

    async def create(
        self,
        db: AsyncSession,
        owner_id: uuid.UUID,
        title: str,
        description: str,
        address: str,
        image_path: str,
    ) -> PlaceOut:
        """
        Create a place and register it in its owner's place list.

        Workflow Steps:
            1. Validate title, description, address
            2. Geocode the address
            3. Load the owner
            4. In one transaction: insert the place, append to owner's list
            5. Return the new place

        Raises:
            ValidationError, GeocodeError, NotFoundError (owner),
            StoreUnavailableError (nothing persisted)
        """
        self.validate_content(title, description, address, require_address=True)

        coordinates = await geocoder.resolve(address)

        try:
            owner = await db.get(User, owner_id)
        except SQLAlchemyError as e:
            logger.error("Database error loading owner %s: %s", owner_id, str(e))
            raise StoreUnavailableError(
                message="Creating place failed, please try again.",
                context={"user_id": str(owner_id)},
            )

        if owner is None:
            raise NotFoundError(
                resource="user",
                resource_id=str(owner_id),
                message="Could not find user for provided id.",
            )

        place = Place(
            title=title,
            description=description,
            address=address,
            lat=coordinates.lat,
            lng=coordinates.lng,
            image=image_path,
            creator_id=owner.id,
        )

        async def _write(session: AsyncSession) -> Place:
            session.add(place)
            await session.flush()
            await self._attach_to_owner(session, owner.id, place.id)
            return place

        try:
            await with_transaction(db, _write)
        except SQLAlchemyError as e:
            logger.error(
                "Creating place for user %s failed, transaction rolled back: %s",
                owner_id,
                str(e),
            )
            raise StoreUnavailableError(
                message="Creating place failed, please try again.",
                context={"user_id": str(owner_id), "error_type": type(e).__name__},
            )

        logger.info("Place %s created by user %s", place.id, owner.id)
        return serialize_place(place)

    async def update(
        self,
        db: AsyncSession,
        requester_id: uuid.UUID,
        place_id: uuid.UUID,
        title: str,
        description: str,
    ) -> PlaceOut:
        """
        Overwrite title and description of a place owned by the requester.

        Address, location, image and creator never change after creation.

        Raises:
            ValidationError, NotFoundError, ForbiddenError, StoreUnavailableError
        """
        self.validate_content(title, description)

        try:
            place = await db.get(Place, place_id)
        except SQLAlchemyError as e:
            logger.error("Database error loading place %s for update: %s", place_id, str(e))
            raise StoreUnavailableError(
                message="Something went wrong, could not update place.",
                context={"place_id": str(place_id)},
            )

        if place is None:
            raise NotFoundError(
                resource="place",
                resource_id=str(place_id),
                message="Could not find place for this id.",
            )

        if str(place.creator_id) != str(requester_id):
            logger.warning(
                "User %s tried to edit place %s owned by %s",
                requester_id,
                place_id,
                place.creator_id,
            )
            raise ForbiddenError(
                message="You are not allowed to edit this place.",
                context={"place_id": str(place_id)},
            )

        async def _write(session: AsyncSession) -> Place:
            place.title = title
            place.description = description
            await session.flush()
            return place

        try:
            await with_transaction(db, _write)
        except SQLAlchemyError as e:
            logger.error("Updating place %s failed: %s", place_id, str(e))
            raise StoreUnavailableError(
                message="Something went wrong, could not update place.",
                context={"place_id": str(place_id), "error_type": type(e).__name__},
            )

        logger.info("Place %s updated by user %s", place_id, requester_id)
        return serialize_place(place)

    async def delete(
        self,
        db: AsyncSession,
        requester_id: uuid.UUID,
        place_id: uuid.UUID,
    ) -> MessageResponse:
        """
        Delete a place owned by the requester and detach it from the owner.

        Workflow Steps:
            1. Load the place together with its creator
            2. Check the requester is the creator
            3. In one transaction: remove the owner-list entry, delete the place
            4. Remove the image file (best effort, failures only logged)

        Raises:
            NotFoundError, ForbiddenError, StoreUnavailableError (nothing changed)
        """
        try:
            row = (
                await db.execute(
                    select(Place, User)
                    .join(User, User.id == Place.creator_id)
                    .where(Place.id == place_id)
                )
            ).first()
        except SQLAlchemyError as e:
            logger.error("Database error loading place %s for delete: %s", place_id, str(e))
            raise StoreUnavailableError(
                message="Something went wrong, could not delete place.",
                context={"place_id": str(place_id)},
            )

        if row is None:
            raise NotFoundError(
                resource="place",
                resource_id=str(place_id),
                message="Could not find place for this id.",
            )

        place, owner = row
        if str(owner.id) != str(requester_id):
            logger.warning(
                "User %s tried to delete place %s owned by %s",
                requester_id,
                place_id,
                owner.id,
            )
            raise ForbiddenError(
                message="You are not allowed to delete this place.",
                context={"place_id": str(place_id)},
            )

        image_path = place.image

        async def _write(session: AsyncSession) -> None:
            await session.execute(
                delete(UserPlace).where(
                    UserPlace.user_id == owner.id,
                    UserPlace.place_id == place.id,
                )
            )
            await session.delete(place)
            await session.flush()

        try:
            await with_transaction(db, _write)
        except SQLAlchemyError as e:
            logger.error(
                "Deleting place %s failed, transaction rolled back: %s",
                place_id,
                str(e),
            )
            raise StoreUnavailableError(
                message="Something went wrong, could not delete place.",
                context={"place_id": str(place_id), "error_type": type(e).__name__},
            )

        logger.info("Place %s deleted by user %s", place_id, requester_id)

        await file_service.cleanup_file(image_path)

        return MessageResponse(message="Deleted place.")

    # ── Helpers ───────────────────────────────────────────────────────────

    async def _attach_to_owner(
        self,
        session: AsyncSession,
        user_id: uuid.UUID,
        place_id: uuid.UUID,
    ) -> UserPlace:
        """Append `place_id` to the end of the user's place list."""
        result = await session.execute(
            select(func.max(UserPlace.position)).where(UserPlace.user_id == user_id)
        )
        last_position = result.scalar()
        entry = UserPlace(
            user_id=user_id,
            place_id=place_id,
            position=0 if last_position is None else last_position + 1,
        )
        session.add(entry)
        await session.flush()
        return entry


place_service = PlaceService()
