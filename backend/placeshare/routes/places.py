"""
PlaceShare Backend: Places Route Handlers
===========================================

What:  The /api/places resource: read by id, read by owner, create,
       update, delete.
How:   Handlers extract path params, form fields or JSON bodies and delegate
       to PlaceService. Every error is a PlaceShareError raised below this
       layer and rendered by the global handlers in main.py.
Who:   Called by the web client.

Authentication:
    GET endpoints are public. POST, PATCH and DELETE require a bearer token;
    the token's user id becomes the owner (create) or the requester
    (update, delete).

Upload Flow (POST):
    1. Image validated and stored by FileService
    2. PlaceService.create runs (validation, geocoding, transaction)
    3. Any failure in step 2 removes the stored image again
"""

import logging
import uuid

from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from placeshare.database import get_db_session
from placeshare.schemas.common import ErrorResponse
from placeshare.schemas.place import (
    MessageResponse,
    PlaceEnvelope,
    PlaceListEnvelope,
    PlaceUpdateRequest,
)
from placeshare.security import get_current_user_id
from placeshare.services.file_service import file_service
from placeshare.services.place_service import place_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/places", tags=["Places"])


@router.get(
    "/{place_id}",
    response_model=PlaceEnvelope,
    responses={
        404: {"description": "No place with this id", "model": ErrorResponse},
        500: {"description": "Store unavailable", "model": ErrorResponse},
    },
    summary="Get a place by id",
)
async def get_place(
    place_id: uuid.UUID,
    db: AsyncSession = Depends(get_db_session),
) -> PlaceEnvelope:
    place = await place_service.get_by_id(db=db, place_id=place_id)
    return PlaceEnvelope(place=place)


@router.get(
    "/user/{user_id}",
    response_model=PlaceListEnvelope,
    responses={
        404: {
            "description": "Unknown user, or a user without places",
            "model": ErrorResponse,
        },
        500: {"description": "Store unavailable", "model": ErrorResponse},
    },
    summary="List the places of a user",
    description=(
        "Returns the user's places in the order they were added. A user with "
        "no places yields 404, not an empty list."
    ),
)
async def get_places_by_user(
    user_id: uuid.UUID,
    db: AsyncSession = Depends(get_db_session),
) -> PlaceListEnvelope:
    places = await place_service.get_by_owner(db=db, user_id=user_id)
    return PlaceListEnvelope(places=places)


@router.post(
    "",
    status_code=201,
    response_model=PlaceEnvelope,
    responses={
        401: {"description": "Missing or invalid token", "model": ErrorResponse},
        404: {"description": "Token user does not exist", "model": ErrorResponse},
        422: {
            "description": "Invalid fields, bad image, or address could not be geocoded",
            "model": ErrorResponse,
        },
        500: {"description": "Store unavailable", "model": ErrorResponse},
    },
    summary="Create a place",
    description=(
        "Multipart form with title, description, address and an image "
        "(PNG or JPEG). The address is geocoded before anything is saved."
    ),
)
async def create_place(
    title: str = Form(..., description="Non-empty title"),
    description: str = Form(..., description="At least 5 characters"),
    address: str = Form(..., description="Postal address to geocode"),
    image: UploadFile = File(..., description="Place photo (PNG, JPG or JPEG)"),
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> PlaceEnvelope:
    """
    Store the image, then create the place.

    If creation fails for any reason after the image is on disk, the image
    is removed before the error propagates to the global handler.
    """
    content = await image.read()
    logger.info(
        "Create place request: user=%s filename=%s size=%d bytes",
        user_id,
        image.filename or "unknown",
        len(content),
    )

    try:
        absolute_path, relative_path = await file_service.validate_and_store(
            filename=image.filename or "upload.jpg",
            content=content,
            content_length=image.size,
        )

        try:
            place = await place_service.create(
                db=db,
                owner_id=user_id,
                title=title,
                description=description,
                address=address,
                image_path=relative_path,
            )
        except Exception:
            await file_service.cleanup_file(absolute_path)
            raise

        return PlaceEnvelope(place=place)
    finally:
        await image.close()


@router.patch(
    "/{place_id}",
    response_model=PlaceEnvelope,
    responses={
        401: {"description": "Missing or invalid token", "model": ErrorResponse},
        403: {"description": "Requester is not the creator", "model": ErrorResponse},
        404: {"description": "No place with this id", "model": ErrorResponse},
        422: {"description": "Invalid title or description", "model": ErrorResponse},
        500: {"description": "Store unavailable", "model": ErrorResponse},
    },
    summary="Update title and description of a place",
)
async def update_place(
    place_id: uuid.UUID,
    body: PlaceUpdateRequest,
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> PlaceEnvelope:
    place = await place_service.update(
        db=db,
        requester_id=user_id,
        place_id=place_id,
        title=body.title,
        description=body.description,
    )
    return PlaceEnvelope(place=place)


@router.delete(
    "/{place_id}",
    response_model=MessageResponse,
    responses={
        401: {"description": "Missing or invalid token", "model": ErrorResponse},
        403: {"description": "Requester is not the creator", "model": ErrorResponse},
        404: {"description": "No place with this id", "model": ErrorResponse},
        500: {"description": "Store unavailable", "model": ErrorResponse},
    },
    summary="Delete a place",
)
async def delete_place(
    place_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    return await place_service.delete(db=db, requester_id=user_id, place_id=place_id)
