"""
PlaceShare Backend: Users Route Handlers
==========================================

What:  GET /api/users, POST /api/users/signup, POST /api/users/login.
How:   Signup is multipart (it carries an avatar image), login is JSON.
       Both answer with {userId, email, token}.
"""

import logging

from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from placeshare.database import get_db_session
from placeshare.schemas.common import ErrorResponse
from placeshare.schemas.user import AuthResponse, LoginRequest, UserListResponse
from placeshare.services.file_service import file_service
from placeshare.services.user_service import user_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users", tags=["Users"])


@router.get(
    "",
    response_model=UserListResponse,
    responses={500: {"description": "Store unavailable", "model": ErrorResponse}},
    summary="List all users",
)
async def list_users(db: AsyncSession = Depends(get_db_session)) -> UserListResponse:
    users = await user_service.list_users(db=db)
    return UserListResponse(users=users)


@router.post(
    "/signup",
    status_code=201,
    response_model=AuthResponse,
    responses={
        422: {
            "description": "Invalid fields, bad image, or email already registered",
            "model": ErrorResponse,
        },
        500: {"description": "Store unavailable", "model": ErrorResponse},
    },
    summary="Create an account",
)
async def signup(
    name: str = Form(...),
    email: str = Form(...),
    password: str = Form(..., description="At least 6 characters"),
    image: UploadFile = File(..., description="Avatar (PNG, JPG or JPEG)"),
    db: AsyncSession = Depends(get_db_session),
) -> AuthResponse:
    """Store the avatar, then register the user. A failed signup removes the avatar."""
    content = await image.read()
    try:
        absolute_path, relative_path = await file_service.validate_and_store(
            filename=image.filename or "avatar.jpg",
            content=content,
            content_length=image.size,
        )
        try:
            return await user_service.signup(
                db=db,
                name=name,
                email=email,
                password=password,
                image_path=relative_path,
            )
        except Exception:
            await file_service.cleanup_file(absolute_path)
            raise
    finally:
        await image.close()


@router.post(
    "/login",
    response_model=AuthResponse,
    responses={
        401: {"description": "Invalid credentials", "model": ErrorResponse},
        500: {"description": "Store unavailable", "model": ErrorResponse},
    },
    summary="Log in with email and password",
)
async def login(
    body: LoginRequest,
    db: AsyncSession = Depends(get_db_session),
) -> AuthResponse:
    return await user_service.login(db=db, email=body.email, password=body.password)
