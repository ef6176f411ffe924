"""
PlaceShare Backend: Uploaded File Route
=========================================

What:  GET /uploads/{file_path} serves stored place photos and avatars.
How:   The path is resolved inside the storage root by FileService, so
       `../` segments cannot escape it.
"""

import mimetypes

from fastapi import APIRouter
from fastapi.responses import FileResponse

from placeshare.exceptions import NotFoundError
from placeshare.schemas.common import ErrorResponse
from placeshare.services.file_service import file_service

router = APIRouter(tags=["Files"])


@router.get(
    "/uploads/{file_path:path}",
    summary="Serve an uploaded image",
    responses={
        200: {"description": "Image file"},
        404: {"description": "File not found", "model": ErrorResponse},
        422: {"description": "Path outside the storage root", "model": ErrorResponse},
    },
)
async def serve_file(file_path: str) -> FileResponse:
    full_path = file_service.resolve(file_path)

    if not full_path.is_file():
        raise NotFoundError(resource="file", resource_id=file_path)

    media_type, _ = mimetypes.guess_type(full_path.name)
    return FileResponse(
        path=str(full_path),
        media_type=media_type or "application/octet-stream",
        # Stored names are random UUIDs and never overwritten
        headers={"Cache-Control": "public, max-age=86400"},
    )
