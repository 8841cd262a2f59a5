"""
Postboard Backend - Stored Image Route
======================================

What:  GET /api/files/{path} serves an image written by ImageStorage
       (prefix configurable through STORAGE_URL_PREFIX).
How:   The path is resolved against the storage root; anything that escapes the
       root, or does not exist, is a 404.

Stored files never change (every upload gets a fresh name), so responses are
cacheable for a long time.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse

from postboard.config import settings
from postboard.dependencies import get_image_storage
from postboard.exceptions import NotFoundError
from postboard.schemas.common import ErrorResponse
from postboard.services.storage import ImageStorage

router = APIRouter(prefix=settings.storage_url_prefix, tags=["Files"])


@router.get(
    "/{file_path:path}",
    response_class=FileResponse,
    responses={404: {"description": "File not found", "model": ErrorResponse}},
    summary="Download a stored image",
)
async def get_file(
    file_path: str,
    storage: ImageStorage = Depends(get_image_storage),
) -> FileResponse:
    try:
        absolute_path = storage.resolve(file_path)
    except ValueError:
        raise NotFoundError(resource="file", resource_id=file_path) from None

    if not absolute_path.is_file():
        raise NotFoundError(resource="file", resource_id=file_path)

    return FileResponse(
        absolute_path,
        headers={"Cache-Control": "public, max-age=31536000, immutable"},
    )
