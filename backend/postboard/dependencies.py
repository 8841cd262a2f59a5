"""
Postboard Backend - Route Dependencies
======================================

What:  FastAPI dependencies shared by the route modules.
How:   Everything a handler needs (current user, services, parsed payloads) is
       injected with Depends(), so tests can swap any piece through
       app.dependency_overrides.

Post payloads:
    POST/PUT /api/posts accept either JSON or a form (multipart or urlencoded).
    In forms, tags come from repeated `tags[]` (or `tags`) fields and the image
    from the `image` file field. Payload errors become a RequestValidationError
    and share the 422 body of every other validation failure.
"""

import json
from dataclasses import dataclass
from typing import Any, Dict, Generic, Optional, Tuple, Type, TypeVar

from fastapi import Depends, Request
from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.datastructures import UploadFile

from postboard.database import get_db_session
from postboard.exceptions import AuthenticationError, ValidationError
from postboard.models.user import User
from postboard.schemas.post import ListPostsParams, PostCreate, PostUpdate
from postboard.services.auth_service import auth_service
from postboard.services.post_service import PostService
from postboard.services.storage import ImageStorage, ImageUpload, image_storage

SchemaT = TypeVar("SchemaT", bound=BaseModel)

FORM_CONTENT_TYPES = ("multipart/form-data", "application/x-www-form-urlencoded")
TAG_FIELDS = ("tags[]", "tags")
IMAGE_FIELD = "image"


# ── Authentication ────────────────────────────────────────────────────────

async def get_current_user(
    request: Request,
    db: AsyncSession = Depends(get_db_session),
) -> User:
    """The session's user; raises AuthenticationError (401) when there is none."""
    user = await auth_service.current_user(db, request.session)
    if user is None:
        raise AuthenticationError()
    return user


# ── Services ──────────────────────────────────────────────────────────────

def get_image_storage() -> ImageStorage:
    return image_storage


def get_post_service(storage: ImageStorage = Depends(get_image_storage)) -> PostService:
    return PostService(storage=storage)


# ── Payload Parsing ───────────────────────────────────────────────────────

@dataclass
class PostPayload(Generic[SchemaT]):
    """A validated post body plus the uploaded image, if one was sent."""

    data: SchemaT
    image: Optional[ImageUpload] = None


def _validate(schema: Type[SchemaT], raw: Dict[str, Any], location: str) -> SchemaT:
    try:
        return schema.model_validate(raw)
    except PydanticValidationError as e:
        raise RequestValidationError(
            [
                {**error, "loc": (location, *error["loc"])}
                for error in e.errors(include_url=False, include_context=False)
            ]
        ) from e


async def _read_image(value: Any) -> Optional[ImageUpload]:
    if isinstance(value, UploadFile):
        if not value.filename:
            return None
        content = await value.read()
        return ImageUpload(filename=value.filename, content=content, content_type=value.content_type)
    if value in (None, ""):
        return None
    raise ValidationError(message="The image must be an image.", field=IMAGE_FIELD)


async def read_post_body(request: Request) -> Tuple[Dict[str, Any], Optional[ImageUpload]]:
    """Raw field dict and optional image from a JSON or form request body."""
    content_type = request.headers.get("content-type", "").lower()

    if content_type.startswith(FORM_CONTENT_TYPES):
        form = await request.form()
        raw: Dict[str, Any] = {
            key: form.get(key)
            for key in form.keys()
            if key not in TAG_FIELDS and key != IMAGE_FIELD
        }
        for field in TAG_FIELDS:
            values = form.getlist(field)
            if values:
                raw["tags"] = [v for v in values if isinstance(v, str)]
                break
        return raw, await _read_image(form.get(IMAGE_FIELD))

    body = await request.body()
    if not body.strip():
        return {}, None
    try:
        raw = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise RequestValidationError(
            [{"type": "json_invalid", "loc": ("body",), "msg": "Invalid JSON body", "input": None}]
        ) from e
    if not isinstance(raw, dict):
        raise RequestValidationError(
            [{"type": "dict_type", "loc": ("body",), "msg": "Body must be a JSON object", "input": None}]
        )
    return raw, None


async def post_create_payload(request: Request) -> PostPayload[PostCreate]:
    raw, image = await read_post_body(request)
    return PostPayload(data=_validate(PostCreate, raw, "body"), image=image)


async def post_update_payload(request: Request) -> PostPayload[PostUpdate]:
    raw, image = await read_post_body(request)
    return PostPayload(data=_validate(PostUpdate, raw, "body"), image=image)


def list_posts_params(request: Request) -> ListPostsParams:
    """
    Query string → ListPostsParams.

    Repeated `tags[]=a&tags[]=b` (or `tags=a&tags=b`) become a list; a single
    comma-separated `tags=a,b` is split.
    """
    query = request.query_params
    raw: Dict[str, Any] = {key: query.get(key) for key in query.keys() if key not in TAG_FIELDS}

    for field in TAG_FIELDS:
        values = query.getlist(field)
        if values:
            if len(values) == 1 and "," in values[0]:
                values = values[0].split(",")
            raw["tags"] = values
            break

    return _validate(ListPostsParams, raw, "query")
