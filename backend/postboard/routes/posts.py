"""
Postboard Backend - Post Route Handlers
=======================================

What:  CRUD over posts. Every route requires an authenticated session.
How:   Query strings and bodies are parsed by dependencies (see
       postboard.dependencies); handlers call PostService and wrap the result
       in the response envelope.

Responses:
    GET    /api/posts        200 {"data": [...], "meta": {...}}
    GET    /api/posts/{id}   200 {"data": {...}}
    POST   /api/posts        201 {"message": ..., "data": {...}}
    PUT    /api/posts/{id}   200 {"message": ..., "data": {...}}
    DELETE /api/posts/{id}   200 {"message": ...}
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Path, status
from sqlalchemy.ext.asyncio import AsyncSession

from postboard.database import get_db_session
from postboard.dependencies import (
    PostPayload,
    get_current_user,
    get_post_service,
    list_posts_params,
    post_create_payload,
    post_update_payload,
)
from postboard.schemas.common import ErrorResponse, MessageResponse
from postboard.schemas.post import (
    ListPostsParams,
    PageMeta,
    PostCreate,
    PostEnvelope,
    PostListItem,
    PostListResponse,
    PostMessageEnvelope,
    PostResponse,
    PostUpdate,
)
from postboard.services.post_service import PostService

router = APIRouter(
    prefix="/api/posts",
    tags=["Posts"],
    dependencies=[Depends(get_current_user)],
    responses={401: {"description": "Not logged in", "model": ErrorResponse}},
)

NOT_FOUND = {404: {"description": "Post not found", "model": ErrorResponse}}
INVALID = {422: {"description": "Validation failed", "model": ErrorResponse}}

PostId = Annotated[int, Path(ge=1, description="Post ID")]


@router.get(
    "",
    response_model=PostListResponse,
    responses=INVALID,
    summary="List posts with filters and pagination",
    description=(
        "Filters: author (exact), search (title or subtitle, case-insensitive), "
        "tags[] (any of). Sort by created_at, title or author; camelCase aliases "
        "perPage, sortBy and sortDirection are accepted."
    ),
)
async def list_posts(
    params: ListPostsParams = Depends(list_posts_params),
    db: AsyncSession = Depends(get_db_session),
    service: PostService = Depends(get_post_service),
) -> PostListResponse:
    page = await service.list(db, params.to_filters())
    return PostListResponse(
        data=[PostListItem.model_validate(post) for post in page.items],
        meta=PageMeta(
            current_page=page.current_page,
            per_page=page.per_page,
            total=page.total,
            last_page=page.last_page,
            has_more_pages=page.has_more_pages,
        ),
    )


@router.get("/{post_id}", response_model=PostEnvelope, responses=NOT_FOUND, summary="Show a post")
async def show_post(
    post_id: PostId,
    db: AsyncSession = Depends(get_db_session),
    service: PostService = Depends(get_post_service),
) -> PostEnvelope:
    post = await service.find(db, post_id)
    return PostEnvelope(data=PostResponse.model_validate(post))


@router.post(
    "",
    response_model=PostMessageEnvelope,
    status_code=status.HTTP_201_CREATED,
    responses=INVALID,
    summary="Create a post",
)
async def create_post(
    payload: PostPayload[PostCreate] = Depends(post_create_payload),
    db: AsyncSession = Depends(get_db_session),
    service: PostService = Depends(get_post_service),
) -> PostMessageEnvelope:
    post = await service.create(db, payload.data, image=payload.image)
    return PostMessageEnvelope(
        message="Post created successfully.",
        data=PostResponse.model_validate(post),
    )


@router.put(
    "/{post_id}",
    response_model=PostMessageEnvelope,
    responses={**NOT_FOUND, **INVALID},
    summary="Update a post",
)
async def update_post(
    post_id: PostId,
    payload: PostPayload[PostUpdate] = Depends(post_update_payload),
    db: AsyncSession = Depends(get_db_session),
    service: PostService = Depends(get_post_service),
) -> PostMessageEnvelope:
    post = await service.update(db, post_id, payload.data, image=payload.image)
    return PostMessageEnvelope(
        message="Post updated successfully.",
        data=PostResponse.model_validate(post),
    )


@router.delete("/{post_id}", response_model=MessageResponse, responses=NOT_FOUND, summary="Delete a post")
async def delete_post(
    post_id: PostId,
    db: AsyncSession = Depends(get_db_session),
    service: PostService = Depends(get_post_service),
) -> MessageResponse:
    await service.delete(db, post_id)
    return MessageResponse(message="Post deleted successfully.")
