"""
Postboard Backend - Post Request/Response Schemas
=================================================

What:  Pydantic models defining the post API contract.
How:   Input DTOs validate create/update payloads and list filters; output
       projections decide exactly which post fields reach the client.

Projections:
    PostResponse  (detail): id, title, subtitle, content, image, author, tags,
                            createdAt, updatedAt
    PostListItem  (list):   id, title, image, author, tags, updatedAt

Query aliases:
    perPage → per_page, sortBy → sort, sortDirection → direction.
    sort/direction values are snake-cased first, so sortBy=createdAt works.
"""

import re
from datetime import datetime
from typing import Any, List, Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from postboard.repositories.post_repository import PostFilters
from postboard.services.tags import normalize_tag, normalize_tags

MAX_TAG_LENGTH = 50

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])([A-Z])")


def to_snake(value: str) -> str:
    """createdAt → created_at; DESC → desc."""
    return _CAMEL_BOUNDARY.sub(r"_\1", value.strip()).lower()


def _pluck_tag_names(value: Any) -> Any:
    # ORM collections hold Tag rows; the API exposes their names only.
    if isinstance(value, (list, tuple)):
        return [getattr(tag, "name", tag) for tag in value]
    return value


def _check_tag_items(tags: List[str]) -> List[str]:
    for tag in tags:
        if not tag.strip():
            raise ValueError("tags must not contain blank values")
        if len(normalize_tag(tag)) > MAX_TAG_LENGTH:
            raise ValueError(f"each tag may not be greater than {MAX_TAG_LENGTH} characters")
    return tags


# ══════════════════════════════════════════════════════════════════════════
# Input DTOs
# ══════════════════════════════════════════════════════════════════════════


class ListPostsParams(BaseModel):
    """
    Validated query parameters for GET /api/posts.

    Parameters:
        page / per_page: 1-based page number, page size 1-100 (default 10)
        search: case-insensitive substring of title OR subtitle
        author: exact author match
        tags: normalized tag names; a post matches if it has ANY of them
        sort / direction: created_at|title|author, asc|desc (default created_at desc)
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    page: int = Field(default=1, ge=1)
    per_page: int = Field(
        default=10, ge=1, le=100, validation_alias=AliasChoices("per_page", "perPage")
    )
    search: Optional[str] = Field(default=None, max_length=255)
    author: Optional[str] = Field(default=None, max_length=255)
    tags: Optional[List[str]] = None
    sort: Literal["created_at", "title", "author"] = Field(
        default="created_at", validation_alias=AliasChoices("sort", "sortBy")
    )
    direction: Literal["asc", "desc"] = Field(
        default="desc", validation_alias=AliasChoices("direction", "sortDirection")
    )

    @field_validator("search", "author", mode="before")
    @classmethod
    def blank_to_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("sort", "direction", mode="before")
    @classmethod
    def snake_case_value(cls, v: Any) -> Any:
        return to_snake(v) if isinstance(v, str) else v

    @field_validator("tags")
    @classmethod
    def normalize_tag_filter(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        if v is None:
            return None
        for tag in v:
            if len(normalize_tag(tag)) > MAX_TAG_LENGTH:
                raise ValueError(f"each tag may not be greater than {MAX_TAG_LENGTH} characters")
        normalized = [tag for tag in normalize_tags(v) if tag]
        return normalized or None

    def to_filters(self) -> PostFilters:
        return PostFilters(
            author=self.author,
            search=self.search,
            tags=self.tags,
            sort=self.sort,
            direction=self.direction,
            page=self.page,
            per_page=self.per_page,
        )


class PostCreate(BaseModel):
    """Payload for POST /api/posts (the image travels separately as a file)."""

    model_config = ConfigDict(extra="ignore")

    title: str = Field(min_length=1, max_length=255)
    subtitle: Optional[str] = Field(default=None, max_length=255)
    content: str = Field(min_length=1)
    author: str = Field(min_length=1, max_length=255)
    tags: List[str] = Field(min_length=1)

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v: List[str]) -> List[str]:
        return _check_tag_items(v)


class PostUpdate(BaseModel):
    """
    Partial payload for PUT /api/posts/{id}.

    Only fields the client actually sent are applied (model_dump(exclude_unset=True)).
    `remove_image` is a command, not a column: it never reaches the entity.
    """

    model_config = ConfigDict(extra="ignore")

    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    subtitle: Optional[str] = Field(default=None, max_length=255)
    content: Optional[str] = Field(default=None, min_length=1)
    author: Optional[str] = Field(default=None, min_length=1, max_length=255)
    tags: Optional[List[str]] = Field(default=None, min_length=1)
    remove_image: bool = False

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        return None if v is None else _check_tag_items(v)

    @field_validator("title", "content", "author")
    @classmethod
    def required_when_sent(cls, v: Optional[str]) -> Optional[str]:
        # These columns are NOT NULL: they may be omitted, but never nulled.
        if v is None:
            raise ValueError("may not be null")
        return v


# ══════════════════════════════════════════════════════════════════════════
# Output projections
# ══════════════════════════════════════════════════════════════════════════


class PostResponse(BaseModel):
    """Detail projection returned by show/create/update."""

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: int
    title: str
    subtitle: Optional[str] = None
    content: str
    image: Optional[str] = None
    author: str
    tags: List[str] = Field(default_factory=list)
    created_at: Optional[datetime] = Field(default=None, serialization_alias="createdAt")
    updated_at: Optional[datetime] = Field(default=None, serialization_alias="updatedAt")

    @field_validator("tags", mode="before")
    @classmethod
    def pluck_tag_names(cls, v: Any) -> Any:
        return _pluck_tag_names(v)


class PostListItem(BaseModel):
    """Compact projection used by the listing."""

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: int
    title: str
    image: Optional[str] = None
    author: str
    tags: List[str] = Field(default_factory=list)
    updated_at: Optional[datetime] = Field(default=None, serialization_alias="updatedAt")

    @field_validator("tags", mode="before")
    @classmethod
    def pluck_tag_names(cls, v: Any) -> Any:
        return _pluck_tag_names(v)


class PageMeta(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    current_page: int = Field(serialization_alias="currentPage")
    per_page: int = Field(serialization_alias="perPage")
    total: int
    last_page: int = Field(serialization_alias="lastPage")
    has_more_pages: bool = Field(serialization_alias="hasMorePages")


class PostListResponse(BaseModel):
    """Body of GET /api/posts: {"data": [...], "meta": {...}}."""
    data: List[PostListItem]
    meta: PageMeta


class PostEnvelope(BaseModel):
    """Body of GET /api/posts/{id}."""
    data: PostResponse


class PostMessageEnvelope(BaseModel):
    """Body of create/update responses: {"message": ..., "data": {...}}."""
    message: str
    data: PostResponse
