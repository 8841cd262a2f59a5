"""
Postboard Backend - Post Repository
===================================

What:  Builds and executes every query against `posts` and `post_tag`.
Who:   Called by PostService; never by routes.

Query Composition (build_post_query):
    Predicates are appended in a fixed order so the generated SQL is predictable:

        1. deleted_at IS NULL                       (always)
        2. author = :author                         (when author given)
        3. title ILIKE %s% OR subtitle ILIKE %s%    (when search given)
        4. EXISTS (post_tag ⋈ tags WHERE name IN)   (when tags given, OR semantics)
        5. ORDER BY <sort> <direction>, id <direction>

    Then paginate() counts the filtered set and fetches one page, eager-loading
    each post's tags with a single extra SELECT ... IN query.

Tag Associations:
    Post.tags is read-only on the ORM side. sync_tags() and detach_tags() write
    the association table directly, and callers re-read the post with
    find_by_id() to see the result.
"""

import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, Generic, Iterable, List, Mapping, Optional, Sequence, TypeVar

from sqlalchemy import Select, asc, delete, desc, func, insert, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from postboard.models.post import Post, post_tag, utcnow
from postboard.models.tag import Tag

logger = logging.getLogger(__name__)

T = TypeVar("T")

SORTABLE_COLUMNS = {
    "created_at": Post.created_at,
    "title": Post.title,
    "author": Post.author,
}

# Columns a caller may change through update(); `tags` and `remove_image`
# are handled by the service, never assigned to the entity.
UPDATABLE_FIELDS = frozenset({"title", "subtitle", "content", "author", "image"})


@dataclass(frozen=True)
class PostFilters:
    """Validated listing filters. Optional fields that are None add no predicate."""

    author: Optional[str] = None
    search: Optional[str] = None
    tags: Optional[Sequence[str]] = None
    sort: str = "created_at"
    direction: str = "desc"
    page: int = 1
    per_page: int = 10


@dataclass
class Page(Generic[T]):
    """
    One page of a length-aware listing.

    last_page is ceil(total / per_page) and has_more_pages is
    current_page < last_page, so an empty result has last_page 0.
    """

    items: List[T]
    current_page: int
    per_page: int
    total: int

    @property
    def last_page(self) -> int:
        return math.ceil(self.total / self.per_page)

    @property
    def has_more_pages(self) -> bool:
        return self.current_page < self.last_page


def build_post_query(filters: PostFilters) -> Select:
    """
    Translate a filter set into a SELECT over visible posts.

    Raises:
        ValueError: unknown sort field or direction (the schema layer rejects
                    these first, so this only guards internal callers)
    """
    query = select(Post).where(Post.deleted_at.is_(None))

    if filters.author:
        query = query.where(Post.author == filters.author)

    if filters.search:
        # autoescape: a literal "%" or "_" typed by the user matches itself
        query = query.where(
            or_(
                Post.title.icontains(filters.search, autoescape=True),
                Post.subtitle.icontains(filters.search, autoescape=True),
            )
        )

    if filters.tags:
        query = query.where(Post.tags.any(Tag.name.in_(list(filters.tags))))

    column = SORTABLE_COLUMNS.get(filters.sort)
    if column is None:
        raise ValueError(f"Unsupported sort field '{filters.sort}'")
    if filters.direction not in ("asc", "desc"):
        raise ValueError(f"Unsupported sort direction '{filters.direction}'")
    order = asc if filters.direction == "asc" else desc

    # id breaks ties so equal sort keys still page deterministically
    return query.order_by(order(column), order(Post.id))


class PostRepository:
    """Stateless data access for posts; one shared instance is enough."""

    async def paginate(self, db: AsyncSession, filters: PostFilters) -> Page[Post]:
        query = build_post_query(filters)

        count_query = select(func.count()).select_from(query.order_by(None).subquery())
        total = (await db.execute(count_query)).scalar_one()

        offset = (filters.page - 1) * filters.per_page
        result = await db.execute(
            query.options(selectinload(Post.tags))
            .offset(offset)
            .limit(filters.per_page)
            .execution_options(populate_existing=True)
        )
        items = list(result.scalars().all())

        logger.debug(
            "Paginated posts: page=%d per_page=%d total=%d returned=%d",
            filters.page, filters.per_page, total, len(items),
        )
        return Page(items=items, current_page=filters.page, per_page=filters.per_page, total=total)

    async def find_by_id(self, db: AsyncSession, post_id: int) -> Optional[Post]:
        """Visible post with its tags loaded, or None (missing or soft-deleted)."""
        result = await db.execute(
            select(Post)
            .options(selectinload(Post.tags))
            .where(Post.id == post_id, Post.deleted_at.is_(None))
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def create(self, db: AsyncSession, data: Mapping[str, Any]) -> Post:
        post = Post(**self._columns(data))
        db.add(post)
        await db.flush()  # assigns the id without committing
        return post

    async def update(self, db: AsyncSession, post: Post, data: Mapping[str, Any]) -> Post:
        for field, value in self._columns(data).items():
            setattr(post, field, value)
        await db.flush()
        return post

    async def soft_delete(self, db: AsyncSession, post: Post) -> None:
        post.deleted_at = utcnow()
        await db.flush()

    async def sync_tags(self, db: AsyncSession, post: Post, tag_ids: Iterable[int]) -> None:
        """
        Make the post's association rows exactly `tag_ids`.

        Rows not listed are deleted, missing rows are inserted, rows already
        present are left alone.
        """
        wanted = list(dict.fromkeys(tag_ids))
        result = await db.execute(
            select(post_tag.c.tag_id).where(post_tag.c.post_id == post.id)
        )
        current = set(result.scalars().all())

        stale = current.difference(wanted)
        missing = [tag_id for tag_id in wanted if tag_id not in current]

        if stale:
            await db.execute(
                delete(post_tag).where(
                    post_tag.c.post_id == post.id,
                    post_tag.c.tag_id.in_(stale),
                )
            )
        if missing:
            await db.execute(
                insert(post_tag),
                [{"post_id": post.id, "tag_id": tag_id} for tag_id in missing],
            )

        logger.debug(
            "Synced tags for post %s: +%d -%d", post.id, len(missing), len(stale)
        )

    async def detach_tags(self, db: AsyncSession, post: Post) -> int:
        """Remove every association row of the post; returns how many went."""
        result = await db.execute(delete(post_tag).where(post_tag.c.post_id == post.id))
        return result.rowcount or 0

    @staticmethod
    def _columns(data: Mapping[str, Any]) -> Dict[str, Any]:
        unknown = set(data).difference(UPDATABLE_FIELDS)
        if unknown:
            raise ValueError(f"Unknown post fields: {sorted(unknown)}")
        return dict(data)


post_repository = PostRepository()
