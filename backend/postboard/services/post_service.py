"""
Postboard Backend - Post Service (Business Logic Orchestrator)
==============================================================

What:  Listing, lookup and the create/update/delete units of work for posts.
How:   Composes the post and tag repositories with ImageStorage. Every write goes
       through the request's session and is only flushed; the session dependency
       commits when the request succeeds and rolls everything back otherwise.
Who:   Called by the post routes.

Create Flow (POST /api/posts):
    ┌─────────────┐    ┌──────────────┐    ┌─────────────┐    ┌──────────────┐
    │ normalize   │───▶│ store image  │───▶│ insert post │───▶│ get-or-create│
    │ tags        │    │ (optional)   │    │             │    │ tags + sync  │
    └─────────────┘    └──────────────┘    └─────────────┘    └──────────────┘

Update Order (PUT /api/posts/{id}):
    1. tags, when sent: full replacement of the association set
    2. remove_image with an existing image: delete blob, image = NULL
       otherwise a new image: delete old blob, store new one
    3. remaining scalar fields that were sent

Blob Consistency:
    Images live outside the database transaction. When an operation fails after
    a new image was written, that image is removed (best effort) before the error
    propagates. Deleting an old image cannot be undone if the transaction later
    rolls back.
"""

import logging
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from postboard.exceptions import DatabaseError, NotFoundError
from postboard.models.post import Post
from postboard.repositories.post_repository import Page, PostFilters, PostRepository, post_repository
from postboard.repositories.tag_repository import TagRepository, tag_repository
from postboard.schemas.post import PostCreate, PostUpdate
from postboard.services.storage import ImageStorage, ImageUpload, image_storage
from postboard.services.tags import normalize_tags

logger = logging.getLogger(__name__)


class PostService:
    """
    Business logic layer for posts.

    Error Handling Strategy:
        Missing or soft-deleted posts raise NotFoundError before anything is
        written. SQLAlchemy failures are logged and re-raised as DatabaseError so
        SQL never reaches the client. Application exceptions propagate as-is.
    """

    def __init__(
        self,
        storage: Optional[ImageStorage] = None,
        posts: Optional[PostRepository] = None,
        tags: Optional[TagRepository] = None,
    ):
        self.storage = storage or image_storage
        self.posts = posts or post_repository
        self.tags = tags or tag_repository

    async def list(self, db: AsyncSession, filters: PostFilters) -> Page[Post]:
        try:
            return await self.posts.paginate(db, filters)
        except SQLAlchemyError as e:
            logger.error("Database error listing posts: %s", e, exc_info=True)
            raise DatabaseError(
                message="Could not retrieve posts. Please try again.",
                context={"error_type": type(e).__name__},
            ) from e

    async def find(self, db: AsyncSession, post_id: int) -> Post:
        """
        Load a visible post with its tags.

        Raises:
            NotFoundError: no such post, or it was soft-deleted (→ 404)
        """
        post = await self.posts.find_by_id(db, post_id)
        if post is None:
            raise NotFoundError(resource="post", resource_id=str(post_id))
        return post

    async def create(
        self,
        db: AsyncSession,
        data: PostCreate,
        image: Optional[ImageUpload] = None,
    ) -> Post:
        """
        Create a post with its tags and optional image.

        Tags are normalized first, so `[" PHP ", "php", "Laravel"]` attaches
        exactly "php" and "laravel".

        Raises:
            ValidationError:  the image was rejected
            FileStorageError: the image could not be written
            DatabaseError:    a database statement failed
        """
        tag_names = normalize_tags(data.tags)
        values = data.model_dump(exclude={"tags"})
        stored_path: Optional[str] = None

        try:
            if image is not None:
                stored_path = await self.storage.store(image)
                values["image"] = stored_path

            post = await self.posts.create(db, values)
            await self._replace_tags(db, post, tag_names)
            created = await self.find(db, post.id)
        except Exception as e:
            if stored_path:
                await self.storage.cleanup(stored_path)
            if isinstance(e, SQLAlchemyError):
                raise self._database_error(e, "creating post") from e
            raise

        logger.info("Post %s created (tags=%s, image=%s)", created.id, tag_names, bool(stored_path))
        return created

    async def update(
        self,
        db: AsyncSession,
        post_id: int,
        data: PostUpdate,
        image: Optional[ImageUpload] = None,
    ) -> Post:
        """
        Apply a partial update; only fields the client sent are touched.

        `remove_image` wins over a new upload when the post has an image. When
        the post has none, an upload sent alongside `remove_image` is stored.

        Raises:
            NotFoundError: no visible post with this id (nothing is changed)
        """
        post = await self.find(db, post_id)

        changes = data.model_dump(exclude_unset=True)
        tag_names = changes.pop("tags", None)
        remove_image = changes.pop("remove_image", False)
        stored_path: Optional[str] = None

        try:
            if tag_names is not None:
                await self._replace_tags(db, post, normalize_tags(tag_names))

            if remove_image and post.image:
                await self.storage.delete(post.image)
                changes["image"] = None
            elif image is not None:
                if post.image:
                    await self.storage.delete(post.image)
                stored_path = await self.storage.store(image)
                changes["image"] = stored_path

            await self.posts.update(db, post, changes)
            updated = await self.find(db, post.id)
        except Exception as e:
            if stored_path:
                await self.storage.cleanup(stored_path)
            if isinstance(e, SQLAlchemyError):
                raise self._database_error(e, "updating post") from e
            raise

        logger.info("Post %s updated (fields=%s)", post_id, sorted(changes))
        return updated

    async def delete(self, db: AsyncSession, post_id: int) -> None:
        """
        Soft-delete a post: its image is deleted, its tag associations are
        detached and the row keeps a deleted_at timestamp.
        """
        post = await self.find(db, post_id)

        try:
            if post.image:
                await self.storage.delete(post.image)
            detached = await self.posts.detach_tags(db, post)
            await self.posts.soft_delete(db, post)
        except SQLAlchemyError as e:
            raise self._database_error(e, "deleting post") from e

        logger.info("Post %s deleted (%d tag links removed)", post_id, detached)

    async def _replace_tags(self, db: AsyncSession, post: Post, names: List[str]) -> None:
        tags = await self.tags.get_or_create_many(db, names)
        await self.posts.sync_tags(db, post, [tag.id for tag in tags])

    @staticmethod
    def _database_error(error: SQLAlchemyError, action: str) -> DatabaseError:
        logger.error("Database error while %s: %s", action, error, exc_info=True)
        return DatabaseError(context={"action": action, "error_type": type(error).__name__})
