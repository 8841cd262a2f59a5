"""
Postboard Backend - Post Service Tests
======================================

What:  Tests for the PostService units of work.
How:   Real SQLite session and real ImageStorage on tmp_path. Failure paths
       swap a collaborator for a mock.

What we test:
    ✅ Create with normalized tags and an optional image
    ✅ Partial update, tag replacement, image replace/remove precedence
    ✅ Soft delete removes the blob and detaches tags
    ✅ NotFoundError for missing and deleted posts
    ✅ A stored image is cleaned up when the operation fails afterwards
"""

from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from postboard.exceptions import DatabaseError, FileStorageError, NotFoundError, ValidationError
from postboard.models.post import Post, post_tag
from postboard.repositories.post_repository import PostFilters
from postboard.schemas.post import PostCreate, PostUpdate
from postboard.services.post_service import PostService
from postboard.services.storage import ImageUpload


def _create_payload(**overrides) -> PostCreate:
    values = {
        "title": "Hello",
        "subtitle": "A first post",
        "content": "Body",
        "author": "Ada",
        "tags": [" PHP ", "php", "Laravel"],
    }
    values.update(overrides)
    return PostCreate.model_validate(values)


def _stored_files(storage):
    directory = storage.storage_root / "posts"
    return sorted(p.name for p in directory.iterdir()) if directory.exists() else []


class TestCreate:

    def setup_method(self):
        self.payload = _create_payload()

    @pytest.mark.asyncio
    async def test_create_normalizes_tags(self, db_session, storage):
        service = PostService(storage=storage)

        post = await service.create(db_session, self.payload)

        assert post.id is not None
        assert [tag.name for tag in post.tags] == ["php", "laravel"]
        assert post.image is None

    @pytest.mark.asyncio
    async def test_create_with_image(self, db_session, storage, upload):
        service = PostService(storage=storage)

        post = await service.create(db_session, self.payload, image=upload("cover.png"))

        assert post.image.startswith("posts/")
        assert (storage.storage_root / post.image).is_file()

    @pytest.mark.asyncio
    async def test_invalid_image_creates_nothing(self, db_session, storage):
        service = PostService(storage=storage)
        bogus = ImageUpload(filename="cover.png", content=b"plain text")

        with pytest.raises(ValidationError):
            await service.create(db_session, self.payload, image=bogus)

        assert await db_session.scalar(select(func.count()).select_from(Post)) == 0

    @pytest.mark.asyncio
    async def test_image_is_cleaned_up_when_database_fails(self, db_session, storage, upload):
        service = PostService(storage=storage)
        service.posts = AsyncMock(wraps=service.posts)
        service.posts.create.side_effect = OperationalError("INSERT", {}, Exception("db down"))

        with pytest.raises(DatabaseError):
            await service.create(db_session, self.payload, image=upload())

        assert _stored_files(storage) == []

    @pytest.mark.asyncio
    async def test_storage_failure_propagates(self, db_session, storage, upload):
        service = PostService(storage=storage)

        with patch.object(storage, "store", AsyncMock(side_effect=FileStorageError())):
            with pytest.raises(FileStorageError):
                await service.create(db_session, self.payload, image=upload())


class TestFindAndList:

    @pytest.mark.asyncio
    async def test_find_missing(self, db_session, storage):
        with pytest.raises(NotFoundError) as exc_info:
            await PostService(storage=storage).find(db_session, 999)
        assert exc_info.value.resource == "post"

    @pytest.mark.asyncio
    async def test_find_deleted(self, make_post, db_session, storage):
        post = await make_post(deleted=True)
        with pytest.raises(NotFoundError):
            await PostService(storage=storage).find(db_session, post.id)

    @pytest.mark.asyncio
    async def test_list_wraps_database_errors(self, db_session, storage):
        service = PostService(storage=storage)
        service.posts = AsyncMock()
        service.posts.paginate.side_effect = OperationalError("SELECT", {}, Exception("db down"))

        with pytest.raises(DatabaseError):
            await service.list(db_session, PostFilters())


class TestUpdate:

    @pytest.mark.asyncio
    async def test_partial_update_keeps_other_fields(self, make_post, db_session, storage):
        post = await make_post(title="Old", subtitle="Sub", tags=["php"])
        service = PostService(storage=storage)

        updated = await service.update(db_session, post.id, PostUpdate.model_validate({"title": "New"}))

        assert updated.title == "New"
        assert updated.subtitle == "Sub"
        assert [tag.name for tag in updated.tags] == ["php"]

    @pytest.mark.asyncio
    async def test_tags_are_replaced(self, make_post, db_session, storage):
        post = await make_post(tags=["php", "go"])
        service = PostService(storage=storage)

        updated = await service.update(
            db_session, post.id, PostUpdate.model_validate({"tags": ["Rust", "GO"]})
        )

        assert sorted(tag.name for tag in updated.tags) == ["go", "rust"]

    @pytest.mark.asyncio
    async def test_new_image_replaces_old(self, make_post, db_session, storage, upload):
        old_path = await storage.store(upload("old.png"))
        post = await make_post(image=old_path)
        service = PostService(storage=storage)

        updated = await service.update(
            db_session, post.id, PostUpdate(), image=upload("new.gif", "GIF")
        )

        assert updated.image != old_path
        assert updated.image.endswith(".gif")
        assert not (storage.storage_root / old_path).exists()
        assert (storage.storage_root / updated.image).is_file()

    @pytest.mark.asyncio
    async def test_remove_image_wins_over_upload(self, make_post, db_session, storage, upload):
        old_path = await storage.store(upload())
        post = await make_post(image=old_path)
        service = PostService(storage=storage)

        updated = await service.update(
            db_session, post.id, PostUpdate(remove_image=True), image=upload("new.png")
        )

        assert updated.image is None
        assert _stored_files(storage) == []

    @pytest.mark.asyncio
    async def test_remove_image_without_image_stores_upload(self, make_post, db_session, storage, upload):
        post = await make_post()
        service = PostService(storage=storage)

        updated = await service.update(
            db_session, post.id, PostUpdate(remove_image=True), image=upload()
        )

        assert updated.image is not None

    @pytest.mark.asyncio
    async def test_update_missing_post(self, db_session, storage):
        with pytest.raises(NotFoundError):
            await PostService(storage=storage).update(db_session, 42, PostUpdate(title="x"))

    @pytest.mark.asyncio
    async def test_new_image_removed_when_update_fails(self, make_post, db_session, storage, upload):
        post = await make_post()
        service = PostService(storage=storage)
        service.posts = AsyncMock(wraps=service.posts)
        service.posts.update.side_effect = OperationalError("UPDATE", {}, Exception("db down"))

        with pytest.raises(DatabaseError):
            await service.update(db_session, post.id, PostUpdate(), image=upload())

        assert _stored_files(storage) == []


class TestDelete:

    @pytest.mark.asyncio
    async def test_soft_delete(self, make_post, db_session, storage, upload):
        image_path = await storage.store(upload())
        post = await make_post(image=image_path, tags=["php", "go"])
        service = PostService(storage=storage)

        await service.delete(db_session, post.id)

        row = await db_session.get(Post, post.id)
        links = await db_session.scalar(
            select(func.count()).select_from(post_tag).where(post_tag.c.post_id == post.id)
        )
        assert row is not None and row.deleted_at is not None
        assert links == 0
        assert not (storage.storage_root / image_path).exists()

    @pytest.mark.asyncio
    async def test_delete_twice(self, make_post, db_session, storage):
        post = await make_post()
        service = PostService(storage=storage)

        await service.delete(db_session, post.id)
        with pytest.raises(NotFoundError):
            await service.delete(db_session, post.id)
