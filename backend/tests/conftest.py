"""
Postboard Backend - Test Configuration (conftest.py)
====================================================

What:  Shared pytest fixtures for the whole suite.
How:   Every test gets a fresh in-memory SQLite database (aiosqlite, one shared
       connection through StaticPool) built from Base.metadata, and a temporary
       image storage directory. HTTP tests drive a fresh app via httpx.

Fixture Hierarchy:
    engine → session_factory → db_session          (service/repository tests)
                             → app → client        (HTTP tests)
                                     → auth_client (logged-in session cookie)
    storage                                        (ImageStorage on tmp_path)
    make_post / make_user                          (row factories)
"""

import io
import os
import tempfile
from datetime import date, datetime, timedelta, timezone
from typing import AsyncGenerator, Iterable, Optional

# Must happen before any postboard import: settings are read at import time.
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["STORAGE_ROOT"] = tempfile.mkdtemp(prefix="postboard_test_")
os.environ["SESSION_SECRET_KEY"] = "test-session-secret-not-real"
os.environ["LOG_LEVEL"] = "WARNING"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from PIL import Image
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from postboard.database import Base, get_db_session
from postboard.dependencies import get_image_storage
from postboard.models.post import Post
from postboard.models.tag import Tag  # noqa: F401
from postboard.models.user import User
from postboard.repositories.post_repository import post_repository
from postboard.repositories.tag_repository import tag_repository
from postboard.security import hash_password
from postboard.services.storage import ImageStorage, ImageUpload

TEST_PASSWORD = "secret-password"


def make_image_bytes(fmt: str = "PNG", size=(4, 4)) -> bytes:
    """A real (tiny) image encoded by Pillow."""
    buffer = io.BytesIO()
    Image.new("RGB", size, color=(200, 30, 30)).save(buffer, format=fmt)
    return buffer.getvalue()


def make_upload(filename: str = "photo.png", fmt: str = "PNG") -> ImageUpload:
    return ImageUpload(filename=filename, content=make_image_bytes(fmt), content_type="image/png")


# ══════════════════════════════════════════════════════════════════════════
# Database
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, _record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


# ══════════════════════════════════════════════════════════════════════════
# Storage
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def storage(tmp_path) -> ImageStorage:
    return ImageStorage(storage_root=str(tmp_path / "storage"))


@pytest.fixture
def png_bytes() -> bytes:
    return make_image_bytes("PNG")


@pytest.fixture
def image_bytes():
    """Factory: image_bytes("GIF") encodes a tiny image in that format."""
    return make_image_bytes


@pytest.fixture
def upload():
    """Factory: upload("a.jpg", "JPEG") builds an ImageUpload with real content."""
    return make_upload


# ══════════════════════════════════════════════════════════════════════════
# Row Factories
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def make_user(session_factory):
    """Insert a user with TEST_PASSWORD and commit; returns the User."""

    async def _make_user(email: str = "ada@example.com", name: str = "Ada Lovelace") -> User:
        async with session_factory() as session:
            user = User(
                name=name,
                age=36,
                birth_date=date(1815, 12, 10),
                phone="+44 20 0000 0000",
                email=email,
                password=hash_password(TEST_PASSWORD),
            )
            session.add(user)
            await session.commit()
            return user

    return _make_user


@pytest.fixture
def make_post(session_factory):
    """
    Insert a post (optionally with tags and a fixed created_at) and commit.

    Goes straight to the ORM so tests can control timestamps.
    """
    counter = {"n": 0}

    async def _make_post(
        title: Optional[str] = None,
        author: str = "Ada",
        subtitle: Optional[str] = None,
        tags: Iterable[str] = (),
        image: Optional[str] = None,
        created_at: Optional[datetime] = None,
        deleted: bool = False,
    ) -> Post:
        counter["n"] += 1
        stamp = created_at or datetime(2024, 1, 1, tzinfo=timezone.utc) + timedelta(minutes=counter["n"])
        async with session_factory() as session:
            post = Post(
                title=title or f"Post {counter['n']}",
                subtitle=subtitle,
                content="Body text",
                author=author,
                image=image,
                created_at=stamp,
                updated_at=stamp,
                deleted_at=stamp if deleted else None,
            )
            session.add(post)
            await session.flush()
            found = await tag_repository.get_or_create_many(session, list(tags))
            await post_repository.sync_tags(session, post, [tag.id for tag in found])
            await session.commit()
            return post

    return _make_post


# ══════════════════════════════════════════════════════════════════════════
# HTTP
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def app(session_factory, storage):
    """A fresh app wired to the test database and storage."""
    from postboard.main import create_app

    application = create_app()

    async def _test_db_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    application.dependency_overrides[get_db_session] = _test_db_session
    application.dependency_overrides[get_image_storage] = lambda: storage
    return application


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as http_client:
        yield http_client


@pytest_asyncio.fixture
async def auth_client(client, make_user) -> AsyncClient:
    """`client` holding the session cookie of a logged-in user."""
    user = await make_user()
    response = await client.post("/api/login", json={"email": user.email, "password": TEST_PASSWORD})
    assert response.status_code == 200, response.text
    return client
