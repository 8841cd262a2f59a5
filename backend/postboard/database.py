"""
Postboard Backend - Database Session Management
===============================================

What:  Async SQLAlchemy engine, session factory, declarative base and the
       FastAPI session dependency.
How:   One async engine per process; one AsyncSession per request. The request
       session is the transaction boundary of every service call: it commits when
       the handler returns and rolls back when anything raises.
Who:   Route handlers (via Depends), the CLI, Alembic and the test suite.

Connection Pooling (PostgreSQL):
    pool_size=20 / max_overflow=10:  at most 30 connections per process
    pool_pre_ping:                   validates connections before use
    pool_recycle=3600:               recycles connections every hour

    SQLite URLs (tests, local runs) use SQLAlchemy's default SQLite pool and
    receive no sizing arguments.
"""

from typing import Any, AsyncGenerator, Dict

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from postboard.config import settings


def _engine_options() -> Dict[str, Any]:
    options: Dict[str, Any] = {"echo": settings.log_level == "DEBUG"}
    if not settings.is_sqlite:
        options.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_pre_ping=settings.db_pool_pre_ping,
            pool_recycle=3600,
        )
    return options


# ── Engine Configuration ──────────────────────────────────────────────────
# Created at import; no connection is opened until the first query.
engine: AsyncEngine = create_async_engine(settings.database_url, **_engine_options())

# ── Session Factory ───────────────────────────────────────────────────────
# expire_on_commit=False: loaded attributes stay readable after commit, so
# responses can be serialized without a new round trip.
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


# ── Base Model ────────────────────────────────────────────────────────────
class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    Every model registers its table on `Base.metadata`, which Alembic and the
    test suite use to build the schema.
    """
    pass


# ── Session Dependency ────────────────────────────────────────────────────
async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    How it works:
        1. Creates a new session from the factory
        2. Yields it to the route handler (services flush their writes)
        3. On success: commits the transaction
        4. On error: rolls back every write made during the request
        5. Always: closes the session (returns connection to pool)

    Example usage in a route:
        @router.get("/posts/{post_id}")
        async def show_post(post_id: int, db: AsyncSession = Depends(get_db_session)):
            ...
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


# ── Lifecycle Helpers ─────────────────────────────────────────────────────
async def dispose_engine() -> None:
    """Closes all pooled connections. Called during application shutdown."""
    await engine.dispose()
