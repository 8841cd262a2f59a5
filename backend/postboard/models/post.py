"""
Postboard Backend - Post SQLAlchemy Model
=========================================

What:  ORM model for the `posts` table and the `post_tag` association table.
Who:   Used by PostRepository for every query and mutation; read by Alembic.

Table Design:
    - Integer primary key (posts are addressed as /api/posts/{id})
    - image: relative path of the stored blob under STORAGE_ROOT (nullable)
    - deleted_at: soft-delete marker. A post with deleted_at set is invisible to
      every normal query, but its row persists.

    post_tag(post_id, tag_id):
        Composite primary key, both sides ON DELETE CASCADE. Soft delete does not
        cascade, so the service detaches tags explicitly before soft-deleting.

Loading Rules:
    `Post.tags` is read-only (viewonly) and lazy="raise". Association rows are only
    written through PostRepository.sync_tags/detach_tags, and every read that needs
    tags must eager-load them with selectinload(Post.tags). Touching an unloaded
    collection raises instead of issuing a hidden query.
"""

from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, Table, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from postboard.database import Base
from postboard.models.tag import Tag


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


post_tag = Table(
    "post_tag",
    Base.metadata,
    Column("post_id", Integer, ForeignKey("posts.id", ondelete="CASCADE"), primary_key=True),
    Column("tag_id", Integer, ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True),
    Index("idx_post_tag_tag_id", "tag_id"),
)


class Post(Base):
    """
    A blog post with an optional image and a set of tags.

    Lifecycle:
        1. Created with its normalized tags attached (PostService.create)
        2. Partially updated; tags are fully replaced when sent (PostService.update)
        3. Soft-deleted: image blob removed, tags detached, deleted_at set
    """

    __tablename__ = "posts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    subtitle: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    author: Mapped[str] = mapped_column(String(255), nullable=False)

    # Relative path from STORAGE_ROOT, e.g. posts/1b4e28ba-2fa1-11d2-883f-b9a761bde3fb.png
    image: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )
    deleted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        default=None,
    )

    tags: Mapped[List[Tag]] = relationship(
        Tag,
        secondary=post_tag,
        order_by=Tag.id,
        lazy="raise",
        viewonly=True,
    )

    __table_args__ = (
        Index("idx_posts_author", "author"),
        Index("idx_posts_created_at", "created_at"),
        Index("idx_posts_deleted_at", "deleted_at"),
    )

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def __repr__(self) -> str:
        return f"<Post(id={self.id}, title='{self.title}', author='{self.author}')>"
