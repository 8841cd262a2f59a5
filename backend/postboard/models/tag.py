"""
Postboard Backend - Tag SQLAlchemy Model
========================================

What:  ORM model for the `tags` table.
How:   Tags are created lazily (get-or-create by name) whenever a post refers to a
       name that does not exist yet. They are never deleted; a tag with no posts
       simply stays in the table.

Invariant:
    `name` is unique and always stored normalized (trimmed, lower-cased). The
    unique constraint is what makes concurrent get-or-create safe.
"""

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from postboard.database import Base


class Tag(Base):
    __tablename__ = "tags"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        unique=True,
        comment="Normalized tag name (trimmed, lower-cased)",
    )

    def __repr__(self) -> str:
        return f"<Tag(id={self.id}, name='{self.name}')>"
