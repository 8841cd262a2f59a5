"""
Postboard Backend - User SQLAlchemy Model
=========================================

What:  ORM model for the `users` table.
When:  Rows are created by registration (capped per deployment) and read by
       authentication. Users are never updated or deleted by the API.

Security Note:
    `password` holds an Argon2id hash, never plaintext. The column is not part of
    any response schema (see schemas/user.py), so it cannot be serialized.
"""

from datetime import date, datetime
from typing import Optional

from sqlalchemy import Date, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from postboard.database import Base
from postboard.models.post import utcnow


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    age: Mapped[int] = mapped_column(Integer, nullable=False)
    birth_date: Mapped[date] = mapped_column(Date, nullable=False)
    phone: Mapped[str] = mapped_column(String(50), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    password: Mapped[str] = mapped_column(String(255), nullable=False)

    # Copied into the session at login; logout increments it, which invalidates
    # every session cookie issued before.
    session_version: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        default=utcnow,
        onupdate=utcnow,
    )

    def __repr__(self) -> str:
        # Never include the password hash here; reprs end up in logs.
        return f"<User(id={self.id}, email='{self.email}')>"
