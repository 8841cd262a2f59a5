"""Create users, posts, tags and post_tag tables

Revision ID: 001
Revises: None
Create Date: 2026-01-10 00:00:00.000000+00:00

What:  Initial schema: user accounts, posts (with soft delete), tags and the
       post/tag association table.

Rollback: downgrade() drops all four tables (destructive).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("age", sa.Integer(), nullable=False),
        sa.Column("birth_date", sa.Date(), nullable=False),
        sa.Column("phone", sa.String(50), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("password", sa.String(255), nullable=False, comment="Argon2id hash"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("email", name="uq_users_email"),
    )

    op.create_table(
        "tags",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(50), nullable=False, comment="Trimmed, lower-cased tag name"),
        sa.UniqueConstraint("name", name="uq_tags_name"),
    )

    op.create_table(
        "posts",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("subtitle", sa.String(255), nullable=True),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("author", sa.String(255), nullable=False),
        sa.Column(
            "image",
            sa.String(255),
            nullable=True,
            comment="Path of the stored image, relative to the storage root",
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "deleted_at",
            sa.DateTime(timezone=True),
            nullable=True,
            comment="Soft-delete marker; rows with a value are hidden from the API",
        ),
    )
    op.create_index("idx_posts_author", "posts", ["author"])
    op.create_index("idx_posts_created_at", "posts", ["created_at"])
    op.create_index("idx_posts_deleted_at", "posts", ["deleted_at"])

    op.create_table(
        "post_tag",
        sa.Column(
            "post_id",
            sa.Integer(),
            sa.ForeignKey("posts.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column(
            "tag_id",
            sa.Integer(),
            sa.ForeignKey("tags.id", ondelete="CASCADE"),
            primary_key=True,
        ),
    )
    op.create_index("idx_post_tag_tag_id", "post_tag", ["tag_id"])


def downgrade() -> None:
    op.drop_index("idx_post_tag_tag_id", table_name="post_tag")
    op.drop_table("post_tag")
    op.drop_index("idx_posts_deleted_at", table_name="posts")
    op.drop_index("idx_posts_created_at", table_name="posts")
    op.drop_index("idx_posts_author", table_name="posts")
    op.drop_table("posts")
    op.drop_table("tags")
    op.drop_table("users")
