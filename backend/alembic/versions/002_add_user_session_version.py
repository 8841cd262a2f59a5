"""Add users.session_version

Revision ID: 002
Revises: 001
Create Date: 2026-02-02 00:00:00.000000+00:00

What:  Server-side logout marker. Sessions carry the version they were issued
       with; logout increments it so older session cookies stop authenticating.

Rollback: downgrade() drops the column.
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    with op.batch_alter_table("users") as batch_op:
        batch_op.add_column(
            sa.Column("session_version", sa.Integer(), nullable=False, server_default="0")
        )


def downgrade() -> None:
    with op.batch_alter_table("users") as batch_op:
        batch_op.drop_column("session_version")
