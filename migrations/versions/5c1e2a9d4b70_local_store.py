"""local photo cache and pending operation queue

Revision ID: 5c1e2a9d4b70
Revises:
Create Date: 2026-10-19 09:12:44.318204

"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "5c1e2a9d4b70"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the local store tables."""
    op.create_table(
        "stored_photo",
        sa.Column("id", sa.Text(), nullable=False),
        sa.Column("package_ref", sa.Text(), nullable=True),
        sa.Column("captured_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("content_type", sa.Text(), nullable=False),
        sa.Column("content", sa.LargeBinary(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_stored_photo_package_ref"), "stored_photo", ["package_ref"], unique=False
    )

    op.create_table(
        "pending_operation",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("kind", sa.Text(), nullable=False),
        sa.Column("payload", sa.JSON(), nullable=False),
        sa.Column("enqueued_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", sa.VARCHAR(length=20), nullable=False),
        sa.Column("attempts", sa.SmallInteger(), nullable=False),
        sa.Column("last_error", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    op.create_index(
        op.f("ix_pending_operation_status"), "pending_operation", ["status"], unique=False
    )


def downgrade() -> None:
    """Drop the local store tables."""
    op.drop_index(op.f("ix_pending_operation_status"), table_name="pending_operation")
    op.drop_table("pending_operation")
    op.drop_index(op.f("ix_stored_photo_package_ref"), table_name="stored_photo")
    op.drop_table("stored_photo")
