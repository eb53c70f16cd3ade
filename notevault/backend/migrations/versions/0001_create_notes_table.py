"""Create notes table

Revision ID: 0001
Revises: None
Create Date: 2026-10-18 00:00:00.000000

Creates the `notes` table. created_at is naive UTC with microsecond
precision; capability token claims compare against it exactly.
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers
revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "notes",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("title", sa.String(255), nullable=True),
        # Plaintext UTF-8, or a sealed blob when backend_encryption is set
        sa.Column("content", sa.LargeBinary(), nullable=False),
        sa.Column("discoverable", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("frontend_encryption", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("backend_encryption", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column(
            "allow_delete_with_passphrase",
            sa.Boolean(),
            nullable=False,
            server_default=sa.false(),
        ),
        sa.Column("delete_after_read", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("expires_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_notes"),
    )

    op.create_index("ix_notes_title", "notes", ["title"])
    # Sweeper deletes by expires_at
    op.create_index("ix_notes_expires_at", "notes", ["expires_at"])


def downgrade() -> None:
    op.drop_index("ix_notes_expires_at", table_name="notes")
    op.drop_index("ix_notes_title", table_name="notes")
    op.drop_table("notes")
