"""Create users and documents tables

Revision ID: 001
Revises: None
Create Date: 2025-07-15 14:53:22.000000+00:00

What:  Initial schema: `users` for authentication, `documents` with the
       `document_type` enumeration and the created_at DESC index used by the
       default list ordering.

Rollback: downgrade() drops both tables and the enum type (destructive).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

DOCUMENT_TYPES = ("PROTOCOL", "STUDY_DESIGN", "REGULATORY", "OTHER")


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("username", sa.Text(), nullable=False),
        sa.Column("password", sa.Text(), nullable=False, comment="bcrypt hash"),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("username", name="users_username_key"),
    )

    op.create_table(
        "documents",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column(
            "type",
            postgresql.ENUM(*DOCUMENT_TYPES, name="document_type"),
            nullable=False,
        ),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("disease", sa.Text(), nullable=True),
        sa.Column("country", sa.Text(), nullable=True),
        sa.Column("region", sa.Text(), nullable=True),
        sa.Column("protocol_id", sa.Text(), nullable=True),
        sa.Column(
            "document_type",
            sa.Text(),
            nullable=True,
            comment="Free-form sub-type, distinct from the type enumeration",
        ),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("cmc_section", sa.Text(), nullable=True),
        sa.Column("clinical_section", sa.Text(), nullable=True),
        sa.Column("sections", postgresql.JSONB(), nullable=True),
        sa.Column("user_id", sa.String(36), nullable=True),
        sa.Column(
            "tags",
            postgresql.ARRAY(sa.Text()),
            server_default=sa.text("'{}'"),
            nullable=False,
        ),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
            comment="Refreshed by the application on every update",
        ),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_index(
        "idx_documents_created_at",
        "documents",
        [sa.text("created_at DESC")],
    )


def downgrade() -> None:
    op.drop_index("idx_documents_created_at", table_name="documents")
    op.drop_table("documents")
    op.drop_table("users")
    postgresql.ENUM(name="document_type").drop(op.get_bind(), checkfirst=True)
