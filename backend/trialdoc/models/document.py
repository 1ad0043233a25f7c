"""
TrialDoc Backend - Document SQLAlchemy Model
==============================================

What:  ORM model for the `documents` table in PostgreSQL.
How:   Inherits from the declarative Base; Alembic reads it for migrations.
Who:   Used by DocumentService for CRUD operations.

Table Design:
    - id: UUID string primary key generated in Python
    - type: closed enumeration at the storage layer (document_type enum)
    - title/content: required free text
    - disease/country/region/protocol_id/document_type: optional
      classification fields, all usable as exact-match list filters
    - cmc_section/clinical_section: optional free-text section bodies
    - sections: optional structured-sections blob (JSONB)
    - user_id: optional owning user reference (not enforced as a FK)
    - tags: text array, empty by default
    - created_at/updated_at: UTC; updated_at refreshed on every UPDATE

    Index on created_at DESC serves the default list ordering.
"""

import enum
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import Enum, Index, String, Text, text
from sqlalchemy.dialects.postgresql import ARRAY, JSONB, TIMESTAMP
from sqlalchemy.orm import Mapped, mapped_column

from trialdoc.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DocumentType(str, enum.Enum):
    PROTOCOL = "PROTOCOL"
    STUDY_DESIGN = "STUDY_DESIGN"
    REGULATORY = "REGULATORY"
    OTHER = "OTHER"


class Document(Base):
    """
    A clinical-trial document record.

    Lifecycle:
        Created, read, updated and deleted directly by client requests.
        No derived or cached state is kept.

    Query Patterns:
        - List with filters: WHERE type = ? AND country = ? ... ORDER BY created_at DESC
        - Get / update / delete: WHERE id = ?
    """

    __tablename__ = "documents"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )

    type: Mapped[DocumentType] = mapped_column(
        Enum(DocumentType, name="document_type"),
        nullable=False,
    )

    title: Mapped[str] = mapped_column(Text, nullable=False)

    # ── Classification ────────────────────────────────────────────────────
    disease: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    country: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    region: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    protocol_id: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    # Free-form sub-type, distinct from the `type` enumeration
    document_type: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # ── Body ──────────────────────────────────────────────────────────────
    content: Mapped[str] = mapped_column(Text, nullable=False)
    cmc_section: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    clinical_section: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    sections: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSONB, nullable=True)

    # ── Ownership & Tagging ───────────────────────────────────────────────
    user_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    tags: Mapped[List[str]] = mapped_column(
        ARRAY(Text),
        nullable=False,
        default=list,
        server_default=text("'{}'"),
    )

    # ── Timestamps ────────────────────────────────────────────────────────
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    __table_args__ = (
        Index("idx_documents_created_at", created_at.desc()),
    )

    def __repr__(self) -> str:
        return (
            f"<Document(id={self.id}, type='{self.type}', "
            f"title='{self.title}')>"
        )
