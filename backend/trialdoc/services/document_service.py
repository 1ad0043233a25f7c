"""
TrialDoc Backend - Document Service
=====================================

What:  CRUD over the `documents` table.
How:   Request bodies are mapped onto ORM columns (camelCase or snake_case
       keys), written through the per-request session, and flushed so that
       store-level rejections surface here instead of at commit time.
Who:   Called by the /documents router; the session comes from get_db_session.

Status mapping:
    get    missing id                         → 404 "Document not found"
    update/delete missing id                  → 400
    unknown field / bad enum / constraint     → 400
    other data-store failure                  → 500 (generic)

There is no shape validation beyond what the store enforces.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy import Select, select
from sqlalchemy.exc import InterfaceError, OperationalError, SQLAlchemyError, StatementError
from sqlalchemy.ext.asyncio import AsyncSession

from trialdoc.exceptions import DatabaseError, NotFoundError, ValidationError
from trialdoc.models.document import Document, DocumentType
from trialdoc.schemas.document import DocumentFilters

logger = logging.getLogger(__name__)

# API attribute name → column attribute
FIELD_MAP: Dict[str, str] = {
    "id": "id",
    "type": "type",
    "title": "title",
    "disease": "disease",
    "country": "country",
    "region": "region",
    "protocolId": "protocol_id",
    "documentType": "document_type",
    "content": "content",
    "cmcSection": "cmc_section",
    "clinicalSection": "clinical_section",
    "sections": "sections",
    "userId": "user_id",
    "tags": "tags",
    "createdAt": "created_at",
    "updatedAt": "updated_at",
}
COLUMNS = frozenset(FIELD_MAP.values())


def parse_document_type(value: Any) -> DocumentType:
    try:
        return DocumentType(value)
    except ValueError:
        allowed = ", ".join(t.value for t in DocumentType)
        raise ValidationError(
            message=f"Invalid document type '{value}'. Expected one of: {allowed}",
            field="type",
        )


def to_columns(data: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Translate a request body into column values.

    Raises:
        ValidationError: unknown field or a `type` outside the enumeration.
    """
    columns: Dict[str, Any] = {}
    unknown: List[str] = []
    for key, value in data.items():
        column = FIELD_MAP.get(key, key if key in COLUMNS else None)
        if column is None:
            unknown.append(key)
            continue
        columns[column] = value

    if unknown:
        raise ValidationError(
            message=f"Unknown document field(s): {', '.join(sorted(unknown))}",
            context={"fields": sorted(unknown)},
        )
    if columns.get("type") is not None:
        columns["type"] = parse_document_type(columns["type"])
    return columns


def build_list_query(filters: Optional[DocumentFilters] = None) -> Select:
    """SELECT with one equality clause per non-empty filter, newest first."""
    query = select(Document)
    active = filters.active() if filters else {}
    for name, value in active.items():
        if name == "type":
            query = query.where(Document.type == parse_document_type(value))
        else:
            query = query.where(getattr(Document, name) == value)
    return query.order_by(Document.created_at.desc())


class DocumentService:
    """Stateless; the session is passed into every call."""

    async def _flush(self, db: AsyncSession, action: str) -> None:
        try:
            await db.flush()
        except (OperationalError, InterfaceError) as e:
            logger.error("Document %s failed: %s", action, e, exc_info=True)
            raise DatabaseError()
        except StatementError as e:
            # Constraint violations, bad values, NOT NULL on required columns
            logger.info("Document %s rejected by the store: %s", action, e.orig or e)
            raise ValidationError(
                message=f"Document {action} rejected: {e.orig or e}",
            )
        except SQLAlchemyError as e:
            logger.error("Document %s failed: %s", action, e, exc_info=True)
            raise DatabaseError()

    async def _load(self, db: AsyncSession, document_id: str) -> Optional[Document]:
        try:
            return await db.get(Document, document_id)
        except SQLAlchemyError as e:
            logger.error("Document lookup failed for %s: %s", document_id, e, exc_info=True)
            raise DatabaseError()

    async def create(self, db: AsyncSession, data: Mapping[str, Any]) -> Document:
        document = Document(**to_columns(data))
        db.add(document)
        await self._flush(db, "create")
        logger.info("Document created: %s (%s)", document.id, document.type)
        return document

    async def list(
        self,
        db: AsyncSession,
        filters: Optional[DocumentFilters] = None,
    ) -> List[Document]:
        query = build_list_query(filters)
        try:
            result = await db.execute(query)
        except SQLAlchemyError as e:
            logger.error("Document listing failed: %s", e, exc_info=True)
            raise DatabaseError()
        return list(result.scalars().all())

    async def get(self, db: AsyncSession, document_id: str) -> Document:
        document = await self._load(db, document_id)
        if document is None:
            raise NotFoundError(resource="document", resource_id=document_id)
        return document

    async def update(
        self,
        db: AsyncSession,
        document_id: str,
        data: Mapping[str, Any],
    ) -> Document:
        """Apply the given fields; updated_at is refreshed by the ORM on flush."""
        columns = to_columns(data)
        document = await self._load(db, document_id)
        if document is None:
            raise ValidationError(
                message="Record to update not found",
                context={"resource_id": document_id},
            )
        for column, value in columns.items():
            setattr(document, column, value)
        await self._flush(db, "update")
        logger.info("Document updated: %s", document_id)
        return document

    async def delete(self, db: AsyncSession, document_id: str) -> Dict[str, str]:
        document = await self._load(db, document_id)
        if document is None:
            raise ValidationError(
                message="Record to delete does not exist",
                context={"resource_id": document_id},
            )
        await db.delete(document)
        await self._flush(db, "delete")
        logger.info("Document deleted: %s", document_id)
        return {"message": "Document deleted"}


# Module-level singleton
document_service = DocumentService()
