"""
TrialDoc Backend - Document Routes
====================================

What:  CRUD endpoints for /documents. Every route requires a bearer token.
How:   Thin handlers: bodies are passed to DocumentService as plain JSON
       objects and results are serialized through DocumentResponse (camelCase).

    POST   /documents          create (201)
    GET    /documents          list, optional exact-match filters, newest first
    GET    /documents/{id}     fetch one (404 when missing)
    PUT    /documents/{id}     update (400 when missing)
    DELETE /documents/{id}     delete (400 when missing)
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from trialdoc.database import get_db_session
from trialdoc.schemas.common import ErrorResponse, MessageResponse
from trialdoc.schemas.document import DocumentFilters, DocumentResponse
from trialdoc.security import require_user
from trialdoc.services.document_service import document_service

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/documents",
    tags=["Documents"],
    dependencies=[Depends(require_user)],
    responses={
        401: {"description": "No token", "model": ErrorResponse},
        403: {"description": "Invalid or expired token", "model": ErrorResponse},
    },
)


@router.post(
    "",
    response_model=DocumentResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"description": "Rejected by the store", "model": ErrorResponse}},
    summary="Create a document",
)
async def create_document(
    data: Dict[str, Any] = Body(...),
    db: AsyncSession = Depends(get_db_session),
) -> DocumentResponse:
    document = await document_service.create(db, data)
    return DocumentResponse.model_validate(document)


@router.get(
    "",
    response_model=List[DocumentResponse],
    summary="List documents",
    description="Exact-match filters; empty values are ignored. Newest first.",
)
async def list_documents(
    type: Optional[str] = Query(default=None, description="PROTOCOL, STUDY_DESIGN, REGULATORY or OTHER"),
    country: Optional[str] = Query(default=None),
    region: Optional[str] = Query(default=None),
    disease: Optional[str] = Query(default=None),
    document_type: Optional[str] = Query(default=None, alias="documentType"),
    db: AsyncSession = Depends(get_db_session),
) -> List[DocumentResponse]:
    filters = DocumentFilters(
        type=type,
        country=country,
        region=region,
        disease=disease,
        document_type=document_type,
    )
    documents = await document_service.list(db, filters)
    return [DocumentResponse.model_validate(document) for document in documents]


@router.get(
    "/{document_id}",
    response_model=DocumentResponse,
    responses={404: {"description": "Document not found", "model": ErrorResponse}},
    summary="Get a document",
)
async def get_document(
    document_id: str,
    db: AsyncSession = Depends(get_db_session),
) -> DocumentResponse:
    document = await document_service.get(db, document_id)
    return DocumentResponse.model_validate(document)


@router.put(
    "/{document_id}",
    response_model=DocumentResponse,
    responses={400: {"description": "Missing record or rejected update", "model": ErrorResponse}},
    summary="Update a document",
)
async def update_document(
    document_id: str,
    data: Dict[str, Any] = Body(...),
    db: AsyncSession = Depends(get_db_session),
) -> DocumentResponse:
    document = await document_service.update(db, document_id, data)
    return DocumentResponse.model_validate(document)


@router.delete(
    "/{document_id}",
    response_model=MessageResponse,
    responses={400: {"description": "Missing record", "model": ErrorResponse}},
    summary="Delete a document",
)
async def delete_document(
    document_id: str,
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    return MessageResponse(**await document_service.delete(db, document_id))
