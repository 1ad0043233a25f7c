"""
TrialDoc Backend - Document Schemas
=====================================

What:  Response model for Document rows and the list filter set.
How:   Responses are serialized in camelCase (protocolId, documentType,
       createdAt, ...). Write bodies are plain JSON objects handed to
       DocumentService, which maps them onto columns; the store's own
       constraints are the only validation.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from trialdoc.models.document import DocumentType
from trialdoc.schemas.common import CamelModel


class DocumentResponse(CamelModel):
    id: str
    type: DocumentType
    title: str
    disease: Optional[str] = None
    country: Optional[str] = None
    region: Optional[str] = None
    protocol_id: Optional[str] = None
    document_type: Optional[str] = None
    content: str
    cmc_section: Optional[str] = None
    clinical_section: Optional[str] = None
    sections: Optional[Any] = None
    user_id: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


class DocumentFilters(BaseModel):
    """
    Optional exact-match filters for GET /documents.

    Empty strings are normalized to None, so a present-but-empty query
    parameter does not constrain the result set. Non-blank values are
    compared exactly as sent.
    """
    type: Optional[str] = None
    country: Optional[str] = None
    region: Optional[str] = None
    disease: Optional[str] = None
    document_type: Optional[str] = None

    def active(self) -> Dict[str, str]:
        """Filters that carry a non-blank value."""
        return {
            key: value
            for key, value in self.model_dump().items()
            if value is not None and value.strip()
        }
