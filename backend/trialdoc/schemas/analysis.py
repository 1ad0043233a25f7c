"""
TrialDoc Backend - Text-Analysis Schemas
==========================================

Request and response bodies for the /claude endpoints. Inputs are optional at
the schema level; AnalysisService rejects blank input with a 400.
"""

from typing import Any, Dict, List, Optional

from pydantic import Field

from trialdoc.schemas.common import CamelModel


class TextProcessingRequest(CamelModel):
    text: Optional[str] = Field(default=None, description="Clinical text to process")
    task: Optional[str] = Field(
        default=None,
        description="Optional extraction focus, e.g. 'eligibility criteria'",
    )


class PatternAnalysisRequest(CamelModel):
    data: Any = Field(default=None, description="Text or JSON records to analyze")
    focus: Optional[str] = Field(default=None, description="Optional analysis focus")


class ReasoningRequest(CamelModel):
    scenario: Optional[str] = Field(default=None, description="Decision to reason about")
    options: Optional[List[str]] = Field(default=None, description="Candidate options")
    context: Optional[str] = Field(default=None, description="Supporting background")


class AnalysisResponse(CamelModel):
    result: str = Field(description="Response text with markup stripped")
    confidence: Optional[float] = Field(
        default=None,
        description="Self-reported confidence as a 0-1 fraction; null when not reported",
    )
    model: str
    usage: Optional[Dict[str, int]] = None


class ReasoningSections(CamelModel):
    decision_summary: str
    rationale: str
    supporting_evidence: str
    alternatives_considered: str
    risk_assessment: str


class ReasoningResponse(AnalysisResponse):
    reasoning: ReasoningSections
