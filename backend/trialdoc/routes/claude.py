"""
TrialDoc Backend - Text-Analysis Routes
=========================================

Bearer-protected endpoints that forward clinical text to the completion
service and return the normalized response.

    POST /claude/text-processing        clinical extraction
    POST /claude/pattern-analysis       patterns and correlations in data
    POST /claude/reasoning-generation   structured decision reasoning
"""

from fastapi import APIRouter, Depends

from trialdoc.schemas.analysis import (
    AnalysisResponse,
    PatternAnalysisRequest,
    ReasoningRequest,
    ReasoningResponse,
    TextProcessingRequest,
)
from trialdoc.schemas.common import ErrorResponse
from trialdoc.security import require_user
from trialdoc.services.analysis_service import AnalysisService, get_analysis_service

router = APIRouter(
    prefix="/claude",
    tags=["Analysis"],
    dependencies=[Depends(require_user)],
    responses={
        400: {"description": "Missing input", "model": ErrorResponse},
        401: {"description": "No token", "model": ErrorResponse},
        403: {"description": "Invalid or expired token", "model": ErrorResponse},
        500: {"description": "Completion service failure", "model": ErrorResponse},
    },
)


@router.post("/text-processing", response_model=AnalysisResponse, summary="Clinical text extraction")
async def text_processing(
    body: TextProcessingRequest,
    analysis: AnalysisService = Depends(get_analysis_service),
) -> AnalysisResponse:
    return await analysis.process_text(body.text, body.task)


@router.post("/pattern-analysis", response_model=AnalysisResponse, summary="Pattern analysis")
async def pattern_analysis(
    body: PatternAnalysisRequest,
    analysis: AnalysisService = Depends(get_analysis_service),
) -> AnalysisResponse:
    return await analysis.analyze_patterns(body.data, body.focus)


@router.post(
    "/reasoning-generation",
    response_model=ReasoningResponse,
    summary="Structured decision reasoning",
)
async def reasoning_generation(
    body: ReasoningRequest,
    analysis: AnalysisService = Depends(get_analysis_service),
) -> ReasoningResponse:
    return await analysis.generate_reasoning(body.scenario, body.options, body.context)
