"""
TrialDoc Backend - Analysis Service
=====================================

What:  Orchestrates the three text-analysis operations.
How:   Builds the user message, runs one completion through the LLMService,
       strips markup, extracts the confidence annotation and, for reasoning,
       the named sections.
Who:   Called by the /claude router.

Flow:
    input check (400 on blank) → prompt + completion → clean_markdown
    → extract_confidence → (reasoning only) extract_sections

Nothing is persisted.
"""

import json
import logging
from typing import Any, List, Optional

from trialdoc.exceptions import ValidationError
from trialdoc.schemas.analysis import AnalysisResponse, ReasoningResponse, ReasoningSections
from trialdoc.services import prompts
from trialdoc.services.claude_service import claude_service
from trialdoc.services.llm_base import LLMService
from trialdoc.services.response_parser import (
    clean_markdown,
    extract_confidence,
    extract_sections,
)

logger = logging.getLogger(__name__)


def _require_text(value: Optional[str], field: str) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(message=f"'{field}' is required", field=field)
    return str(value).strip()


def serialize_data(data: Any) -> str:
    """Text passes through; anything structured is sent as indented JSON."""
    if isinstance(data, str):
        return _require_text(data, "data")
    if data is None or (isinstance(data, (list, dict)) and not data):
        raise ValidationError(message="'data' is required", field="data")
    return json.dumps(data, indent=2, ensure_ascii=False, default=str)


class AnalysisService:
    def __init__(self, llm: LLMService):
        self.llm = llm

    async def _run(self, operation: str, system_prompt: str, content: str):
        completion = await self.llm.complete(system_prompt, content)
        cleaned = clean_markdown(completion.text)
        confidence = extract_confidence(cleaned)
        logger.info(
            "%s completed: %d chars, confidence=%s",
            operation,
            len(cleaned),
            confidence,
        )
        return completion, cleaned, confidence

    async def process_text(self, text: Optional[str], task: Optional[str] = None) -> AnalysisResponse:
        body = _require_text(text, "text")
        if task and task.strip():
            body = f"Focus: {task.strip()}\n\nClinical text:\n{body}"

        completion, cleaned, confidence = await self._run(
            "Text processing", prompts.TEXT_PROCESSING_PROMPT, body
        )
        return AnalysisResponse(
            result=cleaned,
            confidence=confidence,
            model=completion.model,
            usage=completion.usage or None,
        )

    async def analyze_patterns(self, data: Any, focus: Optional[str] = None) -> AnalysisResponse:
        body = f"Data:\n{serialize_data(data)}"
        if focus and focus.strip():
            body = f"Analysis focus: {focus.strip()}\n\n{body}"

        completion, cleaned, confidence = await self._run(
            "Pattern analysis", prompts.PATTERN_ANALYSIS_PROMPT, body
        )
        return AnalysisResponse(
            result=cleaned,
            confidence=confidence,
            model=completion.model,
            usage=completion.usage or None,
        )

    async def generate_reasoning(
        self,
        scenario: Optional[str],
        options: Optional[List[str]] = None,
        context: Optional[str] = None,
    ) -> ReasoningResponse:
        parts = [f"Scenario:\n{_require_text(scenario, 'scenario')}"]
        listed = [option.strip() for option in options or [] if option and option.strip()]
        if listed:
            parts.append("Options:\n" + "\n".join(f"- {option}" for option in listed))
        if context and context.strip():
            parts.append(f"Context:\n{context.strip()}")

        completion, cleaned, confidence = await self._run(
            "Reasoning generation", prompts.REASONING_PROMPT, "\n\n".join(parts)
        )
        sections = extract_sections(cleaned)
        return ReasoningResponse(
            result=cleaned,
            confidence=confidence,
            model=completion.model,
            usage=completion.usage or None,
            reasoning=ReasoningSections(
                decision_summary=sections["decisionSummary"],
                rationale=sections["rationale"],
                supporting_evidence=sections["supportingEvidence"],
                alternatives_considered=sections["alternativesConsidered"],
                risk_assessment=sections["riskAssessment"],
            ),
        )


def get_analysis_service() -> AnalysisService:
    """FastAPI dependency; tests override it with a fake-backed instance."""
    return AnalysisService(claude_service)
