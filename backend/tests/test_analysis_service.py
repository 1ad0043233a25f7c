"""
TrialDoc Backend - Analysis Service Tests
===========================================

What:  Prompt selection, message construction and response normalization for
       the three analysis operations.
How:   FakeLLM returns canned text and records what it was sent.
"""

import pytest

from conftest import FakeLLM
from trialdoc.exceptions import LLMServiceError, ValidationError
from trialdoc.services import prompts
from trialdoc.services.analysis_service import AnalysisService, serialize_data
from trialdoc.services.response_parser import NOT_PROVIDED


class TestProcessText:
    @pytest.mark.asyncio
    async def test_cleans_markup_and_extracts_confidence(self):
        llm = FakeLLM("**Diagnosis**: flu `ICD-10` J11.1\nCONFIDENCE SCORE: 82%")
        service = AnalysisService(llm)

        result = await service.process_text("Fever and myalgia for 3 days.")

        assert result.result == "Diagnosis: flu ICD-10 J11.1\nCONFIDENCE SCORE: 82%"
        assert result.confidence == 0.82
        assert result.model == "claude-3-5-sonnet-20241022"
        assert result.usage == {"input_tokens": 120, "output_tokens": 80}
        system_prompt, content = llm.calls[0]
        assert system_prompt == prompts.TEXT_PROCESSING_PROMPT
        assert content == "Fever and myalgia for 3 days."

    @pytest.mark.asyncio
    async def test_task_is_prepended(self):
        llm = FakeLLM("ok")
        await AnalysisService(llm).process_text("Age 18-65.", task="eligibility criteria")

        assert llm.calls[0][1].startswith("Focus: eligibility criteria")
        assert llm.calls[0][1].endswith("Age 18-65.")

    @pytest.mark.asyncio
    async def test_missing_confidence_is_none(self):
        result = await AnalysisService(FakeLLM("No annotation here.")).process_text("text")
        assert result.confidence is None

    @pytest.mark.parametrize("text", [None, "", "   "])
    @pytest.mark.asyncio
    async def test_blank_text_is_rejected_before_calling_the_model(self, text):
        llm = FakeLLM("unused")

        with pytest.raises(ValidationError):
            await AnalysisService(llm).process_text(text)
        assert llm.calls == []

    @pytest.mark.asyncio
    async def test_provider_errors_propagate(self):
        llm = FakeLLM(error=LLMServiceError(message="Overloaded"))

        with pytest.raises(LLMServiceError, match="Overloaded"):
            await AnalysisService(llm).process_text("text")


class TestAnalyzePatterns:
    @pytest.mark.asyncio
    async def test_structured_data_is_sent_as_json(self):
        llm = FakeLLM("Enrollment lags in EU sites.\nCONFIDENCE SCORE: 64%")
        records = [{"site": "Berlin", "enrolled": 12}, {"site": "Boston", "enrolled": 31}]

        result = await AnalysisService(llm).analyze_patterns(records, focus="enrollment")

        system_prompt, content = llm.calls[0]
        assert system_prompt == prompts.PATTERN_ANALYSIS_PROMPT
        assert content.startswith("Analysis focus: enrollment")
        assert '"enrolled": 31' in content
        assert result.confidence == 0.64

    def test_text_data_passes_through(self):
        assert serialize_data("  weekly AE counts  ") == "weekly AE counts"

    @pytest.mark.parametrize("data", [None, "", [], {}])
    def test_empty_data_is_rejected(self, data):
        with pytest.raises(ValidationError):
            serialize_data(data)


class TestGenerateReasoning:
    @pytest.mark.asyncio
    async def test_sections_are_extracted(self):
        llm = FakeLLM(
            "## DECISION SUMMARY: Use an active comparator.\n"
            "**RATIONALE:** Placebo is no longer ethical.\n"
            "CONFIDENCE SCORE: 70%"
        )

        result = await AnalysisService(llm).generate_reasoning(
            "Choose a comparator for the phase III trial.",
            options=["placebo", "active comparator", " "],
        )

        assert llm.calls[0][0] == prompts.REASONING_PROMPT
        assert "- placebo\n- active comparator" in llm.calls[0][1]
        assert result.reasoning.decision_summary == "Use an active comparator."
        assert result.reasoning.rationale == "Placebo is no longer ethical."
        assert result.reasoning.supporting_evidence == NOT_PROVIDED
        assert result.confidence == 0.7

    @pytest.mark.asyncio
    async def test_blank_scenario_is_rejected(self):
        with pytest.raises(ValidationError):
            await AnalysisService(FakeLLM("x")).generate_reasoning("  ")
