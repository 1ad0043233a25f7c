"""
TrialDoc Backend - Claude Service Tests
=========================================

What:  Request shape, text-block joining and error mapping for the Messages API.
How:   httpx.MockTransport answers in-process; no network access.
"""

import json

import httpx
import pytest

from trialdoc.config import Settings
from trialdoc.exceptions import ConfigurationError, LLMServiceError
from trialdoc.services.claude_service import ClaudeService


def _service(handler, api_key="test-key"):
    config = Settings(anthropic_api_key=api_key)
    return ClaudeService(config=config, transport=httpx.MockTransport(handler))


class TestClaudeService:
    @pytest.mark.asyncio
    async def test_sends_messages_request_and_joins_text_blocks(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["headers"] = request.headers
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={
                "model": "claude-3-5-sonnet-20241022",
                "content": [
                    {"type": "text", "text": "Diagnosis: flu"},
                    {"type": "tool_use", "id": "t1", "name": "lookup", "input": {}},
                    {"type": "text", "text": "CONFIDENCE SCORE: 82%"},
                ],
                "usage": {"input_tokens": 31, "output_tokens": 12},
            })

        service = _service(handler)
        completion = await service.complete("You are a clinician.", "Patient has fever.")
        await service.close()

        assert seen["url"] == "https://api.anthropic.com/v1/messages"
        assert seen["headers"]["x-api-key"] == "test-key"
        assert seen["headers"]["anthropic-version"] == "2023-06-01"
        assert seen["body"] == {
            "model": "claude-3-5-sonnet-20241022",
            "max_tokens": 4000,
            "temperature": 0.3,
            "system": "You are a clinician.",
            "messages": [{"role": "user", "content": "Patient has fever."}],
        }
        assert completion.text == "Diagnosis: flu\nCONFIDENCE SCORE: 82%"
        assert completion.usage == {"input_tokens": 31, "output_tokens": 12}

    @pytest.mark.asyncio
    async def test_sdk_base_url_variable_does_not_change_endpoint(self, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_BASE_URL", "http://127.0.0.1:48271")
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            return httpx.Response(200, json={"content": [{"type": "text", "text": "ok"}]})

        service = _service(handler)
        await service.complete("system", "content")
        await service.close()

        assert seen["url"] == "https://api.anthropic.com/v1/messages"

    @pytest.mark.asyncio
    async def test_missing_key_is_a_configuration_error(self):
        def handler(request):
            raise AssertionError("no request expected")

        with pytest.raises(ConfigurationError):
            await _service(handler, api_key="").complete("system", "content")

    @pytest.mark.asyncio
    async def test_upstream_error_message_is_surfaced(self):
        def handler(request):
            return httpx.Response(400, json={
                "type": "error",
                "error": {"type": "invalid_request_error", "message": "max_tokens: too large"},
            })

        with pytest.raises(LLMServiceError) as exc_info:
            await _service(handler).complete("system", "content")

        assert exc_info.value.message == "max_tokens: too large"
        assert exc_info.value.upstream_status == 400

    @pytest.mark.asyncio
    async def test_non_json_error_body(self):
        def handler(request):
            return httpx.Response(502, text="Bad Gateway")

        with pytest.raises(LLMServiceError) as exc_info:
            await _service(handler).complete("system", "content")

        assert exc_info.value.message == "Completion service returned HTTP 502"

    @pytest.mark.asyncio
    async def test_transport_failure(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(LLMServiceError):
            await _service(handler).complete("system", "content")

    @pytest.mark.asyncio
    async def test_health_check_reflects_credential(self):
        assert await _service(lambda r: httpx.Response(200), api_key="k").health_check() is True
        assert await _service(lambda r: httpx.Response(200), api_key="").health_check() is False
