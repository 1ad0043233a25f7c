"""
TrialDoc Backend - Claude Completion Service
==============================================

What:  LLMService implementation over the Anthropic Messages API.
How:   One POST {ANTHROPIC_API_URL}/messages per call through a shared
       httpx.AsyncClient, with a fixed model, token budget and temperature.
       No retries: a failed completion is reported to the caller directly.
Who:   Module singleton used by AnalysisService; closed on app shutdown.

Failure mapping:
    no ANTHROPIC_API_KEY      → ConfigurationError (500)
    timeout / network error   → LLMServiceError (500)
    non-2xx response          → LLMServiceError (500) with the upstream
                                `error.message` when the body carries one
"""

import logging
import time
import uuid
from typing import Any, Dict, Optional

import httpx

from trialdoc.config import Settings, settings
from trialdoc.exceptions import ConfigurationError, LLMServiceError
from trialdoc.services.llm_base import LLMCompletion, LLMService

logger = logging.getLogger(__name__)


def extract_text(payload: Dict[str, Any]) -> str:
    """Join the text blocks of a Messages API response; other block types are skipped."""
    content = payload.get("content")
    if not isinstance(content, list):
        return ""
    parts = []
    for block in content:
        if not isinstance(block, dict) or block.get("type") != "text":
            continue
        value = block.get("text")
        if isinstance(value, str) and value.strip():
            parts.append(value.strip())
    return "\n".join(parts).strip()


def upstream_error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
    return f"Completion service returned HTTP {response.status_code}"


class ClaudeService(LLMService):
    """
    Args:
        config: Settings supplying the credential and request parameters.
        transport: Optional httpx transport (tests pass httpx.MockTransport).
    """

    def __init__(
        self,
        config: Settings = settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def model(self) -> str:
        return self.config.anthropic_model

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.config.anthropic_api_url,
                timeout=httpx.Timeout(self.config.anthropic_timeout, connect=10.0),
                transport=self._transport,
            )
        return self._client

    def _headers(self) -> Dict[str, str]:
        return {
            "x-api-key": self.config.anthropic_api_key,
            "anthropic-version": self.config.anthropic_version,
            "content-type": "application/json",
        }

    async def complete(self, system_prompt: str, content: str) -> LLMCompletion:
        if not self.config.anthropic_api_key:
            raise ConfigurationError(message="ANTHROPIC_API_KEY is not configured")

        call_id = str(uuid.uuid4())[:8]
        payload = {
            "model": self.model,
            "max_tokens": self.config.anthropic_max_tokens,
            "temperature": self.config.anthropic_temperature,
            "system": system_prompt,
            "messages": [{"role": "user", "content": content}],
        }

        start_time = time.time()
        try:
            response = await self._get_client().post("/messages", headers=self._headers(), json=payload)
        except httpx.HTTPError as e:
            logger.error("[%s] Completion request failed: %s", call_id, e)
            raise LLMServiceError(
                message="Completion service request failed",
                context={"call_id": call_id, "error_type": type(e).__name__},
            )
        duration_ms = (time.time() - start_time) * 1000

        if response.status_code >= 400:
            message = upstream_error_message(response)
            logger.error(
                "[%s] Completion service error %d after %.0fms: %s",
                call_id,
                response.status_code,
                duration_ms,
                message,
            )
            raise LLMServiceError(
                message=message,
                upstream_status=response.status_code,
                context={"call_id": call_id},
            )

        try:
            body = response.json()
        except ValueError:
            raise LLMServiceError(
                message="Completion service returned a non-JSON response",
                upstream_status=response.status_code,
                context={"call_id": call_id},
            )

        usage = {
            key: value
            for key, value in (body.get("usage") or {}).items()
            if isinstance(value, int)
        }
        text = extract_text(body)
        logger.info(
            "[%s] Completion finished in %.0fms (%d chars, usage=%s)",
            call_id,
            duration_ms,
            len(text),
            usage,
        )
        return LLMCompletion(text=text, model=body.get("model") or self.model, usage=usage)

    async def health_check(self) -> bool:
        return bool(self.config.anthropic_api_key)

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None


# Module-level singleton
claude_service = ClaudeService()
