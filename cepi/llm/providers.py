"""
LLM Provider Implementations.

Contains concrete implementations for the supported providers:
- Gemini (Google)
- OpenAI (GPT)

Both talk REST through the shared retry client, so timeouts, backoff and
error classification behave the same for every provider.
"""

import asyncio
import logging
import time
from abc import abstractmethod
from typing import Any, Optional

import httpx

from cepi.errors import UpstreamAuthError, UpstreamError, UpstreamResponseError, UpstreamTransportError
from cepi.models import RetryAttempt
from cepi.utils.resilience import SleepFn, fetch_with_retry, raise_for_upstream_status

from .base import BaseLLMClient, LLMConfig, LLMResponse

logger = logging.getLogger(__name__)

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
OPENAI_URL = "https://api.openai.com/v1/chat/completions"


def _error_kind(error: UpstreamError) -> str:
    if isinstance(error, UpstreamAuthError):
        return "auth"
    if isinstance(error, UpstreamTransportError):
        return "transport"
    return "response"


class _RestLLMClient(BaseLLMClient):
    """Shared request/response handling for REST providers."""

    def __init__(
        self,
        config: Optional[LLMConfig] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        sleep: SleepFn = asyncio.sleep,
    ):
        super().__init__(config)
        self._http_client = http_client
        self._sleep = sleep

    def _enable(self, default_model: str) -> bool:
        if not self.config.api_key:
            logger.info(f"{self._provider_name}: No API key - client disabled")
            return False
        if not self.config.model or self.config.model == "default":
            self.config.model = default_model
        self.available = True
        logger.info(f"{self._provider_name}: Connected via REST ({self.config.model})")
        return True

    def _failure(self, error: str, kind: str, start: float, **extra: Any) -> LLMResponse:
        return LLMResponse(
            success=False,
            error=error,
            error_kind=kind,
            provider=self._provider_name,
            model=self.config.model or "unknown",
            latency_ms=int((time.time() - start) * 1000),
            **extra,
        )

    async def _post(self, url: str, payload: dict, headers: dict) -> tuple[Any, int]:
        """POST with retries. Returns (parsed JSON body, attempts made)."""
        attempts: list[RetryAttempt] = []
        try:
            response = await fetch_with_retry(
                url,
                self.config.max_attempts,
                self.config.timeout_ms,
                method="POST",
                service=self._provider_name,
                client=self._http_client,
                backoff_base_ms=self.config.backoff_base_ms,
                jitter_ms=self.config.jitter_ms,
                sleep=self._sleep,
                attempts=attempts,
                json=payload,
                headers=headers,
            )
        except UpstreamError as e:
            e.attempt_count = len(attempts)
            raise
        raise_for_upstream_status(response, self._provider_name)
        try:
            return response.json(), len(attempts)
        except ValueError:
            raise UpstreamResponseError(
                f"{self._provider_name} returned a non-JSON body",
                service=self._provider_name,
                status_code=response.status_code,
            ) from None

    @abstractmethod
    def _extract_text(self, body: Any) -> str:
        """Reply text from a provider response body."""

    def _usage(self, body: Any) -> dict:
        return {}

    @abstractmethod
    async def _request(self, prompt: str, system_prompt: Optional[str]) -> tuple[str, dict, dict]:
        """Build the (url, payload, headers) for one generate call."""

    async def generate(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
    ) -> LLMResponse:
        if not self.available:
            return LLMResponse(
                success=False,
                error=f"{self._provider_name} not available",
                error_kind="unavailable",
                provider=self._provider_name,
            )

        start = time.time()
        url, payload, headers = await self._request(prompt, system_prompt)
        try:
            body, attempt_count = await self._post(url, payload, headers)
        except UpstreamError as e:
            logger.error(f"{self._provider_name} generation failed: {e}")
            return self._failure(
                str(e),
                _error_kind(e),
                start,
                status_code=e.status_code,
                attempts=getattr(e, "attempt_count", 0),
            )

        text = self._extract_text(body)
        if not text:
            return self._failure(
                f"{self._provider_name} returned no text",
                "response",
                start,
                attempts=attempt_count,
            )
        return LLMResponse(
            success=True,
            text=text,
            usage=self._usage(body),
            provider=self._provider_name,
            model=self.config.model,
            latency_ms=int((time.time() - start) * 1000),
            attempts=attempt_count,
        )


class GeminiClient(_RestLLMClient):
    """Google Gemini client (generateContent REST endpoint)."""

    def __init__(
        self,
        config: Optional[LLMConfig] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        sleep: SleepFn = asyncio.sleep,
    ):
        super().__init__(config, http_client, sleep)
        self._provider_name = "gemini"
        self._enable("gemini-2.5-flash")

    async def _request(self, prompt: str, system_prompt: Optional[str]) -> tuple[str, dict, dict]:
        base = self.config.base_url or GEMINI_BASE_URL
        url = f"{base}/models/{self.config.model}:generateContent"

        payload: dict[str, Any] = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": self.config.temperature,
                "maxOutputTokens": self.config.max_tokens,
            },
        }
        if system_prompt:
            payload["systemInstruction"] = {"parts": [{"text": system_prompt}]}

        headers = {
            "Content-Type": "application/json",
            "x-goog-api-key": self.config.api_key,
        }
        return url, payload, headers

    def _extract_text(self, body: Any) -> str:
        if not isinstance(body, dict):
            return ""
        candidates = body.get("candidates") or []
        if not candidates:
            return ""
        parts = (candidates[0].get("content") or {}).get("parts") or []
        return "".join(p.get("text", "") for p in parts if isinstance(p, dict)).strip()

    def _usage(self, body: Any) -> dict:
        return body.get("usageMetadata", {}) if isinstance(body, dict) else {}


class OpenAIClient(_RestLLMClient):
    """OpenAI GPT client (chat completions REST endpoint)."""

    def __init__(
        self,
        config: Optional[LLMConfig] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        sleep: SleepFn = asyncio.sleep,
    ):
        super().__init__(config, http_client, sleep)
        self._provider_name = "openai"
        self._enable("gpt-4o-mini")

    async def _request(self, prompt: str, system_prompt: Optional[str]) -> tuple[str, dict, dict]:
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        payload = {
            "model": self.config.model,
            "messages": messages,
            "temperature": self.config.temperature,
            "max_tokens": self.config.max_tokens,
        }
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.config.api_key}",
        }
        return self.config.base_url or OPENAI_URL, payload, headers

    def _extract_text(self, body: Any) -> str:
        if not isinstance(body, dict):
            return ""
        choices = body.get("choices") or [{}]
        return ((choices[0].get("message") or {}).get("content") or "").strip()

    def _usage(self, body: Any) -> dict:
        usage = body.get("usage") if isinstance(body, dict) else None
        if not usage:
            return {}
        return {
            "prompt_tokens": usage.get("prompt_tokens", 0),
            "completion_tokens": usage.get("completion_tokens", 0),
        }


class DisabledClient(BaseLLMClient):
    """Placeholder when no provider key is configured. Agents fall back."""

    def __init__(self, config: Optional[LLMConfig] = None):
        super().__init__(config)
        self._provider_name = "disabled"
        self.available = False

    async def generate(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
    ) -> LLMResponse:
        return LLMResponse(
            success=False,
            error="No LLM provider configured",
            error_kind="unavailable",
            provider=self._provider_name,
        )
