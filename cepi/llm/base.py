"""
LLM client interface shared by the analysis agents.

Clients report failures in the returned LLMResponse instead of raising, so
an agent decides for itself whether a failed call means fallback analysis.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional

from cepi.errors import UpstreamAuthError, UpstreamError, UpstreamTransportError

logger = logging.getLogger(__name__)

DEFAULT_MODELS = {
    "gemini": "gemini-2.5-flash",
    "openai": "gpt-4o-mini",
}


@dataclass(slots=True)
class LLMConfig:
    """Settings for one LLM client."""

    provider: str = "auto"  # auto, gemini, openai
    api_key: Optional[str] = None
    model: Optional[str] = None  # None picks the provider default

    temperature: float = 0.4
    max_tokens: int = 2048

    # Passed through to fetch_with_retry
    timeout_ms: int = 30000
    max_attempts: int = 3
    backoff_base_ms: int = 1000
    jitter_ms: int = 1000

    base_url: Optional[str] = None

    def __post_init__(self):
        if self.model is None:
            self.model = DEFAULT_MODELS.get(self.provider, "default")


@dataclass(slots=True)
class LLMResponse:
    """Outcome of one generate call, successful or not."""
    success: bool
    text: str = ""
    error: Optional[str] = None
    error_kind: Optional[str] = None  # auth | transport | response | unavailable
    status_code: Optional[int] = None
    usage: dict = field(default_factory=dict)
    provider: str = "unknown"
    model: str = "unknown"
    latency_ms: int = 0
    attempts: int = 0

    def to_error(self) -> UpstreamError:
        """The upstream error a failed response stands for."""
        message = self.error or f"{self.provider} request failed"
        if self.error_kind == "auth":
            return UpstreamAuthError(message, service=self.provider, status_code=self.status_code)
        if self.error_kind == "transport":
            return UpstreamTransportError(message, service=self.provider, status_code=self.status_code)
        return UpstreamError(message, service=self.provider, status_code=self.status_code)


class BaseLLMClient(ABC):
    """
    One LLM provider behind a single ``generate`` call.

    Implementations:
    - GeminiClient: generateContent REST endpoint
    - OpenAIClient: chat completions REST endpoint
    - DisabledClient: stands in when no key is configured
    """

    def __init__(self, config: Optional[LLMConfig] = None):
        self.config = config or LLMConfig()
        self.available = False
        self._provider_name = "base"

    @property
    def provider(self) -> str:
        return self._provider_name

    @abstractmethod
    async def generate(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
    ) -> LLMResponse:
        """
        Ask the model for text.

        Args:
            prompt: Main prompt text
            system_prompt: Optional system instruction

        Returns:
            LLMResponse carrying the text or the failure. Upstream problems
            never raise.
        """
