"""Shared agent plumbing: fallback switching and upstream error absorption."""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Optional

import httpx

from cepi.config import Config
from cepi.errors import UpstreamAuthError, UpstreamError
from cepi.fallback import generate_fallback
from cepi.llm import BaseLLMClient, DisabledClient
from cepi.models import AgentKind, AgentPayload, AgentReport, parse_payload
from cepi.utils.resilience import SleepFn

logger = logging.getLogger(__name__)

# Environment variable that fixes each upstream's credentials
SERVICE_ENV_KEYS = {
    "openweathermap": "WEATHER_API_KEY",
    "gemini": "GEMINI_API_KEY",
    "openai": "OPENAI_API_KEY",
}


def configuration_notice(error: UpstreamAuthError) -> str:
    env_key = SERVICE_ENV_KEYS.get(error.service, "the API key")
    return (
        f"> ⚠️ **Configuration problem:** {error.service} rejected the configured credentials "
        f"(HTTP {error.status_code}). Check {env_key}. The analysis below is an estimate.\n\n"
    )


class BaseAgent(ABC):
    """One analysis agent.

    Subclasses implement ``_analyze`` for the live path. ``run`` never raises
    for upstream problems: transport failures become fallback reports and
    credential failures become fallback reports with a visible notice.
    """
    __slots__ = ("_config", "_llm", "_http_client", "_sleep")

    kind: AgentKind

    def __init__(
        self,
        config: Config,
        llm: Optional[BaseLLMClient] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        sleep: SleepFn = asyncio.sleep,
    ):
        self._config = config
        self._llm = llm or DisabledClient()
        self._http_client = http_client
        self._sleep = sleep

    @property
    def llm_available(self) -> bool:
        return self._llm.available

    async def run(self, payload: Any) -> AgentReport:
        """Analyze ``payload`` (a typed payload or its raw dict form).

        Raises:
            ValidationError: The payload is missing required fields.
        """
        if isinstance(payload, dict):
            payload = parse_payload(self.kind, payload)

        start = time.time()
        try:
            report = await self._analyze(payload)
        except UpstreamAuthError as e:
            logger.error(f"{self.kind.value}: credentials rejected by {e.service}: {e}")
            report = self.fallback(payload, str(e))
            report.markdown = configuration_notice(e) + report.markdown
            report.response.metadata["configurationError"] = str(e)
        except UpstreamError as e:
            logger.error(f"{self.kind.value}: upstream failure, using fallback: {e}")
            report = self.fallback(payload, str(e))

        metadata = report.response.metadata
        metadata.setdefault("timestamp", datetime.now(timezone.utc).isoformat())
        metadata["processingMs"] = int((time.time() - start) * 1000)
        return report

    def fallback(self, payload: AgentPayload, reason: str) -> AgentReport:
        return generate_fallback(self.kind, payload, reason)

    async def _generate(self, prompt: str) -> str:
        """Ask the LLM for text, raising the upstream error on failure."""
        response = await self._llm.generate(prompt)
        if not response.success:
            raise response.to_error()
        return response.text

    def _llm_missing_reason(self) -> str:
        return f"no LLM provider configured for {self.kind.value}"

    @abstractmethod
    async def _analyze(self, payload: AgentPayload) -> AgentReport:
        """Live analysis. May raise UpstreamError."""
