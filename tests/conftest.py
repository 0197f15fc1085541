"""Pytest configuration and shared fixtures."""

import pytest
import sys
from pathlib import Path
from unittest.mock import AsyncMock

import httpx

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from cepi.config import Config  # noqa: E402
from cepi.llm import BaseLLMClient, LLMConfig, LLMResponse  # noqa: E402


NO_KEYS = dict(
    gemini_api_key="",
    openai_api_key="",
    weather_api_key="",
    maps_api_key="",
    supabase_url="",
    supabase_key="",
    backoff_jitter_ms=0,
)


class SleepRecorder:
    """Stands in for asyncio.sleep and remembers every requested delay."""

    def __init__(self):
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture
def lite_config():
    """Config with no upstream keys: every agent runs in fallback mode."""
    return Config(**NO_KEYS)


@pytest.fixture
def live_config():
    """Config with fake Gemini, OpenWeatherMap and Supabase keys."""
    return Config(**{
        **NO_KEYS,
        "llm_provider": "gemini",
        "gemini_api_key": "test-gemini-key",
        "weather_api_key": "test-weather-key",
        "weather_base_url": "https://weather.test",
        "supabase_url": "https://db.test",
        "supabase_key": "test-supabase-key",
    })


@pytest.fixture
def sleep_recorder():
    return SleepRecorder()


@pytest.fixture
def mock_http():
    """Build an AsyncClient whose requests are answered by ``handler``."""
    def _make(handler):
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return _make


@pytest.fixture
def sample_event():
    return {
        "eventType": "Charity Run",
        "location": "Austin, TX",
        "date": "2026-11-14",
        "duration": "4 hours",
        "expectedAttendance": 500,
        "budget": 15000,
        "audience": "Families",
    }


@pytest.fixture
def new_york_event():
    return {
        "eventType": "Charity Gala",
        "location": "New York, NY",
        "date": "2026-07-18",
        "expectedAttendance": 300,
    }


# ============================================================================
# LLM stand-ins
# ============================================================================


def gemini_reply(text: str) -> dict:
    """Body of a successful Gemini generateContent response."""
    return {
        "candidates": [{"content": {"role": "model", "parts": [{"text": text}]}}],
        "usageMetadata": {"promptTokenCount": 12, "candidatesTokenCount": 8},
    }


class FakeLLM(BaseLLMClient):
    """Available LLM client that answers with scripted replies.

    Each reply is a string (success) or a ready-made LLMResponse.
    ``generate`` is an AsyncMock, so calls and prompts can be inspected.
    """

    def __init__(self, *replies):
        super().__init__(LLMConfig(provider="fake", model="fake-model"))
        self._provider_name = "fake"
        self.available = True
        self.generate = AsyncMock(side_effect=[
            r if isinstance(r, LLMResponse)
            else LLMResponse(success=True, text=r, provider="fake", model="fake-model")
            for r in replies
        ])

    async def generate(self, prompt, system_prompt=None):
        raise NotImplementedError

    @property
    def prompts(self) -> list[str]:
        return [c.args[0] for c in self.generate.await_args_list]


def llm_failure(kind: str = "transport", status_code=None) -> LLMResponse:
    return LLMResponse(
        success=False,
        error=f"fake {kind} failure",
        error_kind=kind,
        status_code=status_code,
        provider="fake",
    )


@pytest.fixture
def fake_llm():
    return FakeLLM


@pytest.fixture
def failed_llm_response():
    return llm_failure


@pytest.fixture
def gemini_body():
    return gemini_reply
