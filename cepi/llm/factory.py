"""
LLM Provider Factory.

Picks a provider from the explicit keys on Config and creates the client.
Keys are never read from the environment here; Config owns that.
"""

import asyncio
import logging
from typing import Optional

import httpx

from cepi.config import Config
from cepi.utils.resilience import SleepFn

from .base import BaseLLMClient, LLMConfig
from .providers import DisabledClient, GeminiClient, OpenAIClient

logger = logging.getLogger(__name__)

# Provider priority order (first available wins)
PROVIDER_PRIORITY = ["gemini", "openai"]

# Environment variable that carries each provider's key (for messages)
PROVIDER_ENV_KEYS = {
    "gemini": "GEMINI_API_KEY",
    "openai": "OPENAI_API_KEY",
}

PROVIDER_CLIENTS = {
    "gemini": GeminiClient,
    "openai": OpenAIClient,
}


def get_available_providers(keys: dict[str, str]) -> list[str]:
    """Providers (in priority order) that have a non-empty key."""
    return [p for p in PROVIDER_PRIORITY if keys.get(p)]


def create_llm_client(
    provider: str = "auto",
    keys: Optional[dict[str, str]] = None,
    models: Optional[dict[str, str]] = None,
    http_client: Optional[httpx.AsyncClient] = None,
    sleep: SleepFn = asyncio.sleep,
    **kwargs,
) -> BaseLLMClient:
    """
    Create an LLM client with auto-detection or explicit provider.

    Args:
        provider: Provider name or "auto" for the first provider with a key
        keys: provider -> API key
        models: provider -> model override
        http_client: Optional shared AsyncClient
        sleep: Backoff sleep, injectable for tests
        **kwargs: Additional LLMConfig options

    Returns:
        Configured BaseLLMClient instance (DisabledClient if nothing usable)

    Example:
        client = create_llm_client(keys={"gemini": "..."})
    """
    keys = keys or {}
    models = models or {}

    if provider == "auto":
        candidates = get_available_providers(keys)
        if not candidates:
            logger.info("LLM: No provider API keys found - agents will use fallback analysis")
            return DisabledClient(LLMConfig(**kwargs))
        logger.info(f"LLM: Available providers: {', '.join(candidates)}")
    elif provider in PROVIDER_CLIENTS:
        candidates = [provider]
    else:
        logger.warning(f"LLM: Unknown provider '{provider}'")
        return DisabledClient(LLMConfig(**kwargs))

    for name in candidates:
        config = LLMConfig(
            provider=name,
            api_key=keys.get(name) or None,
            model=models.get(name) or None,
            **kwargs,
        )
        client = PROVIDER_CLIENTS[name](config, http_client=http_client, sleep=sleep)
        if client.available:
            logger.info(f"LLM: Using {name} ({client.config.model})")
            return client
        logger.warning(f"LLM: {name} requested but {PROVIDER_ENV_KEYS[name]} is not set")

    return DisabledClient(LLMConfig(**kwargs))


def create_llm_client_from_config(
    cfg: Config,
    http_client: Optional[httpx.AsyncClient] = None,
    sleep: SleepFn = asyncio.sleep,
    **overrides,
) -> BaseLLMClient:
    """
    Create the LLM client described by Config.

    This is the integration point for cepi.config.Config. ``overrides``
    replace individual LLMConfig settings, e.g. the health probe uses a
    single short attempt and the input parser a low temperature.
    """
    settings = {
        "temperature": cfg.llm_temperature,
        "max_tokens": cfg.llm_max_tokens,
        "timeout_ms": cfg.llm_timeout_ms,
        "max_attempts": cfg.llm_max_attempts,
        "backoff_base_ms": cfg.backoff_base_ms,
        "jitter_ms": cfg.backoff_jitter_ms,
    }
    settings.update(overrides)
    return create_llm_client(
        provider=cfg.llm_provider,
        keys={"gemini": cfg.gemini_api_key, "openai": cfg.openai_api_key},
        models={"gemini": cfg.gemini_model, "openai": cfg.openai_model},
        http_client=http_client,
        sleep=sleep,
        **settings,
    )
