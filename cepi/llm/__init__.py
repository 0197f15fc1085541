"""
LLM Provider Package.

Provider-agnostic LLM client used by the analysis agents.
Supports Gemini and OpenAI.

Usage:
    from cepi.llm import create_llm_client_from_config

    client = create_llm_client_from_config(cfg)
    response = await client.generate(prompt)
"""

from .base import BaseLLMClient, LLMConfig, LLMResponse
from .factory import create_llm_client, create_llm_client_from_config, get_available_providers
from .providers import DisabledClient, GeminiClient, OpenAIClient

__all__ = [
    # Base
    "BaseLLMClient",
    "LLMConfig",
    "LLMResponse",
    # Providers
    "DisabledClient",
    "GeminiClient",
    "OpenAIClient",
    # Factory
    "create_llm_client",
    "create_llm_client_from_config",
    "get_available_providers",
]
