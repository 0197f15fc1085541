"""Configuration with sensible defaults for LITE MODE (no upstream API keys).

Every upstream is optional. A missing key switches the agents that depend on
it to locally generated fallback analysis instead of failing the request.
"""

from dataclasses import dataclass, field
from os import getenv


def _parse_bool(value: str, default: bool = True) -> bool:
    """Parse boolean from environment variable."""
    if not value:
        return default
    return value.lower() in ("true", "1", "yes", "on")


def _parse_float(value: str, default: float) -> float:
    """Parse float from environment variable."""
    try:
        return float(value) if value else default
    except ValueError:
        return default


def _parse_int(value: str, default: int) -> int:
    """Parse int from environment variable."""
    try:
        return int(value) if value else default
    except ValueError:
        return default


@dataclass(slots=True, frozen=True)
class Config:
    # ==================== LLM (optional - empty = fallback analysis) ====================
    # Provider: auto, gemini, openai
    llm_provider: str = field(default_factory=lambda: getenv("LLM_PROVIDER", "auto"))
    gemini_api_key: str = field(default_factory=lambda: getenv("GEMINI_API_KEY", ""))
    gemini_model: str = field(default_factory=lambda: getenv("GEMINI_MODEL", "gemini-2.5-flash"))
    openai_api_key: str = field(default_factory=lambda: getenv("OPENAI_API_KEY", ""))
    openai_model: str = field(default_factory=lambda: getenv("OPENAI_MODEL", "gpt-4o-mini"))
    llm_temperature: float = field(
        default_factory=lambda: _parse_float(getenv("LLM_TEMPERATURE", ""), 0.4)
    )
    llm_max_tokens: int = field(
        default_factory=lambda: _parse_int(getenv("LLM_MAX_TOKENS", ""), 2048)
    )

    # ==================== Weather / Maps (optional) ====================
    weather_api_key: str = field(default_factory=lambda: getenv("WEATHER_API_KEY", ""))
    weather_base_url: str = field(
        default_factory=lambda: getenv("WEATHER_BASE_URL", "https://api.openweathermap.org")
    )
    maps_api_key: str = field(default_factory=lambda: getenv("MAPS_API_KEY", ""))

    # ==================== Persistence (optional - empty = not recorded) ====================
    supabase_url: str = field(default_factory=lambda: getenv("SUPABASE_URL", ""))
    supabase_key: str = field(default_factory=lambda: getenv("SUPABASE_KEY", ""))
    enable_persistence: bool = field(
        default_factory=lambda: _parse_bool(getenv("ENABLE_PERSISTENCE", ""), True)
    )

    # ==================== Retry / Timeouts ====================
    # Weather lookups are cheap and interactive, so they get fewer and shorter attempts
    weather_max_attempts: int = field(
        default_factory=lambda: _parse_int(getenv("WEATHER_MAX_ATTEMPTS", ""), 2)
    )
    weather_timeout_ms: int = field(
        default_factory=lambda: _parse_int(getenv("WEATHER_TIMEOUT_MS", ""), 8000)
    )
    llm_max_attempts: int = field(
        default_factory=lambda: _parse_int(getenv("LLM_MAX_ATTEMPTS", ""), 3)
    )
    llm_timeout_ms: int = field(
        default_factory=lambda: _parse_int(getenv("LLM_TIMEOUT_MS", ""), 30000)
    )
    backoff_base_ms: int = field(
        default_factory=lambda: _parse_int(getenv("BACKOFF_BASE_MS", ""), 1000)
    )
    backoff_jitter_ms: int = field(
        default_factory=lambda: _parse_int(getenv("BACKOFF_JITTER_MS", ""), 1000)
    )
    health_timeout_ms: int = field(
        default_factory=lambda: _parse_int(getenv("HEALTH_TIMEOUT_MS", ""), 5000)
    )

    # ==================== Output limits ====================
    current_events_word_limit: int = field(
        default_factory=lambda: _parse_int(getenv("CURRENT_EVENTS_WORD_LIMIT", ""), 250)
    )
    historic_word_limit: int = field(
        default_factory=lambda: _parse_int(getenv("HISTORIC_WORD_LIMIT", ""), 150)
    )
    assistant_word_limit: int = field(
        default_factory=lambda: _parse_int(getenv("ASSISTANT_WORD_LIMIT", ""), 250)
    )
    list_display_cap: int = field(
        default_factory=lambda: _parse_int(getenv("LIST_DISPLAY_CAP", ""), 5)
    )

    # ==================== Server ====================
    log_level: str = field(default_factory=lambda: getenv("LOG_LEVEL", "INFO"))
    cors_origins: str = field(default_factory=lambda: getenv("CORS_ORIGINS", "*"))

    def is_llm_available(self) -> bool:
        """Check if any LLM provider key is configured."""
        if self.llm_provider == "gemini":
            return bool(self.gemini_api_key)
        if self.llm_provider == "openai":
            return bool(self.openai_api_key)
        return bool(self.gemini_api_key or self.openai_api_key)

    def is_weather_available(self) -> bool:
        """Check if OpenWeatherMap is configured."""
        return bool(self.weather_api_key)

    def is_maps_available(self) -> bool:
        """Check if the maps geocoding API is configured."""
        return bool(self.maps_api_key)

    def is_persistence_available(self) -> bool:
        """Check if agent results can be recorded."""
        return bool(self.supabase_url and self.supabase_key and self.enable_persistence)

    def get_cors_origins(self) -> list[str]:
        """Split the comma separated CORS origin list."""
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    def get_mode(self) -> str:
        """FULL when the LLM and weather upstreams are both configured."""
        return "FULL" if self.is_llm_available() and self.is_weather_available() else "LITE"
