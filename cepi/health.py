"""Health checks for the agents' upstream dependencies.

Each configured upstream gets one lightweight probe with a short timeout.
Per-agent status comes from the agent's critical dependency (the weather
API for the weather agent, the LLM for the rest) plus its optional ones.
Nothing here mutates state.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

import httpx

from cepi.config import Config
from cepi.llm import BaseLLMClient, DisabledClient
from cepi.models import AgentKind

logger = logging.getLogger(__name__)

HEALTH_PROMPT = "Health check - respond with 'OK'"


class HealthState(str, Enum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(slots=True)
class HealthStatus:
    status: HealthState
    timestamp: str = field(default_factory=_now)
    response_time_ms: Optional[int] = None
    error: Optional[str] = None
    details: dict[str, Any] = field(default_factory=dict)
    configured: bool = True

    def to_dict(self) -> dict[str, Any]:
        result = {
            "status": self.status.value,
            "timestamp": self.timestamp,
            "configured": self.configured,
        }
        if self.response_time_ms is not None:
            result["responseTime"] = self.response_time_ms
        if self.error:
            result["error"] = self.error
        if self.details:
            result["details"] = self.details
        return result


def _not_configured(what: str) -> HealthStatus:
    return HealthStatus(HealthState.UNHEALTHY, error=f"{what} not configured", configured=False)


# Agent -> (critical dependency, optional dependencies)
AGENT_DEPENDENCIES: dict[AgentKind, tuple[str, tuple[str, ...]]] = {
    AgentKind.WEATHER: ("weatherApi", ("llmApi", "supabase")),
    AgentKind.CURRENT_EVENTS: ("llmApi", ("mapsApi", "supabase")),
    AgentKind.HISTORIC_EVENTS: ("llmApi", ("supabase",)),
    AgentKind.ORGANIZER_SCORING: ("llmApi", ("supabase",)),
    AgentKind.AI_ASSISTANT: ("llmApi", ()),
}


def agent_status(kind: AgentKind, dependencies: dict[str, HealthStatus]) -> HealthStatus:
    """Combine dependency probes into one agent status.

    An unconfigured critical dependency means the agent serves fallback
    analysis (degraded). A configured one that fails means unhealthy.
    """
    critical_name, optional_names = AGENT_DEPENDENCIES[kind]
    critical = dependencies[critical_name]

    if critical.status == HealthState.UNHEALTHY:
        state = HealthState.DEGRADED if not critical.configured else HealthState.UNHEALTHY
    else:
        state = critical.status

    optional = [dependencies[name] for name in optional_names]
    if state == HealthState.HEALTHY and any(
        dep.configured and dep.status != HealthState.HEALTHY for dep in optional
    ):
        state = HealthState.DEGRADED

    relevant = [critical, *optional]
    return HealthStatus(
        state,
        details={
            "criticalDependency": critical_name,
            "mode": "live" if critical.status != HealthState.UNHEALTHY else "fallback",
            "totalDependencies": len(relevant),
            "healthyDependencies": sum(d.status == HealthState.HEALTHY for d in relevant),
        },
    )


def overall_status(states: list[HealthState]) -> HealthState:
    if HealthState.UNHEALTHY in states:
        return HealthState.UNHEALTHY
    if HealthState.DEGRADED in states:
        return HealthState.DEGRADED
    return HealthState.HEALTHY


class HealthChecker:
    """Probes Gemini/OpenAI, OpenWeatherMap, Google Maps and Supabase."""
    __slots__ = ("_config", "_http_client", "_llm", "_timeout_s")

    def __init__(
        self,
        config: Config,
        http_client: Optional[httpx.AsyncClient] = None,
        llm: Optional[BaseLLMClient] = None,
    ):
        self._config = config
        self._http_client = http_client
        self._llm = llm or DisabledClient()
        self._timeout_s = config.health_timeout_ms / 1000

    async def _get(self, url: str, **options: Any) -> tuple[httpx.Response, int]:
        start = time.time()
        if self._http_client is not None:
            response = await self._http_client.get(url, timeout=self._timeout_s, **options)
        else:
            async with httpx.AsyncClient() as client:
                response = await client.get(url, timeout=self._timeout_s, **options)
        return response, int((time.time() - start) * 1000)

    async def _probe(self, url: str, details: dict[str, Any], **options: Any) -> HealthStatus:
        start = time.time()
        try:
            response, elapsed = await self._get(url, **options)
        except httpx.HTTPError as e:
            return HealthStatus(
                HealthState.UNHEALTHY,
                response_time_ms=int((time.time() - start) * 1000),
                error=f"{type(e).__name__}: {e}",
            )
        if response.is_success:
            return HealthStatus(HealthState.HEALTHY, response_time_ms=elapsed, details=details)
        return HealthStatus(
            HealthState.UNHEALTHY,
            response_time_ms=elapsed,
            error=f"HTTP {response.status_code}: {response.reason_phrase}",
        )

    async def check_llm(self) -> HealthStatus:
        if not self._llm.available:
            return _not_configured("LLM API key")
        start = time.time()
        response = await self._llm.generate(HEALTH_PROMPT)
        elapsed = int((time.time() - start) * 1000)
        details = {"provider": response.provider, "model": response.model}
        if not response.success:
            return HealthStatus(HealthState.UNHEALTHY, response_time_ms=elapsed, error=response.error, details=details)
        if "ok" in response.text.lower():
            return HealthStatus(HealthState.HEALTHY, response_time_ms=elapsed, details=details)
        return HealthStatus(
            HealthState.DEGRADED, response_time_ms=elapsed, error="Unexpected response format", details=details
        )

    async def check_weather(self) -> HealthStatus:
        if not self._config.is_weather_available():
            return _not_configured("WEATHER_API_KEY")
        return await self._probe(
            f"{self._config.weather_base_url.rstrip('/')}/geo/1.0/direct",
            {"service": "OpenWeatherMap", "testLocation": "London"},
            params={"q": "London", "limit": 1, "appid": self._config.weather_api_key},
        )

    async def check_maps(self) -> HealthStatus:
        if not self._config.is_maps_available():
            return _not_configured("MAPS_API_KEY")
        return await self._probe(
            "https://maps.googleapis.com/maps/api/geocode/json",
            {"service": "Google Maps", "testLocation": "New York"},
            params={"address": "New York", "key": self._config.maps_api_key},
        )

    async def check_supabase(self) -> HealthStatus:
        if not (self._config.supabase_url and self._config.supabase_key):
            return _not_configured("SUPABASE_URL or SUPABASE_KEY")
        key = self._config.supabase_key
        return await self._probe(
            f"{self._config.supabase_url.rstrip('/')}/rest/v1/",
            {"service": "Supabase"},
            headers={"apikey": key, "Authorization": f"Bearer {key}"},
        )

    async def check_dependencies(self) -> dict[str, HealthStatus]:
        """Probe every dependency concurrently. A crashed probe counts as unhealthy."""
        names = ("llmApi", "weatherApi", "mapsApi", "supabase")
        results = await asyncio.gather(
            self.check_llm(),
            self.check_weather(),
            self.check_maps(),
            self.check_supabase(),
            return_exceptions=True,
        )
        dependencies = {}
        for name, result in zip(names, results):
            if isinstance(result, Exception):
                logger.warning(f"Health probe {name} failed: {result}")
                result = HealthStatus(HealthState.UNHEALTHY, error="Health check failed")
            dependencies[name] = result
        return dependencies

    def _agent_report(self, kind: AgentKind, dependencies: dict[str, HealthStatus]) -> dict[str, Any]:
        critical, optional = AGENT_DEPENDENCIES[kind]
        return {
            "agentName": kind.value,
            "status": agent_status(kind, dependencies).to_dict(),
            "dependencies": {name: dependencies[name].to_dict() for name in (critical, *optional)},
        }

    async def check_agent(self, kind: AgentKind) -> dict[str, Any]:
        kind = AgentKind.parse(kind)
        return self._agent_report(kind, await self.check_dependencies())

    async def system_health(self) -> dict[str, Any]:
        dependencies = await self.check_dependencies()
        agents = [self._agent_report(kind, dependencies) for kind in AgentKind]
        overall = overall_status([HealthState(a["status"]["status"]) for a in agents])
        return {
            "overall": overall.value,
            "agents": agents,
            "dependencies": {name: status.to_dict() for name, status in dependencies.items()},
            "timestamp": _now(),
        }
