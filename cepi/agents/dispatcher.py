"""Agent Dispatcher - single entry point from ``{agent, payload}`` to a report."""

import asyncio
import logging
from typing import Any, Optional

import httpx

from cepi.config import Config
from cepi.llm import BaseLLMClient
from cepi.models import AgentInvocation, AgentKind, AgentReport
from cepi.utils.resilience import SleepFn

from .ai_assistant import AIAssistantAgent
from .base import BaseAgent
from .current_events import CurrentEventsAgent
from .historic_events import HistoricEventsAgent
from .organizer_scoring import OrganizerScoringAgent
from .weather import WeatherAgent

logger = logging.getLogger(__name__)

AGENT_CLASSES: dict[AgentKind, type[BaseAgent]] = {
    AgentKind.WEATHER: WeatherAgent,
    AgentKind.CURRENT_EVENTS: CurrentEventsAgent,
    AgentKind.HISTORIC_EVENTS: HistoricEventsAgent,
    AgentKind.ORGANIZER_SCORING: OrganizerScoringAgent,
    AgentKind.AI_ASSISTANT: AIAssistantAgent,
}


class AgentDispatcher:
    """Validates the requested kind and payload, then runs the matching agent.

    Agents hold no per-request state, so one dispatcher serves concurrent
    requests. Sequencing dependent calls (scoring after the three analyses)
    is the caller's job; see EventAnalysisOrchestrator.
    """
    __slots__ = ("_agents", "_store")

    def __init__(
        self,
        config: Config,
        llm: Optional[BaseLLMClient] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        store=None,
        sleep: SleepFn = asyncio.sleep,
    ):
        self._agents = {
            kind: cls(config, llm=llm, http_client=http_client, sleep=sleep)
            for kind, cls in AGENT_CLASSES.items()
        }
        self._store = store

    def agent(self, kind: AgentKind) -> BaseAgent:
        return self._agents[AgentKind.parse(kind)]

    async def dispatch(
        self,
        agent: Any,
        payload: Any,
        event_id: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> AgentReport:
        """
        Raises:
            InvalidAgentKind: ``agent`` is not a known kind.
            ValidationError: ``payload`` is missing required fields.
        """
        invocation = AgentInvocation.from_request(agent, payload, event_id, user_id)
        logger.info(
            f"Dispatching {invocation.kind.value}"
            + (f" for event {invocation.correlation_id}" if invocation.correlation_id else "")
        )

        report = await self._agents[invocation.kind].run(invocation.payload)

        if self._store is not None and invocation.correlation_id:
            await self._store.record_agent_result(
                invocation.correlation_id, invocation.kind.value, report.result
            )
        return report
