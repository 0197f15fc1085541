"""Full event analysis: three independent agents in parallel, then scoring.

Weather, current events and historic analyses run concurrently. A failure
in one never aborts the others; it is replaced by that agent's fallback
report so the fan-in always completes with three results before the
organizer scoring agent runs.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Optional

from cepi.fallback import generate_fallback
from cepi.models import AgentKind, AgentReport, EventRequest

from .dispatcher import AgentDispatcher

logger = logging.getLogger(__name__)

ANALYSIS_REQUIRED_FIELDS = ("eventType", "location", "date")

PARALLEL_KINDS = (
    AgentKind.WEATHER,
    AgentKind.CURRENT_EVENTS,
    AgentKind.HISTORIC_EVENTS,
)


@dataclass(slots=True)
class EventAnalysis:
    """Every agent report for one event."""
    event: EventRequest
    weather: AgentReport
    current_events: AgentReport
    historic: AgentReport
    scoring: AgentReport
    latency_ms: int = 0

    @property
    def reports(self) -> list[AgentReport]:
        return [self.weather, self.current_events, self.historic, self.scoring]

    def to_dict(self) -> dict[str, Any]:
        return {
            "eventDetails": self.event.to_dict(),
            "results": {report.kind.value: report.result for report in self.reports},
            "fallbackAgents": [r.kind.value for r in self.reports if r.fallback_mode],
            "latencyMs": self.latency_ms,
        }


class EventAnalysisOrchestrator:
    """Runs the complete analysis for one event through the dispatcher."""
    __slots__ = ("_dispatcher",)

    def __init__(self, dispatcher: AgentDispatcher):
        self._dispatcher = dispatcher

    async def analyze(
        self,
        event_payload: dict[str, Any],
        event_id: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> EventAnalysis:
        """
        Raises:
            ValidationError: eventType, location or date is missing or invalid.
        """
        start = time.time()
        event = EventRequest.from_dict(event_payload, required=ANALYSIS_REQUIRED_FIELDS)
        details = event.to_dict()

        tasks = {
            kind: asyncio.create_task(self._dispatcher.dispatch(kind, details, event_id, user_id))
            for kind in PARALLEL_KINDS
        }

        results: dict[AgentKind, AgentReport] = {}
        for kind, task in tasks.items():
            try:
                results[kind] = await task
            except Exception as e:
                logger.warning(f"{kind.value} analysis failed: {e}")
                results[kind] = generate_fallback(kind, event, f"{kind.value} analysis failed: {e}")

        weather = results[AgentKind.WEATHER]
        current_events = results[AgentKind.CURRENT_EVENTS]
        historic = results[AgentKind.HISTORIC_EVENTS]

        scoring = await self._dispatcher.dispatch(
            AgentKind.ORGANIZER_SCORING,
            {
                "eventDetails": details,
                "weatherAnalysis": weather.result,
                "currentEventsAnalysis": current_events.result,
                "historicAnalysis": historic.result,
            },
            event_id,
            user_id,
        )

        latency_ms = int((time.time() - start) * 1000)
        logger.info(
            f"Event analysis complete in {latency_ms}ms "
            f"({sum(r.fallback_mode for r in (weather, current_events, historic, scoring))} fallback reports)"
        )
        return EventAnalysis(event, weather, current_events, historic, scoring, latency_ms)
