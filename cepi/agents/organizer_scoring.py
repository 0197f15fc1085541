"""Organizer Scoring Agent - readiness assessment across all analyses.

Consumes the weather, current events and historical outputs (the caller
runs those first) and asks the LLM for the readiness JSON structure.
"""

import logging

from cepi.formatting import render_readiness_report
from cepi.models import AgentKind, AgentReport, ScoringPayload
from cepi.normalizer import normalize
from cepi.prompts import build_prompt

from .base import BaseAgent

logger = logging.getLogger(__name__)


class OrganizerScoringAgent(BaseAgent):
    kind = AgentKind.ORGANIZER_SCORING

    async def _analyze(self, payload: ScoringPayload) -> AgentReport:
        if not self.llm_available:
            logger.info("organizerScoring: no LLM configured - using heuristic score")
            return self.fallback(payload, self._llm_missing_reason())

        event_details = payload.event.to_dict()
        prompt = build_prompt(
            self.kind,
            {
                "eventDetails": event_details,
                "weatherAnalysis": payload.weather_analysis,
                "currentEventsAnalysis": payload.current_events_analysis,
                "historicAnalysis": payload.historic_analysis,
            },
        )
        raw = await self._generate(prompt)
        response = normalize(self.kind, raw, "Event readiness assessment")

        structured = response.metadata.get("structured")
        if isinstance(structured, dict):
            try:
                markdown = render_readiness_report(structured, event_details)
            except (TypeError, ValueError, AttributeError) as exc:
                logger.warning(f"organizerScoring: could not render readiness JSON ({exc}) - using reply text")
                markdown = raw.strip()
        else:
            # Model ignored the JSON contract; show its prose as is
            logger.warning(
                f"organizerScoring: no readiness JSON in reply (parsed as {response.metadata.get('parsingMethod')})"
            )
            markdown = raw.strip()

        response.metadata["dataSource"] = "AI readiness assessment"
        return AgentReport(self.kind, markdown, response)
