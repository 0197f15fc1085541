"""Current Events Agent - competitive landscape and traffic impact.

Competing events and traffic are synthesized locally and handed to the
LLM as context. The reply is truncated, normalized and returned to the
caller as a JSON NormalizedAgentResponse.
"""

import logging

from cepi.fallback import estimate_traffic, synthesize_competing_events
from cepi.formatting import render_current_events_report
from cepi.models import AgentKind, AgentReport, EventRequest
from cepi.normalizer import normalize
from cepi.prompts import build_prompt
from cepi.text import count_words, truncate_to_word_limit

from .base import BaseAgent

logger = logging.getLogger(__name__)


class CurrentEventsAgent(BaseAgent):
    kind = AgentKind.CURRENT_EVENTS

    async def _analyze(self, event: EventRequest) -> AgentReport:
        if not self.llm_available:
            logger.info("currentEvents: no LLM configured - using fallback analysis")
            return self.fallback(event, self._llm_missing_reason())

        competing = synthesize_competing_events(event.location, event.date)
        traffic = estimate_traffic(event.location, event.date)
        word_limit = self._config.current_events_word_limit

        prompt = build_prompt(
            self.kind,
            {
                "eventDetails": event.to_dict(),
                "currentEvents": competing,
                "trafficConditions": traffic,
                "wordLimit": word_limit,
            },
        )
        raw = truncate_to_word_limit(await self._generate(prompt), word_limit)

        summary = f"Competitive landscape analysis for {event.event_type or 'the event'} in {event.location} on {event.date}"
        response = normalize(
            self.kind,
            raw,
            summary,
            max_words=word_limit,
            max_items=self._config.list_display_cap,
        )
        if not response.findings and not response.recommendations:
            logger.warning("currentEvents: model reply had no usable content - using fallback analysis")
            return self.fallback(event, "model reply had no usable content")

        response.metadata.update({
            "dataSource": "AI analysis of local events and traffic estimates",
            "eventsFound": len(competing),
            "trafficDataAvailable": True,
            "trafficLevel": traffic["trafficLevel"],
            "wordCount": count_words(raw),
        })
        markdown = render_current_events_report(
            event.event_type,
            event.location,
            event.date,
            raw,
            len(competing),
            True,
            response.confidence_score,
        )
        return AgentReport(self.kind, markdown, response)
