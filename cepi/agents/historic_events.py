"""Historic Events Agent - benchmarks from comparable past events.

A reproducible history is synthesized for the event type and location,
then summarized by the LLM (150 words) alongside aggregate statistics.
"""

import logging

from cepi.fallback import history_reference_year, historical_aggregates, synthesize_historical_events
from cepi.formatting import render_historic_report
from cepi.models import AgentKind, AgentReport, EventRequest
from cepi.normalizer import normalize
from cepi.prompts import build_prompt
from cepi.text import count_words, truncate_to_word_limit

from .base import BaseAgent

logger = logging.getLogger(__name__)

ANALYSIS_CONFIDENCE = 80


class HistoricEventsAgent(BaseAgent):
    kind = AgentKind.HISTORIC_EVENTS

    async def _analyze(self, event: EventRequest) -> AgentReport:
        if not self.llm_available:
            logger.info("historicEvents: no LLM configured - using fallback analysis")
            return self.fallback(event, self._llm_missing_reason())

        history = synthesize_historical_events(event.event_type, event.location, history_reference_year(event))
        logger.info(f"historicEvents: {len(history)} comparable events for {event.event_type} in {event.location}")
        aggregates = historical_aggregates(history)

        word_limit = self._config.historic_word_limit
        prompt = build_prompt(
            self.kind,
            {"eventDetails": event.to_dict(), "historicalData": history, "wordLimit": word_limit},
        )
        analysis = truncate_to_word_limit(await self._generate(prompt), word_limit)

        response = normalize(
            self.kind,
            analysis,
            f"Historical benchmarks for {event.event_type} in {event.location}",
            max_words=word_limit,
            max_items=self._config.list_display_cap,
        )
        response.confidence_score = ANALYSIS_CONFIDENCE
        response.metadata.update({
            "dataSource": "AI Analysis + Historical Data",
            "historicalData": aggregates,
            "wordCount": count_words(analysis),
        })
        markdown = render_historic_report(event.event_type, event.location, event.date, analysis, aggregates)
        return AgentReport(self.kind, markdown, response)
