"""AI Assistant - free-form charity event planning chat."""

import logging

from cepi.models import AgentKind, AgentReport, AssistantPayload
from cepi.normalizer import normalize
from cepi.prompts import build_prompt
from cepi.text import count_words, truncate_to_word_limit
from cepi.utils.resilience import sanitize_text_input

from .base import BaseAgent

logger = logging.getLogger(__name__)


class AIAssistantAgent(BaseAgent):
    kind = AgentKind.AI_ASSISTANT

    async def _analyze(self, payload: AssistantPayload) -> AgentReport:
        if not self.llm_available:
            logger.info("aiAssistant: no LLM configured - replying with planning tips")
            return self.fallback(payload, self._llm_missing_reason())

        word_limit = self._config.assistant_word_limit
        prompt = build_prompt(
            self.kind,
            {"message": sanitize_text_input(payload.message), "wordLimit": word_limit},
        )
        reply = truncate_to_word_limit(await self._generate(prompt), word_limit)

        response = normalize(self.kind, reply, max_words=word_limit)
        response.metadata.update({"dataSource": "AI assistant", "wordCount": count_words(reply)})
        return AgentReport(self.kind, reply, response)
