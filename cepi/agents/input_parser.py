"""Input Parser - turns a free-text event description into form fields.

Not a dispatcher agent: it backs the parse endpoint and needs an LLM,
there is no local fallback for understanding prose.
"""

import json
import logging
from typing import Any, Optional

from cepi.errors import ParseError, ValidationError
from cepi.llm import BaseLLMClient
from cepi.normalizer import iter_json_candidates
from cepi.prompts import build_parser_prompt
from cepi.utils.resilience import sanitize_text_input

logger = logging.getLogger(__name__)

TEXT_FIELDS = (
    "eventType", "location", "date", "eventName", "venue",
    "time", "duration", "purpose", "audience", "context",
)
NUMBER_FIELDS = ("expectedAttendance", "budget")


def clean_parsed_fields(data: dict[str, Any]) -> dict[str, Any]:
    """Keep known fields only, with null for anything absent or mistyped."""
    cleaned: dict[str, Any] = {}
    for name in TEXT_FIELDS:
        value = data.get(name)
        cleaned[name] = value if value not in (None, "", "null") else None
    for name in NUMBER_FIELDS:
        value = data.get(name)
        is_number = isinstance(value, (int, float)) and not isinstance(value, bool)
        cleaned[name] = value if is_number else None
    requirements = data.get("specialRequirements")
    cleaned["specialRequirements"] = list(requirements) if isinstance(requirements, list) else []
    return cleaned


class InputParser:
    """Extracts EventRequest fields from prose with a low-temperature LLM."""
    __slots__ = ("_llm",)

    def __init__(self, llm: BaseLLMClient):
        self._llm = llm

    @property
    def available(self) -> bool:
        return self._llm.available

    async def parse(self, user_input: Optional[str]) -> dict[str, Any]:
        """
        Raises:
            ValidationError: Empty input.
            UpstreamError: The LLM call failed.
            ParseError: The reply held no JSON object.
        """
        text = sanitize_text_input(user_input or "")
        if not text:
            raise ValidationError("userInput is required", fields=["userInput"])

        response = await self._llm.generate(build_parser_prompt(text))
        if not response.success:
            raise response.to_error()

        for candidate in [response.text.strip(), *iter_json_candidates(response.text)]:
            try:
                data = json.loads(candidate)
            except ValueError:
                continue
            if isinstance(data, dict):
                logger.info(f"InputParser: extracted {sum(v is not None for v in data.values())} fields")
                return clean_parsed_fields(data)

        raise ParseError("Unable to parse user input: no JSON object in model reply")
