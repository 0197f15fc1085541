"""Response Normalizer - coerces raw model text into NormalizedAgentResponse.

Strategies run in order and the first one that produces a response wins:

1. strict JSON      - the whole text is a JSON object of the expected shape
2. embedded JSON    - a ```json fenced block or the first balanced {...}
3. section headings - bullets collected under findings/recommendations/... headers
4. raw fallback     - the whole text becomes a single finding

Each strategy raises ParseError when it cannot handle the input. The chain
absorbs those, so ``normalize`` never raises.
"""

import json
import logging
import math
import re
from typing import Any, Callable, Optional, Union

from cepi.errors import ParseError
from cepi.models import AgentKind, NormalizedAgentResponse
from cepi.text import truncate_to_word_limit

logger = logging.getLogger(__name__)

MAX_SECTION_ITEMS = 10
DEFAULT_MAX_WORDS = 250
SUMMARY_CHAR_LIMIT = 200

STRUCTURED_CONFIDENCE = 85
FALLBACK_CONFIDENCE = 70

_CONFIDENCE_WORDS = {"high": 85, "medium": 70, "low": 50}

# Section name -> keywords that mark a heading as belonging to it.
SECTION_KEYWORDS: list[tuple[str, tuple[str, ...]]] = [
    ("findings", ("finding", "analysis", "insight", "observation")),
    ("recommendations", ("recommendation", "suggest", "next step", "action")),
    ("risks", ("risk", "challenge", "concern", "threat")),
    ("opportunities", ("opportunit", "advantage", "benefit", "strength")),
]

_BULLET = re.compile(r"^(?:[•\-\*]|\d+[.)])\s+(.*)$")
_FENCED_JSON = re.compile(r"```(?:json|JSON)?\s*(\{.*?\})\s*```", re.DOTALL)
_HEADER_MARKUP = re.compile(r"^#{1,6}\s*|\*\*|__")

AgentName = Union[AgentKind, str]


# ============================================================================
# Coercion helpers
# ============================================================================

def clamp_confidence(value: Any, default: Optional[int] = STRUCTURED_CONFIDENCE) -> Optional[int]:
    """Coerce 85, 0.85, "85%" or "High" into an int in [0, 100]."""
    if isinstance(value, bool) or value is None:
        return default
    if isinstance(value, str):
        text = value.strip().lower()
        if text in _CONFIDENCE_WORDS:
            return _CONFIDENCE_WORDS[text]
        match = re.search(r"-?\d+(?:\.\d+)?", text)
        if not match:
            return default
        value = float(match.group())
    if not isinstance(value, (int, float)) or not math.isfinite(value):
        return default
    if 0 < value < 1:
        value = value * 100
    return max(0, min(100, int(round(value))))


def _item_text(item: Any) -> str:
    if isinstance(item, str):
        return item.strip()
    if isinstance(item, dict):
        for key in ("action", "risk", "text", "finding", "description", "title", "name"):
            if item.get(key):
                return str(item[key]).strip()
        return json.dumps(item, ensure_ascii=False)
    return str(item).strip()


def _string_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, (str, dict)):
        value = [value]
    if not isinstance(value, (list, tuple)):
        return []
    return [text for text in (_item_text(v) for v in value) if text]


def _finish(
    response: NormalizedAgentResponse,
    max_words: int,
    max_items: int,
) -> NormalizedAgentResponse:
    """Clamp confidence, cap list lengths and enforce the word limit."""
    response.confidence_score = clamp_confidence(response.confidence_score)
    response.summary = truncate_to_word_limit(response.summary, max_words)
    for name in ("findings", "recommendations", "risks", "opportunities"):
        items = getattr(response, name)[:max_items]
        setattr(response, name, [truncate_to_word_limit(i, max_words) for i in items])
    return response


# ============================================================================
# Strategies
# ============================================================================

def _has_expected_shape(agent: str, data: dict) -> bool:
    if agent == AgentKind.ORGANIZER_SCORING.value and "overallScore" in data:
        return True
    return "summary" in data and ("findings" in data or "recommendations" in data)


def _from_structured(agent: str, data: Any, raw_text: str, method: str) -> NormalizedAgentResponse:
    if not isinstance(data, dict):
        raise ParseError(f"expected a JSON object, got {type(data).__name__}")
    if not _has_expected_shape(agent, data):
        raise ParseError("JSON object is missing required top-level fields")

    metadata = dict(data["metadata"]) if isinstance(data.get("metadata"), dict) else {}
    metadata["parsingMethod"] = method

    if "overallScore" in data:
        # Readiness report shape
        success = data.get("successProbability") or {}
        confidence = success.get("confidence") if isinstance(success, dict) else None
        risks = _string_list(data.get("criticalIssues")) + _string_list(data.get("riskAssessment"))
        metadata["structured"] = data
        return NormalizedAgentResponse(
            agent=agent,
            summary=str(data.get("summary") or ""),
            findings=_string_list(data.get("strengths")),
            recommendations=_string_list(data.get("recommendations"))
            + _string_list(data.get("nextSteps")),
            risks=risks,
            opportunities=_string_list(data.get("opportunities")),
            confidence_score=clamp_confidence(confidence),
            metadata=metadata,
            raw_text=raw_text,
        )

    confidence = data.get("confidenceScore", data.get("confidence"))
    return NormalizedAgentResponse(
        agent=agent,
        summary=str(data.get("summary") or ""),
        findings=_string_list(data.get("findings")),
        recommendations=_string_list(data.get("recommendations")),
        risks=_string_list(data.get("risks")),
        opportunities=_string_list(data.get("opportunities")),
        confidence_score=clamp_confidence(confidence),
        metadata=metadata,
        raw_text=raw_text,
    )


def parse_strict_json(agent: str, raw_text: str, fallback_summary: str) -> NormalizedAgentResponse:
    try:
        data = json.loads(raw_text)
    except ValueError as e:
        raise ParseError(f"not valid JSON: {e}") from None
    return _from_structured(agent, data, raw_text, "json")


def iter_json_candidates(text: str):
    """Yield fenced ```json blocks, then balanced {...} substrings in order."""
    for match in _FENCED_JSON.finditer(text):
        yield match.group(1)

    pos = text.find("{")
    while pos != -1:
        depth = 0
        in_string = False
        escaped = False
        end = -1
        for i in range(pos, len(text)):
            ch = text[i]
            if in_string:
                if escaped:
                    escaped = False
                elif ch == "\\":
                    escaped = True
                elif ch == '"':
                    in_string = False
                continue
            if ch == '"':
                in_string = True
            elif ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth == 0:
                    end = i
                    break
        if end == -1:
            return  # unbalanced from here on
        yield text[pos:end + 1]
        pos = text.find("{", end + 1)


def parse_embedded_json(agent: str, raw_text: str, fallback_summary: str) -> NormalizedAgentResponse:
    for candidate in iter_json_candidates(raw_text):
        try:
            data = json.loads(candidate)
        except ValueError:
            continue
        try:
            return _from_structured(agent, data, raw_text, "embeddedJson")
        except ParseError:
            continue
    raise ParseError("no usable JSON object embedded in text")


def _section_for(line: str) -> Optional[str]:
    lowered = _HEADER_MARKUP.sub("", line).lower()
    for section, keywords in SECTION_KEYWORDS:
        if any(k in lowered for k in keywords):
            return section
    return None


def _is_header_like(line: str) -> bool:
    if line.startswith("#"):
        return True
    if line.startswith("**") and line.rstrip(":").endswith("**"):
        return True
    if line.endswith(":"):
        return True
    return len(line.split()) <= 6 and not line.endswith((".", "!", "?"))


def parse_sections(agent: str, raw_text: str, fallback_summary: str) -> NormalizedAgentResponse:
    sections: dict[str, list[str]] = {name: [] for name, _ in SECTION_KEYWORDS}
    current = "findings"
    summary = fallback_summary

    for raw_line in raw_text.splitlines():
        line = raw_line.strip()
        if not line:
            continue

        bullet = _BULLET.match(line)
        if bullet:
            content = bullet.group(1).strip()
            if content:
                sections[current].append(content)
            continue

        if _is_header_like(line):
            section = _section_for(line)
            if section:
                current = section
                continue

        if not summary:
            summary = line[:SUMMARY_CHAR_LIMIT] + ("..." if len(line) > SUMMARY_CHAR_LIMIT else "")

    if not sections["findings"] and not sections["recommendations"]:
        raise ParseError("no findings or recommendations found")

    return NormalizedAgentResponse(
        agent=agent,
        summary=summary,
        findings=sections["findings"],
        recommendations=sections["recommendations"],
        risks=sections["risks"],
        opportunities=sections["opportunities"],
        confidence_score=STRUCTURED_CONFIDENCE,
        metadata={"parsingMethod": "structured"},
        raw_text=raw_text,
    )


def wrap_raw(agent: str, raw_text: str, fallback_summary: str) -> NormalizedAgentResponse:
    """Last resort. Keeps the whole text as one finding at reduced confidence."""
    text = raw_text.strip()
    summary = fallback_summary or text[:SUMMARY_CHAR_LIMIT] + (
        "..." if len(text) > SUMMARY_CHAR_LIMIT else ""
    )
    return NormalizedAgentResponse(
        agent=agent,
        summary=summary,
        findings=[text] if text else [],
        confidence_score=FALLBACK_CONFIDENCE,
        metadata={"parsingMethod": "fallback"},
        raw_text=raw_text,
    )


Strategy = Callable[[str, str, str], NormalizedAgentResponse]

STRATEGIES: list[tuple[str, Strategy]] = [
    ("json", parse_strict_json),
    ("embeddedJson", parse_embedded_json),
    ("structured", parse_sections),
]


def normalize(
    agent_kind: AgentName,
    raw_text: Any,
    fallback_summary: str = "",
    *,
    max_words: int = DEFAULT_MAX_WORDS,
    max_items: int = MAX_SECTION_ITEMS,
) -> NormalizedAgentResponse:
    """Coerce model output into a NormalizedAgentResponse.

    Pure and total: the same input always yields an equal response, and no
    input makes it raise.

    Args:
        agent_kind: Agent the text came from (selects the expected JSON shape).
        raw_text: Model output, kept verbatim in ``raw_text``.
        fallback_summary: Summary to use when the text provides none.
        max_words: Word limit applied to the summary and each list item.
        max_items: Cap on each list.
    """
    agent = agent_kind.value if isinstance(agent_kind, AgentKind) else str(agent_kind)
    text = raw_text if isinstance(raw_text, str) else ("" if raw_text is None else str(raw_text))
    fallback_summary = fallback_summary or ""

    for name, strategy in STRATEGIES:
        try:
            response = strategy(agent, text, fallback_summary)
        except ParseError as e:
            logger.debug(f"normalize[{agent}]: {name} strategy skipped: {e}")
            continue
        except Exception as e:
            logger.warning(f"normalize[{agent}]: {name} strategy failed unexpectedly: {e}")
            continue
        if not response.summary:
            response.summary = fallback_summary
        return _finish(response, max_words, max_items)

    return _finish(wrap_raw(agent, text, fallback_summary), max_words, max_items)
