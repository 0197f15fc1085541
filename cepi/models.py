"""Event Analysis Models.

Data structures shared by the agents, the dispatcher and the HTTP layer.
Every record here lives for a single request; nothing is cached between
dispatches.
"""

import datetime as dt
import json
import math
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Union

from cepi.errors import InvalidAgentKind, ValidationError


class AgentKind(str, Enum):
    """Independently invocable analysis agents."""
    WEATHER = "weather"
    CURRENT_EVENTS = "currentEvents"
    HISTORIC_EVENTS = "historicEvents"
    ORGANIZER_SCORING = "organizerScoring"
    AI_ASSISTANT = "aiAssistant"

    @classmethod
    def values(cls) -> list[str]:
        return [k.value for k in cls]

    @classmethod
    def parse(cls, value: Any) -> "AgentKind":
        """Resolve a wire name to a kind, raising InvalidAgentKind otherwise."""
        if isinstance(value, cls):
            return value
        for kind in cls:
            if kind.value == value:
                return kind
        raise InvalidAgentKind(value, cls.values())


class RetryOutcome(str, Enum):
    """How a single HTTP attempt ended."""
    SUCCESS = "success"
    TIMEOUT = "timeout"
    SERVER_ERROR = "serverError"      # 5xx
    RATE_LIMITED = "rateLimited"      # 429
    CLIENT_ERROR = "clientError"      # other 4xx, returned without retry
    TRANSPORT_ERROR = "transportError"

    @property
    def retryable(self) -> bool:
        return self in (
            RetryOutcome.TIMEOUT,
            RetryOutcome.SERVER_ERROR,
            RetryOutcome.RATE_LIMITED,
            RetryOutcome.TRANSPORT_ERROR,
        )


@dataclass(slots=True)
class RetryAttempt:
    """One attempt made by the retry client."""
    attempt_number: int
    elapsed_ms: int
    outcome: RetryOutcome
    status_code: Optional[int] = None
    delay_ms: int = 0  # wait scheduled after this attempt (0 if none)
    error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "attemptNumber": self.attempt_number,
            "elapsedMs": self.elapsed_ms,
            "outcome": self.outcome.value,
            "statusCode": self.status_code,
            "delayMs": self.delay_ms,
            "error": self.error,
        }


# ============================================================================
# Event input
# ============================================================================

_NUMBER_CLEANUP = re.compile(r"[,$\s]")


def _coerce_number(value: Any, name: str, integer: bool) -> Optional[float]:
    """Accept 500, "500", "1,200" or "$5,000". Blank means not provided."""
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{name} must be a number", fields=[name])
    if isinstance(value, (int, float)):
        number = value
    else:
        try:
            number = float(_NUMBER_CLEANUP.sub("", str(value)))
        except ValueError:
            raise ValidationError(f"{name} must be a number", fields=[name]) from None
    if isinstance(number, float) and not math.isfinite(number):
        raise ValidationError(f"{name} must be a number", fields=[name])
    if integer:
        if number != int(number):
            raise ValidationError(f"{name} must be a whole number", fields=[name])
        return int(number)
    return float(number)


def parse_event_date(value: str) -> dt.date:
    """Parse YYYY-MM-DD (a full ISO timestamp is also accepted)."""
    text = value.strip()
    try:
        return dt.date.fromisoformat(text[:10])
    except ValueError:
        try:
            return dt.datetime.fromisoformat(text.replace("Z", "+00:00")).date()
        except ValueError:
            raise ValidationError(
                f"date must be a calendar date (YYYY-MM-DD), got '{value}'",
                fields=["date"],
            ) from None


@dataclass(slots=True, frozen=True)
class EventRequest:
    """Event details as submitted by the organizer. Immutable once built."""
    event_type: str = ""
    location: str = ""
    date: str = ""
    duration: str = ""
    expected_attendance: Optional[int] = None
    budget: Optional[float] = None
    audience: str = ""
    special_requirements: str = ""

    # Wire name -> attribute name
    FIELD_NAMES = {
        "eventType": "event_type",
        "location": "location",
        "date": "date",
        "duration": "duration",
        "expectedAttendance": "expected_attendance",
        "budget": "budget",
        "audience": "audience",
        "specialRequirements": "special_requirements",
    }

    @classmethod
    def from_dict(
        cls,
        data: Any,
        required: tuple[str, ...] = (),
    ) -> "EventRequest":
        """Build and validate from a camelCase payload.

        Args:
            data: Raw payload mapping.
            required: Wire names that must be present and non-empty.

        Raises:
            ValidationError: Missing required fields or out-of-range numbers.
        """
        if not isinstance(data, dict):
            raise ValidationError("payload must be an object", fields=["payload"])

        missing = [
            name for name in required
            if data.get(name) is None or str(data.get(name)).strip() == ""
        ]
        if missing:
            raise ValidationError(
                f"Missing required fields: {', '.join(missing)}", fields=missing
            )

        attendance = _coerce_number(data.get("expectedAttendance"), "expectedAttendance", True)
        if attendance is not None and attendance <= 0:
            raise ValidationError(
                "expectedAttendance must be greater than 0", fields=["expectedAttendance"]
            )

        budget = _coerce_number(data.get("budget"), "budget", False)
        if budget is not None and budget < 0:
            raise ValidationError("budget must not be negative", fields=["budget"])

        requirements = data.get("specialRequirements") or ""
        if isinstance(requirements, (list, tuple)):
            requirements = ", ".join(str(r) for r in requirements if r)

        event = cls(
            event_type=str(data.get("eventType") or "").strip(),
            location=str(data.get("location") or "").strip(),
            date=str(data.get("date") or "").strip(),
            duration=str(data.get("duration") or "").strip(),
            expected_attendance=attendance,
            budget=budget,
            audience=str(data.get("audience") or "").strip(),
            special_requirements=str(requirements).strip(),
        )
        if event.date:
            parse_event_date(event.date)
        return event

    def validate_complete(self) -> None:
        """Check the full submission invariant used when storing an event."""
        missing = [
            wire for wire in ("eventType", "location", "date", "duration")
            if not getattr(self, self.FIELD_NAMES[wire])
        ]
        if self.expected_attendance is None:
            missing.append("expectedAttendance")
        if missing:
            raise ValidationError(
                f"Missing required fields: {', '.join(missing)}", fields=missing
            )

    @property
    def event_date(self) -> Optional[dt.date]:
        return parse_event_date(self.date) if self.date else None

    def to_dict(self) -> dict[str, Any]:
        """camelCase view, omitting fields that were not provided."""
        result = {}
        for wire, attr in self.FIELD_NAMES.items():
            value = getattr(self, attr)
            if value not in (None, ""):
                result[wire] = value
        return result


@dataclass(slots=True, frozen=True)
class ScoringPayload:
    """Organizer scoring input: the event plus the three upstream analyses."""
    event: EventRequest
    weather_analysis: str
    current_events_analysis: str
    historic_analysis: str

    ANALYSIS_FIELDS = ("weatherAnalysis", "currentEventsAnalysis", "historicAnalysis")

    @classmethod
    def from_dict(cls, data: Any) -> "ScoringPayload":
        if not isinstance(data, dict):
            raise ValidationError("payload must be an object", fields=["payload"])
        details = data.get("eventDetails")
        if not isinstance(details, dict) or not details:
            raise ValidationError(
                "Event details are required for scoring", fields=["eventDetails"]
            )
        missing = [name for name in cls.ANALYSIS_FIELDS if name not in data]
        if missing:
            raise ValidationError(
                "Scoring needs the weather, current events and historical analyses; "
                f"missing: {', '.join(missing)}",
                fields=missing,
            )
        return cls(
            event=EventRequest.from_dict(details),
            weather_analysis=_analysis_text(data["weatherAnalysis"], "weather"),
            current_events_analysis=_analysis_text(data["currentEventsAnalysis"], "current events"),
            historic_analysis=_analysis_text(data["historicAnalysis"], "historical"),
        )


def _analysis_text(value: Any, label: str) -> str:
    if value is None or value == "":
        return f"No {label} data available"
    if isinstance(value, str):
        return value
    return json.dumps(value, indent=2, default=str)


@dataclass(slots=True, frozen=True)
class AssistantPayload:
    """Chat question for the planning assistant."""
    message: str
    conversation_history: tuple = ()

    @classmethod
    def from_dict(cls, data: Any) -> "AssistantPayload":
        if not isinstance(data, dict):
            raise ValidationError("payload must be an object", fields=["payload"])
        message = str(data.get("message") or "").strip()
        if not message:
            raise ValidationError("message is required", fields=["message"])
        history = data.get("conversationHistory") or ()
        return cls(message=message, conversation_history=tuple(history))


AgentPayload = Union[EventRequest, ScoringPayload, AssistantPayload]

# Required wire fields per event-based agent
REQUIRED_EVENT_FIELDS: dict[AgentKind, tuple[str, ...]] = {
    AgentKind.WEATHER: ("location", "date"),
    AgentKind.CURRENT_EVENTS: ("location", "date"),
    AgentKind.HISTORIC_EVENTS: ("eventType", "location"),
}


def parse_payload(kind: AgentKind, payload: Any) -> AgentPayload:
    """Build the payload variant that belongs to ``kind``."""
    if kind == AgentKind.ORGANIZER_SCORING:
        return ScoringPayload.from_dict(payload)
    if kind == AgentKind.AI_ASSISTANT:
        return AssistantPayload.from_dict(payload)
    return EventRequest.from_dict(payload, required=REQUIRED_EVENT_FIELDS[kind])


@dataclass(slots=True, frozen=True)
class AgentInvocation:
    """A single dispatch call."""
    kind: AgentKind
    payload: AgentPayload
    correlation_id: Optional[str] = None  # eventId, used to link stored results
    user_id: Optional[str] = None

    @classmethod
    def from_request(
        cls,
        agent: Any,
        payload: Any,
        event_id: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> "AgentInvocation":
        kind = AgentKind.parse(agent)
        return cls(
            kind=kind,
            payload=parse_payload(kind, payload),
            correlation_id=event_id or None,
            user_id=user_id or None,
        )


# ============================================================================
# Agent output
# ============================================================================

@dataclass(slots=True)
class NormalizedAgentResponse:
    """Fixed-shape agent output. raw_text always keeps the unparsed source."""
    agent: str
    summary: str = ""
    findings: list[str] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)
    risks: list[str] = field(default_factory=list)
    opportunities: list[str] = field(default_factory=list)
    confidence_score: int = 0
    metadata: dict[str, Any] = field(default_factory=dict)
    raw_text: str = ""

    @property
    def fallback_mode(self) -> bool:
        return bool(self.metadata.get("fallbackMode"))

    def to_dict(self) -> dict[str, Any]:
        return {
            "agent": self.agent,
            "summary": self.summary,
            "findings": list(self.findings),
            "recommendations": list(self.recommendations),
            "risks": list(self.risks),
            "opportunities": list(self.opportunities),
            "confidenceScore": self.confidence_score,
            "metadata": dict(self.metadata),
            "rawText": self.raw_text,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False, default=str)


@dataclass(slots=True)
class AgentReport:
    """What an agent hands back to the dispatcher."""
    kind: AgentKind
    markdown: str
    response: NormalizedAgentResponse

    @property
    def result(self) -> str:
        """Wire result: JSON for current events, prose for every other agent."""
        if self.kind == AgentKind.CURRENT_EVENTS:
            return self.response.to_json()
        return self.markdown

    @property
    def fallback_mode(self) -> bool:
        return self.response.fallback_mode

    def to_dict(self) -> dict[str, Any]:
        return {
            "agent": self.kind.value,
            "result": self.result,
            "fallbackMode": self.fallback_mode,
            "confidenceScore": self.response.confidence_score,
        }
