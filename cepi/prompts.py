"""Prompt Builder - per-agent templates for the LLM-backed agents.

``build_prompt`` is a pure function of its inputs: no clocks, no randomness,
and context dicts are serialized with sorted keys, so prompt changes can be
asserted by plain string comparison.
"""

import json
from dataclasses import dataclass
from typing import Any, Optional

from cepi.models import AgentKind, parse_event_date
from cepi.errors import ValidationError


@dataclass(slots=True, frozen=True)
class PromptTemplate:
    agent_name: str
    agent_role: str
    analysis_type: str
    focus: str
    response_format: str
    word_limit: Optional[int] = None


AGENT_PROMPTS: dict[AgentKind, PromptTemplate] = {
    AgentKind.WEATHER: PromptTemplate(
        agent_name="Weather Agent",
        agent_role="a senior meteorologist experienced in charity event planning and community safety",
        analysis_type="weather impact assessment for charity events and volunteer safety",
        focus=(
            "• Seasonal weather patterns for {location} on the event date\n"
            "• Outdoor vs indoor considerations for {event_type} events\n"
            "• Weather-related risks for {attendance} attendees\n"
            "• Contingency planning specific to {event_type} logistics"
        ),
        response_format=(
            "• Temperature range, precipitation probability and wind conditions\n"
            "• Impact on volunteer turnout and donor comfort\n"
            "• Contingency plans with specific trigger conditions"
        ),
        word_limit=200,
    ),
    AgentKind.CURRENT_EVENTS: PromptTemplate(
        agent_name="Current Events Agent",
        agent_role="a philanthropic market analyst specializing in charity event landscape analysis",
        analysis_type="competitive landscape, traffic impact and community engagement positioning",
        focus=(
            "• Competing {event_type} events in {location} around the same time\n"
            "• Traffic and transportation challenges for {attendance} attendees\n"
            "• Risk factors for attendance, timing and promotion\n"
            "• Opportunities to leverage local partners and timing"
        ),
        response_format=(
            "Use ## headers for exactly these sections: Key Findings, Top Recommendations, "
            "Risk Factors, Opportunities. Put each point on its own line starting with '- '. "
            "Conclude with a confidence level based on the available data."
        ),
        word_limit=250,
    ),
    AgentKind.HISTORIC_EVENTS: PromptTemplate(
        agent_name="Historical Events Agent",
        agent_role="a philanthropic data scientist and charity event historian",
        analysis_type="historical benchmarking and attendance trend analysis",
        focus=(
            "• Average attendance patterns and trends for past {event_type} events\n"
            "• Seasonal and weather impacts on comparable events in {location}\n"
            "• Relevant benchmarks for similar events\n"
            "• Limitations of the data and confidence in the benchmarks"
        ),
        response_format=(
            "Use ## for section headers only. No bold formatting and no bullet points. "
            "Include 3-4 specific planning recommendations based on past performance."
        ),
        word_limit=150,
    ),
    AgentKind.ORGANIZER_SCORING: PromptTemplate(
        agent_name="Organizer Scoring Agent",
        agent_role="a senior philanthropic event strategist and readiness consultant",
        analysis_type="event readiness evaluation across weather, competition, history, budget and logistics",
        focus=(
            "• Overall readiness across all critical dimensions\n"
            "• Resource allocation for a {budget} budget\n"
            "• Promotion effectiveness for a {attendance} attendance target\n"
            "• Success probability and risk-adjusted outcomes"
        ),
        response_format="",
    ),
    AgentKind.AI_ASSISTANT: PromptTemplate(
        agent_name="CharityAI Assistant",
        agent_role="CharityAI Assistant",
        analysis_type="charitable event planning, volunteer management, fundraising and community engagement",
        focus=(
            "- Event logistics and planning\n"
            "- Volunteer coordination and management\n"
            "- Fundraising strategies and donor engagement\n"
            "- Marketing and community outreach\n"
            "- Risk management and contingency planning\n"
            "- Impact measurement and evaluation"
        ),
        response_format=(
            "Format your response using markdown:\n"
            "- Use ## for section headers\n"
            "- Use **bold** for emphasis\n"
            "- Use numbered lists (1., 2., 3.) for step-by-step instructions\n"
            "- Use > for important tips"
        ),
        word_limit=250,
    ),
}

SCORING_JSON_SHAPE = """{
  "overallScore": {
    "total": 85,
    "breakdown": {"weather": 90, "competition": 75, "historical": 80, "budget": 85, "logistics": 90}
  },
  "criticalIssues": ["Issue with specific details"],
  "strengths": ["Strength with specific details"],
  "opportunities": ["Opportunity with specific details"],
  "recommendations": [
    {"category": "Weather", "priority": "High", "action": "Specific action", "timeline": "When", "impact": "Expected impact"}
  ],
  "riskAssessment": [
    {"risk": "Risk description", "probability": "High/Medium/Low", "impact": "High/Medium/Low", "mitigation": "Mitigation strategy"}
  ],
  "successProbability": {"percentage": 85, "confidence": "High/Medium/Low", "factors": ["Factor"]},
  "nextSteps": ["Immediate action item"],
  "summary": "2-3 sentence summary of readiness and key recommendations"
}"""

PARSER_JSON_SHAPE = """{
  "eventType": "string or null",
  "location": "string or null",
  "date": "YYYY-MM-DD or null",
  "expectedAttendance": "number or null",
  "budget": "number or null",
  "eventName": "string or null",
  "venue": "string or null",
  "time": "string or null",
  "duration": "string or null",
  "purpose": "string or null",
  "audience": "string or null",
  "specialRequirements": ["string"],
  "context": "string or null"
}"""


# ============================================================================
# Contextual factors
# ============================================================================

def _display(value: Any, default: str) -> str:
    if value is None or value == "":
        return default
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value)


def scale_factors(attendance: Optional[int]) -> str:
    if attendance and attendance >= 1000:
        return ("Large-scale event: plan infrastructure, overflow capacity, parking "
                "and emergency services early.")
    if attendance and attendance >= 100:
        return ("Mid-scale event: balance infrastructure with personal attention and "
                "choose a venue sized to the crowd.")
    return "Intimate event: focus on personalized attention and a high-touch experience."


LOCATION_FACTORS = {
    "san francisco": "High venue costs, good public transit, fog can affect outdoor events.",
    "new york": "Dense traffic and parking constraints, high venue costs, extensive subway network.",
    "los angeles": "Car-dependent travel needs parking plans, generally mild weather.",
}


def location_factors(location: str) -> str:
    lowered = (location or "").lower()
    for city, factors in LOCATION_FACTORS.items():
        if city in lowered:
            return factors
    return "Consider local transportation, vendor availability and permit requirements."


def timing_factors(date_text: str) -> str:
    if not date_text:
        return "Date not specified."
    try:
        event_date = parse_event_date(date_text)
    except ValidationError:
        return "Date could not be interpreted."
    weekend = event_date.weekday() >= 5
    month = event_date.month
    if 6 <= month <= 9:
        season = "Summer"
    elif month == 12 or month <= 3:
        season = "Winter"
    else:
        season = "Spring/Fall"
    return (f"{'Weekend' if weekend else 'Weekday'} timing affects availability and traffic; "
            f"{season} season shapes weather and attendee behavior.")


def budget_factors(budget: Optional[float]) -> str:
    if budget is None:
        return "Budget not specified."
    if budget >= 100_000:
        return "High budget allows premium venues and comprehensive contingency planning."
    if budget >= 10_000:
        return "Mid-range budget needs strategic allocation between essentials and extras."
    return "Limited budget calls for partnerships, volunteers and cost-optimized choices."


def _event_fields(details: dict[str, Any]) -> dict[str, str]:
    return {
        "event_type": _display(details.get("eventType"), "event"),
        "location": _display(details.get("location"), "the specified location"),
        "date": _display(details.get("date"), "the planned date"),
        "duration": _display(details.get("duration"), "not specified"),
        "attendance": _display(details.get("expectedAttendance"), "unknown"),
        "budget": _display(details.get("budget"), "not specified"),
        "audience": _display(details.get("audience"), "not specified"),
        "requirements": _display(details.get("specialRequirements"), "none specified"),
    }


def _number(value: Any) -> Optional[float]:
    try:
        return float(value) if value not in (None, "") else None
    except (TypeError, ValueError):
        return None


def _length_instruction(word_limit: Optional[int]) -> str:
    return f"IMPORTANT: Keep response under {word_limit} words." if word_limit else ""


def _dump(value: Any) -> str:
    return json.dumps(value, indent=2, sort_keys=True, default=str, ensure_ascii=False)


# ============================================================================
# Builders
# ============================================================================

def _event_prompt(template: PromptTemplate, context: dict[str, Any], word_limit: Optional[int]) -> str:
    details = context.get("eventDetails") or {}
    f = _event_fields(details)
    extra = {k: v for k, v in context.items() if k not in ("eventDetails", "wordLimit")}
    attendance = _number(details.get("expectedAttendance"))

    sections = [
        f"You are {template.agent_role}, an expert AI assistant specializing in {template.analysis_type}.",
        "",
        f"EVENT SPECIFICATIONS:\n"
        f"• Event Type: {f['event_type']}\n"
        f"• Location: {f['location']}\n"
        f"• Date: {f['date']}\n"
        f"• Duration: {f['duration']}\n"
        f"• Expected Attendance: {f['attendance']}\n"
        f"• Budget: {f['budget']}\n"
        f"• Target Audience: {f['audience']}\n"
        f"• Special Requirements: {f['requirements']}",
    ]
    if extra:
        sections += ["", f"CONTEXTUAL DATA FOR ANALYSIS:\n{_dump(extra)}"]
    sections += [
        "",
        f"ANALYSIS FOCUS - {template.agent_name.upper()}:\n{template.focus.format(**f)}",
        "",
        "EVENT-SPECIFIC FACTORS:\n"
        f"• Scale: {scale_factors(int(attendance) if attendance else None)}\n"
        f"• Location: {location_factors(details.get('location') or '')}\n"
        f"• Timing: {timing_factors(str(details.get('date') or ''))}\n"
        f"• Budget: {budget_factors(_number(details.get('budget')))}",
        "",
        f"RESPONSE FORMAT:\n{template.response_format}",
        "",
        _length_instruction(word_limit),
    ]
    return "\n".join(sections).strip() + "\n"


def _current_events_context(context: dict[str, Any]) -> str:
    events = context.get("currentEvents") or []
    traffic = context.get("trafficConditions") or {}
    lines = [f"COMPETING EVENTS ({len(events)} found):"]
    for i, event in enumerate(events, start=1):
        lines.append(
            f"{i}. {event.get('name')} ({event.get('type')}) - {event.get('venue')} "
            f"at {event.get('time')} - {event.get('expectedAttendance')} attendees"
        )
    peak = traffic.get("peakHours") or []
    lines += [
        "",
        "TRAFFIC CONDITIONS:",
        f"- Level: {traffic.get('trafficLevel', 'Unknown')}",
        f"- Congestion Factor: {traffic.get('congestionFactor', 'Unknown')}",
        f"- Peak Hours: {', '.join(peak) if peak else 'Unknown'}",
    ]
    return "\n".join(lines)


def _scoring_prompt(template: PromptTemplate, context: dict[str, Any]) -> str:
    fields = _event_fields(context.get("eventDetails") or {})
    return (
        "As an expert event planning consultant, analyze the following data and provide "
        "a structured readiness assessment.\n\n"
        f"ASSESSMENT FOCUS:\n{template.focus.format(**fields)}\n\n"
        f"EVENT DETAILS:\n{_dump(context.get('eventDetails') or {})}\n\n"
        f"WEATHER ANALYSIS:\n{context.get('weatherAnalysis') or 'No weather data available'}\n\n"
        f"CURRENT EVENTS ANALYSIS:\n{context.get('currentEventsAnalysis') or 'No current events data available'}\n\n"
        f"HISTORICAL ANALYSIS:\n{context.get('historicAnalysis') or 'No historical data available'}\n\n"
        "Respond in the following EXACT JSON structure:\n\n"
        f"{SCORING_JSON_SHAPE}\n\n"
        "IMPORTANT:\n"
        "- Return ONLY the JSON object, no additional text\n"
        "- Base all scores on the provided data and consider all three analyses\n"
        "- Be specific and actionable in all recommendations\n"
    )


def _assistant_prompt(template: PromptTemplate, context: dict[str, Any], word_limit: Optional[int]) -> str:
    return (
        f"You are {template.agent_role}, a helpful AI assistant specialized in {template.analysis_type}.\n\n"
        f"User's question: {context.get('message', '')}\n\n"
        "Provide helpful, actionable advice related to charitable event planning. Focus on:\n"
        f"{template.focus}\n\n"
        f"{template.response_format}\n"
        f"- Keep response under {word_limit} words\n\n"
        "Keep your response practical and encouraging. If the question is not related to "
        "charitable events, politely redirect the conversation back to charitable event planning topics.\n"
    )


def build_prompt(agent_kind: AgentKind, context: dict[str, Any]) -> str:
    """Assemble the prompt text for ``agent_kind``.

    Args:
        agent_kind: Which agent template to use.
        context: ``eventDetails`` (camelCase event fields) plus any upstream
            outputs the agent consumes. ``wordLimit`` overrides the template's
            length instruction. For the assistant, ``message`` holds the question.

    Returns:
        Prompt text. The length instruction is advisory to the model; it is
        enforced afterwards by truncation.
    """
    kind = AgentKind.parse(agent_kind)
    template = AGENT_PROMPTS[kind]
    word_limit = context.get("wordLimit") or template.word_limit

    if kind == AgentKind.ORGANIZER_SCORING:
        return _scoring_prompt(template, context)
    if kind == AgentKind.AI_ASSISTANT:
        return _assistant_prompt(template, context, word_limit)
    if kind == AgentKind.CURRENT_EVENTS:
        base_context = {
            k: v for k, v in context.items()
            if k not in ("currentEvents", "trafficConditions")
        }
        prompt = _event_prompt(template, base_context, word_limit)
        return prompt + "\n" + _current_events_context(context) + "\n"
    return _event_prompt(template, context, word_limit)


def build_parser_prompt(user_input: str) -> str:
    """Prompt that turns a free-text event description into event fields."""
    return (
        "You are an expert event planning assistant. Parse the following user input and "
        "extract structured information about their event.\n\n"
        f'User Input: "{user_input}"\n\n'
        "Return ONLY a JSON object with this structure:\n"
        f"{PARSER_JSON_SHAPE}\n\n"
        "Rules:\n"
        "1. Use null for anything not explicitly mentioned\n"
        "2. Convert relative dates to YYYY-MM-DD format\n"
        "3. Attendance and budget are plain numbers (no commas or currency symbols)\n"
        "4. Return ONLY the JSON object, no other text\n"
    )
