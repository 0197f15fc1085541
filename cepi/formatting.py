"""Plain-text/markdown formatters shared by the agent reports."""

import re
from typing import Any, Iterable, Optional

from cepi.normalizer import clamp_confidence

PRIORITY_ICONS = {"High": "🔴", "Medium": "🟡"}
LOW_ICON = "🟢"


def _level_icon(level: str) -> str:
    return PRIORITY_ICONS.get(level, LOW_ICON)


def _score_icon(percentage: float) -> str:
    if percentage >= 80:
        return "🟢"
    if percentage >= 60:
        return "🟡"
    return "🔴"


def format_list(items: Optional[Iterable[str]], max_items: int = 5, compact: bool = False) -> str:
    """Bullet (compact) or numbered list, with an overflow marker when numbered."""
    items = list(items or [])
    if not items:
        return "• None identified"

    shown = items[:max_items]
    if compact:
        return "\n".join(f"• {item}" for item in shown)

    formatted = "\n".join(f"{i}. {item}" for i, item in enumerate(shown, start=1))
    if len(items) > max_items:
        return f"{formatted}\n• ... and {len(items) - max_items} more"
    return formatted


def format_recommendations(
    recommendations: Optional[list[Any]],
    max_items: int = 3,
    compact: bool = True,
) -> str:
    """Priority-marked recommendation list. Items are dicts or plain strings."""
    if not recommendations:
        return "• No specific recommendations"

    lines = []
    for i, rec in enumerate(recommendations[:max_items], start=1):
        if not isinstance(rec, dict):
            rec = {"action": str(rec)}
        priority = rec.get("priority") or "Medium"
        action = rec.get("action") or "No specific action provided"
        icon = _level_icon(priority)
        if compact:
            lines.append(f"{icon} {action}")
        else:
            lines.append(f"{i}. {icon} [{priority}] {rec.get('category') or 'General'}\n   {action}")

    formatted = "\n".join(lines)
    if len(recommendations) > max_items:
        return f"{formatted}\n• ... and {len(recommendations) - max_items} more recommendations"
    return formatted


def risk_level(probability: str, impact: str) -> str:
    if probability == "High" and impact == "High":
        return "High"
    if probability == "High" or impact == "High":
        return "Medium"
    return "Low"


def format_risks(risks: Optional[list[Any]], max_items: int = 3, compact: bool = True) -> str:
    if not risks:
        return "• No significant risks identified"

    lines = []
    for i, risk in enumerate(risks[:max_items], start=1):
        if not isinstance(risk, dict):
            risk = {"risk": str(risk)}
        probability = risk.get("probability") or "Unknown"
        impact = risk.get("impact") or "Unknown"
        icon = _level_icon(risk_level(probability, impact))
        description = risk.get("risk") or "Unspecified risk"
        if compact:
            lines.append(f"{icon} {description}")
        else:
            lines.append(f"{i}. {icon} {description}\n   {probability} probability, {impact} impact")

    formatted = "\n".join(lines)
    if len(risks) > max_items:
        return f"{formatted}\n• ... and {len(risks) - max_items} more risks"
    return formatted


def format_score(score: float, max_score: float = 100) -> str:
    percentage = round(score / max_score * 100) if max_score else 0
    return f"{_score_icon(percentage)} {score}/{max_score} ({percentage}%)"


def format_success_probability(percentage: float, confidence: str) -> str:
    return f"{_score_icon(percentage)} {percentage}% ({_level_icon_for_confidence(confidence)} {confidence} confidence)"


def _level_icon_for_confidence(confidence: str) -> str:
    if confidence == "High":
        return "🟢"
    if confidence == "Medium":
        return "🟡"
    return "🔴"


def section_header(title: str, icon: str = "📋") -> str:
    return f"\n{icon} {title.upper()}\n{'─' * (len(title) + 3)}"


def format_metrics(metrics: dict[str, Any]) -> str:
    return "\n".join(f"• {key}: {value}" for key, value in metrics.items())


# ============================================================================
# Agent reports
# ============================================================================

def temperature_label(temperature: float) -> str:
    if temperature < 10:
        return "Cold"
    if temperature > 30:
        return "Hot"
    return "Comfortable"


def wind_label(wind_speed: float) -> str:
    if wind_speed > 10:
        return "Strong"
    if wind_speed > 5:
        return "Moderate"
    return "Light"


def humidity_label(humidity: float) -> str:
    if humidity > 80:
        return "High"
    if humidity < 40:
        return "Low"
    return "Moderate"


def _number_text(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


def render_weather_report(
    location: str,
    date: str,
    assessment: Any,
    event_type: str = "",
    planning_notes: str = "",
) -> str:
    """Markdown weather report for a WeatherAssessment (live or estimated)."""
    reading = assessment.reading
    estimated = reading.estimated
    temperature = _number_text(reading.temperature) if estimated else f"{reading.temperature:.1f}"

    lines = [
        f"# Weather Analysis{' (Estimated)' if estimated else ''}",
        "",
        f"**Location:** {location}  ",
        f"**Date:** {date}" + ("  " if estimated and event_type else ""),
    ]
    if estimated and event_type:
        lines.append(f"**Event Type:** {event_type}")
    lines += [
        "",
        f"## {'Estimated' if estimated else 'Current'} Forecast",
        "",
        f"- **Temperature:** {temperature}°C ({temperature_label(reading.temperature)})",
        f"- **Conditions:** {reading.condition} - {reading.description}",
        f"- **Wind:** {_number_text(reading.wind_speed)} m/s ({wind_label(reading.wind_speed)})",
        f"- **Humidity:** {_number_text(reading.humidity)}% ({humidity_label(reading.humidity)})",
        "",
        "## Impact Assessment",
        "",
        f"- **Overall Suitability:** {assessment.suitability}",
        f"- **Risk Level:** {assessment.risk_level}",
        f"- **Comfort Index:** {format_score(assessment.comfort_index, 10)}",
        "",
        "## Key Recommendations",
        "",
        format_list(assessment.recommendations, max_items=3, compact=True),
        "",
        "## Quick Insights",
        "",
        f"- **Best Time:** {assessment.best_time}",
        f"- **Equipment:** {assessment.equipment}",
        f"- **Backup:** {assessment.backup_plan}",
    ]
    if planning_notes:
        lines += ["", "## Planning Notes", "", planning_notes]
    if estimated:
        lines += ["", "**Note:** This is estimated data. Configure WEATHER_API_KEY for real-time forecasts."]
    return "\n".join(lines)


_ALL_CAPS = re.compile(r"^[A-Z][A-Z\s]+$")
_COLON_HEADER = re.compile(r"^[A-Z][^a-z]*:$")


def clean_ai_response(text: str) -> str:
    """Normalize model prose into markdown: headers kept, bullets unwrapped."""
    if not text:
        return "No analysis available"

    cleaned = []
    for line in (raw.strip() for raw in text.split("\n")):
        if not line:
            continue
        if re.match(r"^#{1,6}\s", line):
            cleaned.append(line)
        elif _ALL_CAPS.match(line):
            cleaned.append(f"## {line}")
        elif _COLON_HEADER.match(line):
            cleaned.append(f"## {line.replace(':', '', 1)}")
        elif line[0] in "•-*" and not line.startswith("**"):
            content = line[1:].strip()
            if content:
                cleaned.append(content)
        else:
            cleaned.append(line)
    return "\n\n".join(cleaned)


def render_current_events_report(
    event_type: str,
    location: str,
    date: str,
    analysis: str,
    events_found: int,
    traffic_available: bool,
    confidence: int,
) -> str:
    return (
        "# Current Events Analysis\n\n"
        f"**Event Type:** {event_type}  \n"
        f"**Location:** {location}  \n"
        f"**Date:** {date}\n\n"
        f"{clean_ai_response(analysis)}\n\n"
        "## Data Summary\n\n"
        f"- **Events Found:** {events_found}\n"
        f"- **Traffic Data:** {'Available' if traffic_available else 'Estimated'}\n"
        f"- **Confidence:** **{confidence}%** (Based on available data)\n\n"
        "**Note:** Analysis based on estimated data. Configure APIs for real-time information."
    )


def render_historic_report(
    event_type: str,
    location: str,
    date: str,
    analysis: str,
    aggregates: dict[str, Any],
) -> str:
    data_range = aggregates.get("dataRange") or {}
    range_text = (
        f"{data_range.get('earliest')} to {data_range.get('latest')}"
        if data_range else "No prior events"
    )
    metrics = {
        "Events Analyzed": aggregates.get("eventsAnalyzed", 0),
        "Data Range": range_text,
        "Average Attendance": aggregates.get("averageAttendance", 0),
        "Average Budget": f"${aggregates.get('averageBudget', 0):,}",
    }
    return (
        f"{analysis.strip()}\n\n"
        "## Historical Data\n\n"
        f"Event Type: {event_type or 'N/A'} | Location: {location} | Date: {date or 'N/A'}\n\n"
        f"{format_metrics(metrics)}"
    )


def render_readiness_report(data: dict[str, Any], event: dict[str, Any]) -> str:
    """Readiness report from the organizer scoring JSON structure."""
    overall = data.get("overallScore") or {}
    if not isinstance(overall, dict):
        overall = {"total": overall}
    breakdown = overall.get("breakdown") if isinstance(overall.get("breakdown"), dict) else None
    success = data.get("successProbability") if isinstance(data.get("successProbability"), dict) else {}
    # Models send scores as 78, "78", "78%" or 0.78
    total = clamp_confidence(overall.get("total"), default=None)
    percentage = clamp_confidence(success.get("percentage"), default=0)

    parts = [
        "🎯 EVENT READINESS ASSESSMENT",
        "",
        f"📍 {event.get('eventType', 'Event')} • {event.get('location', 'Unknown location')} • {event.get('date', 'TBD')}",
        "",
        section_header("Overall Score"),
        f"🟢 {'N/A' if total is None else total}/100",
    ]
    if breakdown:
        parts += [
            "",
            section_header("Score Breakdown"),
            "\n".join(
                f"• {name.title()}: {breakdown.get(name, 'N/A')}/100"
                for name in ("weather", "competition", "historical", "budget", "logistics")
            ),
        ]
    parts += [
        "",
        section_header("Critical Issues"),
        format_list(data.get("criticalIssues"), max_items=3, compact=True),
        "",
        section_header("Key Strengths"),
        format_list(data.get("strengths"), max_items=3, compact=True),
        "",
        section_header("Top Opportunities"),
        format_list(data.get("opportunities"), max_items=3, compact=True),
        "",
        section_header("Priority Recommendations"),
        format_recommendations(data.get("recommendations"), max_items=3, compact=True),
        "",
        section_header("Risk Assessment"),
        format_risks(data.get("riskAssessment"), max_items=3, compact=True),
        "",
        section_header("Success Probability"),
        format_success_probability(percentage, str(success.get("confidence") or "Unknown")),
        "",
        section_header("Next Steps"),
        format_list(data.get("nextSteps"), max_items=3, compact=True),
        "",
        section_header("Summary"),
        str(data.get("summary") or "Analysis completed successfully"),
    ]
    return "\n".join(parts)
