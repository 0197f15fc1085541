"""Fallback Generator - deterministic, locally computed analysis.

Used when an upstream key is missing, when the retry client gives up, or
when a model reply normalizes to nothing usable. Every report built here
carries ``metadata.fallbackMode = True``.

The weather formulas and the competing-events/traffic synthesis also feed
the live code paths, so estimated and real data are scored the same way.
"""

import datetime as dt
import hashlib
import json
import logging
import random
from dataclasses import dataclass, field
from typing import Any, Optional

from cepi.errors import ValidationError
from cepi.formatting import (
    render_current_events_report,
    render_historic_report,
    render_readiness_report,
    render_weather_report,
)
from cepi.models import (
    AgentKind,
    AgentPayload,
    AgentReport,
    AssistantPayload,
    EventRequest,
    NormalizedAgentResponse,
    ScoringPayload,
    parse_event_date,
)
from cepi.normalizer import normalize
from cepi.text import count_words

logger = logging.getLogger(__name__)

FALLBACK_CONFIDENCE = 60


def _is_new_york(location: str) -> bool:
    lowered = (location or "").lower()
    return "new york" in lowered or "nyc" in lowered


def _is_california(location: str) -> bool:
    lowered = (location or "").lower()
    return "los angeles" in lowered or "california" in lowered


def _fallback_metadata(data_source: str, reason: str, **extra: Any) -> dict[str, Any]:
    metadata = {"dataSource": data_source, "fallbackMode": True, "fallbackReason": reason}
    metadata.update(extra)
    return metadata


# ============================================================================
# Weather formulas (shared with the live forecast path)
# ============================================================================

@dataclass(slots=True)
class WeatherReading:
    temperature: float   # °C
    humidity: float      # %
    wind_speed: float    # m/s
    condition: str
    description: str
    estimated: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "temperature": self.temperature,
            "humidity": self.humidity,
            "windSpeed": self.wind_speed,
            "condition": self.condition,
            "description": self.description,
            "estimated": self.estimated,
        }


def weather_suitability(temperature: float, humidity: float, wind_speed: float, condition: str) -> str:
    """Excellent / Good / Fair / Poor / Very Poor from a 9 point score."""
    score = 0
    if 15 <= temperature <= 25:
        score += 3
    elif 10 <= temperature <= 30:
        score += 2
    elif 5 <= temperature <= 35:
        score += 1

    if 40 <= humidity <= 70:
        score += 2
    elif 30 <= humidity <= 80:
        score += 1

    if wind_speed <= 5:
        score += 2
    elif wind_speed <= 10:
        score += 1

    lowered = condition.lower()
    if "clear" in lowered or "sunny" in lowered:
        score += 2
    elif "cloudy" in lowered or "partly" in lowered:
        score += 1
    elif "rain" in lowered or "storm" in lowered:
        score -= 2

    if score >= 7:
        return "Excellent"
    if score >= 5:
        return "Good"
    if score >= 3:
        return "Fair"
    if score >= 1:
        return "Poor"
    return "Very Poor"


def weather_risk_level(condition: str, wind_speed: float) -> str:
    lowered = condition.lower()
    if "thunderstorm" in lowered or wind_speed > 15:
        return "High"
    if "rain" in lowered or "snow" in lowered or wind_speed > 10:
        return "Medium"
    return "Low"


def comfort_index(temperature: float, humidity: float, wind_speed: float) -> int:
    """1-10 comfort score, 5 is neutral."""
    index = 5
    if 18 <= temperature <= 24:
        index += 2
    elif 15 <= temperature <= 27:
        index += 1
    elif temperature < 10 or temperature > 32:
        index -= 2
    elif temperature < 15 or temperature > 28:
        index -= 1

    if 40 <= humidity <= 60:
        index += 1
    elif humidity > 80 or humidity < 30:
        index -= 1

    if wind_speed <= 3:
        index += 1
    elif wind_speed > 10:
        index -= 1

    return max(1, min(10, index))


def best_time_of_day(temperature: float, condition: str) -> str:
    lowered = condition.lower()
    if "rain" in lowered or "storm" in lowered:
        return "Indoor venue recommended"
    if temperature > 30:
        return "Early morning or late afternoon (avoid 12-4 PM)"
    if temperature < 10:
        return "Midday when temperatures are warmest"
    return "Any time of day should be comfortable"


def equipment_needs(condition: str, wind_speed: float) -> str:
    lowered = condition.lower()
    needs = []
    if "rain" in lowered:
        needs.append("Covered areas or tents")
    if "sun" in lowered:
        needs.append("Shade structures")
    if wind_speed > 5:
        needs.append("Wind barriers or secure equipment")
    if "snow" in lowered:
        needs.append("Heating and snow removal equipment")
    return ", ".join(needs) if needs else "Standard outdoor equipment"


def backup_plan(condition: str) -> str:
    lowered = condition.lower()
    if "thunderstorm" in lowered:
        return "Indoor venue or postponement strongly recommended"
    if "rain" in lowered:
        return "Covered areas or indoor backup venue"
    if "snow" in lowered:
        return "Indoor venue or heated outdoor areas"
    return "Current conditions should be manageable"


def weather_recommendations(temperature: float, humidity: float, wind_speed: float, condition: str) -> list[str]:
    recommendations = []
    if temperature < 10:
        recommendations.append("Consider indoor venue or provide heating")
    elif temperature > 30:
        recommendations.append("Ensure adequate shade and hydration stations")

    if humidity > 80:
        recommendations.append("High humidity expected - consider ventilation")

    if wind_speed > 10:
        recommendations.append("High winds expected - secure outdoor equipment and decorations")

    lowered = condition.lower()
    if "rain" in lowered:
        recommendations.append("Rain expected - prepare backup indoor plan")
    elif "snow" in lowered:
        recommendations.append("Snow expected - ensure safe pathways and parking")
    elif "thunderstorm" in lowered:
        recommendations.append("Thunderstorms possible - consider postponing outdoor activities")
    return recommendations


ESTIMATE_RECOMMENDATIONS = [
    "Monitor local weather forecasts closer to event date",
    "Prepare backup plans for unexpected weather changes",
    "Consider seasonal variations and potential changes",
]


@dataclass(slots=True)
class WeatherAssessment:
    """A reading plus everything derived from it."""
    reading: WeatherReading
    suitability: str
    risk_level: str
    comfort_index: int
    best_time: str
    equipment: str
    backup_plan: str
    recommendations: list[str] = field(default_factory=list)

    @classmethod
    def from_reading(cls, reading: WeatherReading) -> "WeatherAssessment":
        if reading.estimated:
            recommendations = list(ESTIMATE_RECOMMENDATIONS)
        else:
            recommendations = weather_recommendations(
                reading.temperature, reading.humidity, reading.wind_speed, reading.condition
            )
        return cls(
            reading=reading,
            suitability=weather_suitability(
                reading.temperature, reading.humidity, reading.wind_speed, reading.condition
            ),
            risk_level=weather_risk_level(reading.condition, reading.wind_speed),
            comfort_index=comfort_index(reading.temperature, reading.humidity, reading.wind_speed),
            best_time=best_time_of_day(reading.temperature, reading.condition),
            equipment=equipment_needs(reading.condition, reading.wind_speed),
            backup_plan=backup_plan(reading.condition),
            recommendations=recommendations,
        )

    def to_response(self, location: str, date: str, confidence: int, metadata: dict) -> NormalizedAgentResponse:
        reading = self.reading
        return NormalizedAgentResponse(
            agent=AgentKind.WEATHER.value,
            summary=(
                f"{'Estimated' if reading.estimated else 'Forecast'} weather for {location} on {date}: "
                f"{reading.condition.lower()}, {reading.temperature:g}°C. "
                f"Suitability {self.suitability}, {self.risk_level.lower()} risk."
            ),
            findings=[
                f"Temperature {reading.temperature:g}°C",
                f"Conditions: {reading.condition} - {reading.description}",
                f"Wind {reading.wind_speed:g} m/s",
                f"Humidity {reading.humidity:g}%",
                f"Comfort index {self.comfort_index}/10",
            ],
            recommendations=list(self.recommendations),
            risks=[f"{self.risk_level} weather risk", f"Backup: {self.backup_plan}"],
            opportunities=[f"Best time: {self.best_time}"],
            confidence_score=confidence,
            metadata={**metadata, "weather": reading.to_dict(), "suitability": self.suitability},
            raw_text="",
        )


def _season(month: int) -> str:
    if 6 <= month <= 9:
        return "summer"
    if month == 12 or month <= 3:
        return "winter"
    return "mild"


def estimate_weather(location: str, event_date: dt.date) -> WeatherReading:
    """Seasonal estimate from the event month and a few known regions."""
    season = _season(event_date.month)

    temperature = {"summer": 25, "winter": 10}.get(season, 20)
    if _is_new_york(location):
        temperature = {"summer": 28, "winter": 5}.get(season, temperature)
    elif _is_california(location):
        temperature = {"summer": 30, "winter": 18}.get(season, temperature)

    summer = season == "summer"
    return WeatherReading(
        temperature=temperature,
        humidity=65 if summer else 55,
        wind_speed=3,
        condition="Clear" if summer else "Partly Cloudy",
        description="clear sky" if summer else "partly cloudy",
        estimated=True,
    )


def weather_fallback(event: EventRequest, reason: str) -> AgentReport:
    assessment = WeatherAssessment.from_reading(estimate_weather(event.location, event.event_date))
    markdown = render_weather_report(event.location, event.date, assessment, event_type=event.event_type)
    response = assessment.to_response(
        event.location,
        event.date,
        FALLBACK_CONFIDENCE,
        _fallback_metadata("Seasonal estimate", reason),
    )
    response.raw_text = markdown
    return AgentReport(AgentKind.WEATHER, markdown, response)


# ============================================================================
# Competing events and traffic (local context for current events)
# ============================================================================

def _event_moment(date_text: str) -> dt.datetime:
    """Event date as a datetime. A bare date means midnight."""
    text = (date_text or "").strip()
    if len(text) > 10:
        try:
            return dt.datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            pass
    return dt.datetime.combine(parse_event_date(text), dt.time())


def is_weekend(date_text: str) -> bool:
    return _event_moment(date_text).weekday() >= 5


BASE_COMPETING_EVENTS = [
    {"name": "Community Farmers Market", "type": "market", "venue": "Downtown Square",
     "time": "8:00 AM - 2:00 PM", "expectedAttendance": 200, "category": "community"},
    {"name": "Local Art Gallery Opening", "type": "exhibition", "venue": "Community Arts Center",
     "time": "6:00 PM - 9:00 PM", "expectedAttendance": 75, "category": "cultural"},
]

WEEKEND_COMPETING_EVENTS = [
    {"name": "Weekend Yoga in the Park", "type": "fitness", "venue": "Central Park",
     "time": "9:00 AM - 10:00 AM", "expectedAttendance": 30, "category": "wellness"},
    {"name": "Saturday Night Live Music", "type": "concert", "venue": "Local Brewery",
     "time": "8:00 PM - 11:00 PM", "expectedAttendance": 150, "category": "entertainment"},
]

NEW_YORK_COMPETING_EVENTS = [
    {"name": "Broadway Show Preview", "type": "theater", "venue": "Times Square Theater District",
     "time": "7:30 PM - 10:00 PM", "expectedAttendance": 500, "category": "entertainment"},
    {"name": "Central Park Running Club", "type": "fitness", "venue": "Central Park",
     "time": "7:00 AM - 8:30 AM", "expectedAttendance": 50, "category": "sports"},
]


def synthesize_competing_events(location: str, date_text: str) -> list[dict[str, Any]]:
    """Typical events happening around the same date in the area."""
    templates = list(BASE_COMPETING_EVENTS)
    if is_weekend(date_text):
        templates += WEEKEND_COMPETING_EVENTS
    if _is_new_york(location):
        templates += NEW_YORK_COMPETING_EVENTS

    return [
        {
            **template,
            "id": f"event_{i}",
            "date": date_text,
            "location": location,
            "description": f"{template['name']} happening in {location}",
            "organizer": "Local Community Organization",
            "price": "Free" if template["type"] == "market" else "$10-25",
            "capacity": round(template["expectedAttendance"] * 1.2),
            "registrationRequired": template["type"] in ("fitness", "workshop"),
        }
        for i, template in enumerate(templates, start=1)
    ]


def traffic_recommendations(traffic_level: str, weekend: bool, hour: int) -> list[str]:
    recommendations = []
    if traffic_level == "high":
        recommendations += [
            "Consider starting event earlier or later to avoid peak traffic",
            "Provide alternative transportation options (public transit, carpooling)",
            "Allow extra time for setup and attendee arrival",
        ]
    if weekend:
        recommendations += [
            "Weekend traffic is generally lighter, but popular areas may still be congested",
            "Consider parking availability and provide parking guidance",
        ]
    else:
        recommendations += [
            "Weekday events may face rush hour traffic - plan accordingly",
            "Consider public transportation options for attendees",
        ]
    if 7 <= hour <= 9:
        recommendations.append("Morning rush hour - consider later start time")
    elif 17 <= hour <= 19:
        recommendations.append("Evening rush hour - consider earlier start time")
    return recommendations


def estimate_traffic(location: str, date_text: str) -> dict[str, Any]:
    """Congestion estimate from day of week, hour and city size."""
    moment = _event_moment(date_text)
    hour = moment.hour
    weekend = moment.weekday() >= 5

    if not weekend:
        if 7 <= hour <= 9:
            level, factor = "high", 1.8
        elif 17 <= hour <= 19:
            level, factor = "high", 1.6
        elif 10 <= hour <= 16:
            level, factor = "moderate", 1.2
        else:
            level, factor = "low", 0.8
    elif 10 <= hour <= 18:
        level, factor = "moderate", 1.3
    else:
        level, factor = "low", 0.7

    if _is_new_york(location):
        factor *= 1.5
        level = "high" if factor > 1.5 else "moderate"
    elif _is_california(location):
        factor *= 1.3

    return {
        "location": location,
        "date": date_text,
        "trafficLevel": level,
        "congestionFactor": round(factor, 2),
        "estimatedTravelTime": {
            "normal": "15-20 minutes",
            "withTraffic": f"{round(15 * factor)}-{round(20 * factor)} minutes",
        },
        "peakHours": ["10:00 AM-6:00 PM"] if weekend else ["7:00-9:00 AM", "5:00-7:00 PM"],
        "recommendations": traffic_recommendations(level, weekend, hour),
        "dataSource": "Estimated based on location and timing patterns",
        "confidence": "Medium",
    }


CURRENT_EVENTS_FALLBACK = {
    "recommendations": [
        "Contact local venues directly for availability and pricing",
        "Check local event calendars and community boards",
        "Plan for potential traffic congestion during peak hours",
    ],
    "risks": [
        "Potential venue conflicts with other events",
        "Traffic congestion during peak hours",
        "Limited real-time competitive intelligence",
    ],
    "opportunities": [
        "Partner with local businesses for venue and promotion",
        "Leverage community networks for volunteer recruitment",
        "Consider off-peak timing for better venue availability",
    ],
}


def current_events_fallback(event: EventRequest, reason: str) -> AgentReport:
    findings = [
        f"No real-time event data available for {event.location} on {event.date}",
        "Competitive analysis based on general market knowledge",
        "Traffic patterns estimated based on location and timing",
    ]
    sections = [
        ("Key Findings", findings),
        ("Top Recommendations", CURRENT_EVENTS_FALLBACK["recommendations"]),
        ("Risk Factors", CURRENT_EVENTS_FALLBACK["risks"]),
        ("Opportunities", CURRENT_EVENTS_FALLBACK["opportunities"]),
    ]
    raw_text = "\n\n".join(f"## {title}\n\n" + "\n".join(items) for title, items in sections)

    response = NormalizedAgentResponse(
        agent=AgentKind.CURRENT_EVENTS.value,
        summary=f"Competitive landscape analysis for {event.event_type or 'the event'} in {event.location} on {event.date}",
        findings=findings,
        recommendations=list(CURRENT_EVENTS_FALLBACK["recommendations"]),
        risks=list(CURRENT_EVENTS_FALLBACK["risks"]),
        opportunities=list(CURRENT_EVENTS_FALLBACK["opportunities"]),
        confidence_score=FALLBACK_CONFIDENCE,
        metadata=_fallback_metadata(
            "Fallback analysis - no real-time data available",
            reason,
            eventsFound=0,
            trafficDataAvailable=False,
        ),
        raw_text=raw_text,
    )
    markdown = render_current_events_report(
        event.event_type, event.location, event.date, raw_text, 0, False, FALLBACK_CONFIDENCE
    )
    return AgentReport(AgentKind.CURRENT_EVENTS, markdown, response)


# ============================================================================
# Historical synthesis
# ============================================================================

WEATHER_HISTORY = ["Clear", "Partly Cloudy", "Overcast", "Light Rain", "Heavy Rain"]


def _seeded_rng(*parts: str) -> random.Random:
    digest = hashlib.sha256("|".join(p.lower().strip() for p in parts).encode("utf-8")).hexdigest()
    return random.Random(int(digest[:16], 16))


def _attendance_profile(event_type: str, location: str) -> tuple[float, float]:
    lowered = event_type.lower()
    if "charity" in lowered or "fundraiser" in lowered:
        base, variation = 150.0, 0.4
    elif "conference" in lowered or "convention" in lowered:
        base, variation = 300.0, 0.5
    elif "workshop" in lowered or "seminar" in lowered:
        base, variation = 50.0, 0.2
    else:
        base, variation = 100.0, 0.3

    if _is_new_york(location):
        base *= 1.5
    elif _is_california(location):
        base *= 1.3
    return base, variation


def historical_challenges(weather: str, attendance_rate: float, rng: random.Random) -> list[str]:
    challenges = []
    if weather == "Heavy Rain":
        challenges += ["Weather-related attendance drop", "Venue setup complications"]
    elif weather == "Light Rain":
        challenges.append("Minor weather impact on attendance")

    if attendance_rate < 0.7:
        challenges.append("Lower than expected attendance")
    elif attendance_rate > 1.3:
        challenges.append("Overcrowding and capacity issues")

    if rng.random() > 0.7:
        challenges.append("Vendor coordination issues")
    if rng.random() > 0.8:
        challenges.append("Technical difficulties with equipment")
    return challenges


def lessons_learned(event_type: str, weather: str, attendance_rate: float) -> list[str]:
    lessons = []
    if weather == "Heavy Rain":
        lessons += ["Always have indoor backup venue option", "Invest in weather protection equipment"]

    if attendance_rate < 0.7:
        lessons += ["Improve marketing and promotion strategies", "Consider different timing or location"]
    elif attendance_rate > 1.3:
        lessons += ["Plan for higher capacity than expected", "Have overflow space and additional resources ready"]

    lessons += ["Start planning and marketing earlier", "Build stronger community partnerships"]

    if "charity" in event_type.lower():
        lessons += ["Focus on clear cause messaging", "Leverage social media for awareness"]
    return lessons


def synthesize_historical_events(
    event_type: str,
    location: str,
    reference_year: Optional[int] = None,
) -> list[dict[str, Any]]:
    """Two prior years of comparable events, newest first.

    Seeded from the event type and location, so the same inputs always
    produce the same history.
    """
    year_now = reference_year or dt.date.today().year
    rng = _seeded_rng(event_type, location, str(year_now))
    base, variation = _attendance_profile(event_type, location)

    events = []
    for year in range(year_now - 2, year_now):
        for i in range(rng.randint(2, 4)):
            month = rng.randint(1, 12)
            day = rng.randint(1, 28)

            actual = round(base * (1 + (rng.random() - 0.5) * variation))
            expected = max(1, round(actual * (0.8 + rng.random() * 0.4)))

            weather = rng.choice(WEATHER_HISTORY)
            weather_impact = -0.3 if weather == "Heavy Rain" else -0.1 if weather == "Light Rain" else 0

            rate = actual / expected
            success = min(100, max(0, rate * 100 + weather_impact * 20 + (rng.random() - 0.5) * 20))

            events.append({
                "id": f"historical_{year}_{i + 1}",
                "name": f"{event_type} {year}",
                "type": event_type,
                "location": location,
                "date": f"{year}-{month:02d}-{day:02d}",
                "expectedAttendance": expected,
                "actualAttendance": actual,
                "attendanceRate": round(rate, 2),
                "weather": weather,
                "weatherImpact": weather_impact,
                "successScore": round(success),
                "budget": round(expected * (50 + rng.random() * 100)),
                "actualCost": round(expected * (45 + rng.random() * 110)),
                "revenue": round(expected * (20 + rng.random() * 60)),
                "feedback": {
                    "averageRating": round(3.5 + rng.random() * 1.5, 1),
                    "totalResponses": round(actual * 0.3),
                },
                "challenges": historical_challenges(weather, rate, rng),
                "lessonsLearned": lessons_learned(event_type, weather, rate),
            })

    return sorted(events, key=lambda e: e["date"], reverse=True)


def historical_aggregates(events: list[dict[str, Any]]) -> dict[str, Any]:
    if not events:
        return {"eventsAnalyzed": 0, "dataRange": None, "averageAttendance": 0, "averageBudget": 0}
    return {
        "eventsAnalyzed": len(events),
        "dataRange": {"earliest": events[-1]["date"], "latest": events[0]["date"]},
        "averageAttendance": round(sum(e["actualAttendance"] for e in events) / len(events)),
        "averageBudget": round(sum(e["budget"] for e in events) / len(events)),
    }


def history_reference_year(event: EventRequest) -> Optional[int]:
    try:
        event_date = event.event_date
    except ValidationError:
        return None
    return event_date.year if event_date else None


def historic_fallback(
    event: EventRequest,
    reason: str,
    history: Optional[list[dict[str, Any]]] = None,
) -> AgentReport:
    if history is None:
        history = synthesize_historical_events(event.event_type, event.location, history_reference_year(event))
    aggregates = historical_aggregates(history)

    expected = event.expected_attendance
    low = round(expected * 0.7) if expected else "N/A"
    high = round(expected * 0.9) if expected else "N/A"
    success_factors = [
        "Strong community engagement and volunteer recruitment",
        "Effective marketing and promotion strategy",
        "Weather contingency planning",
    ]
    risks = [
        "Weather-related attendance fluctuations",
        "Competing events on similar dates",
        "Venue availability and pricing changes",
    ]
    recommendations = [
        "Research local event history and community preferences",
        "Develop weather contingency plans",
        "Establish strong volunteer networks",
    ]
    analysis = (
        "# Historical Analysis\n\n"
        f"Event Type: {event.event_type}  \nLocation: {event.location}  \nDate: {event.date or 'N/A'}\n\n"
        "## Attendance Prediction\n\n"
        f"Expected: {low} - {high} attendees\n"
        "Industry average: 60-80% of expected attendance\n\n"
        "## Key Success Factors\n\n" + "\n".join(success_factors) + "\n\n"
        "## Risk Factors\n\n" + "\n".join(risks) + "\n\n"
        "## Top Recommendations\n\n" + "\n".join(recommendations) + "\n\n"
        "Note: Based on industry standards. Supplement with local historical data when available."
    )
    markdown = render_historic_report(event.event_type, event.location, event.date, analysis, aggregates)

    response = NormalizedAgentResponse(
        agent=AgentKind.HISTORIC_EVENTS.value,
        summary=(
            f"Comparable {event.event_type} events in {event.location} averaged "
            f"{aggregates['averageAttendance']} attendees across {aggregates['eventsAnalyzed']} events."
        ),
        findings=success_factors,
        recommendations=recommendations,
        risks=risks,
        opportunities=[],
        confidence_score=FALLBACK_CONFIDENCE,
        metadata=_fallback_metadata(
            "Fallback Analysis",
            reason,
            historicalData=aggregates,
            predictedAttendance=round(expected * 0.8) if expected else 0,
            wordCount=count_words(analysis),
        ),
        raw_text=analysis,
    )
    return AgentReport(AgentKind.HISTORIC_EVENTS, markdown, response)


# ============================================================================
# Organizer scoring
# ============================================================================

def fallback_readiness_score(event: EventRequest) -> int:
    """Base 70, +5 per populated key field, capped at 85."""
    score = 70
    if event.expected_attendance and event.expected_attendance > 0:
        score += 5
    if event.budget and event.budget > 0:
        score += 5
    if event.location:
        score += 5
    if event.date:
        score += 5
    return min(score, 85)


def fallback_scoring_data(event: EventRequest) -> dict[str, Any]:
    score = fallback_readiness_score(event)
    return {
        "overallScore": {
            "total": score,
            "breakdown": {
                "weather": 75,
                "competition": 70,
                "historical": 65,
                "budget": 80 if event.budget else 60,
                "logistics": 75,
            },
        },
        "criticalIssues": [
            "Limited real-time data available for comprehensive analysis",
            "Manual verification required for venue availability and pricing",
            "Competitive landscape assessment needs local research",
        ],
        "strengths": [
            "Event planning framework is in place",
            "Basic event parameters are defined",
            "Location and timing are specified",
        ],
        "opportunities": [
            "Leverage local community networks for support",
            "Consider partnerships with local businesses",
            "Explore alternative venues and dates for optimization",
        ],
        "recommendations": [
            {
                "category": "Data Collection",
                "priority": "High",
                "action": "Gather real-time venue availability and pricing information",
                "timeline": "Within 1 week",
                "impact": "Critical for accurate planning and budgeting",
            },
            {
                "category": "Competitive Analysis",
                "priority": "Medium",
                "action": "Research local event calendar and competing events",
                "timeline": "Within 2 weeks",
                "impact": "Helps optimize timing and positioning",
            },
            {
                "category": "Risk Management",
                "priority": "High",
                "action": "Develop contingency plans for weather and venue issues",
                "timeline": "Within 1 week",
                "impact": "Ensures event can proceed despite challenges",
            },
        ],
        "riskAssessment": [
            {
                "risk": "Limited real-time data for decision making",
                "probability": "High",
                "impact": "Medium",
                "mitigation": "Conduct manual research and verification of key factors",
            },
            {
                "risk": "Potential venue conflicts or availability issues",
                "probability": "Medium",
                "impact": "High",
                "mitigation": "Contact venues directly and have backup options ready",
            },
        ],
        "successProbability": {
            "percentage": score,
            "confidence": "Medium",
            "factors": [
                "Basic planning framework in place",
                "Location and timing defined",
                "Need for additional data collection",
            ],
        },
        "nextSteps": [
            "Verify venue availability and pricing",
            "Research local event calendar for conflicts",
            "Develop detailed contingency plans",
            "Establish vendor relationships and contracts",
            "Create detailed timeline and task assignments",
        ],
        "summary": (
            f"Event readiness assessment shows {score}% preparedness based on available information. "
            "While basic planning elements are in place, additional data collection and verification "
            "are needed for optimal event success."
        ),
    }


def scoring_fallback(payload: ScoringPayload, reason: str) -> AgentReport:
    data = fallback_scoring_data(payload.event)
    raw_text = json.dumps(data, ensure_ascii=False)
    response = normalize(AgentKind.ORGANIZER_SCORING, raw_text)
    response.confidence_score = FALLBACK_CONFIDENCE
    response.metadata.update(_fallback_metadata("Heuristic readiness score", reason))
    markdown = render_readiness_report(data, payload.event.to_dict())
    return AgentReport(AgentKind.ORGANIZER_SCORING, markdown, response)


# ============================================================================
# Assistant
# ============================================================================

ASSISTANT_TIPS = [
    "**Start planning** at least 6-8 weeks in advance",
    "**Recruit volunteers** early and provide clear roles",
    "**Set realistic fundraising goals** and track progress",
    "**Create backup plans** for weather and other contingencies",
    "**Focus on your mission** and impact story",
]

ASSISTANT_FALLBACK_MESSAGE = (
    "I'm sorry, I'm having trouble processing your request right now. "
    "Please try again in a moment.\n\n"
    "## Quick Event Planning Tips\n\n"
    "If you need immediate help with event planning, here are some quick tips:\n\n"
    + "\n".join(ASSISTANT_TIPS)
    + "\n\nIs there a specific aspect of event planning I can help you with?"
)


def assistant_fallback(payload: AssistantPayload, reason: str) -> AgentReport:
    response = NormalizedAgentResponse(
        agent=AgentKind.AI_ASSISTANT.value,
        summary="The planning assistant is unavailable; quick planning tips provided instead.",
        findings=[tip.replace("**", "") for tip in ASSISTANT_TIPS],
        confidence_score=FALLBACK_CONFIDENCE,
        metadata=_fallback_metadata("Static planning tips", reason),
        raw_text=ASSISTANT_FALLBACK_MESSAGE,
    )
    return AgentReport(AgentKind.AI_ASSISTANT, ASSISTANT_FALLBACK_MESSAGE, response)


# ============================================================================
# Entry point
# ============================================================================

_FALLBACKS = {
    AgentKind.WEATHER: weather_fallback,
    AgentKind.CURRENT_EVENTS: current_events_fallback,
    AgentKind.HISTORIC_EVENTS: historic_fallback,
    AgentKind.ORGANIZER_SCORING: scoring_fallback,
    AgentKind.AI_ASSISTANT: assistant_fallback,
}


def generate_fallback(agent_kind: AgentKind, payload: AgentPayload, reason: str = "upstream unavailable") -> AgentReport:
    """Deterministic degraded report for ``agent_kind``. Makes no network calls."""
    kind = AgentKind.parse(agent_kind)
    logger.info(f"{kind.value}: using fallback analysis ({reason})")
    return _FALLBACKS[kind](payload, reason)
