"""Tests for the prompt builder.

Tests cover:
- Event fields and word limits in each agent's prompt
- Competing events and traffic context for current events
- Scoring prompt with upstream analyses
- Purity (same input, same prompt)
- Event-specific factor helpers
"""

import pytest

from cepi.errors import InvalidAgentKind
from cepi.models import AgentKind
from cepi.prompts import (
    budget_factors,
    build_parser_prompt,
    build_prompt,
    location_factors,
    scale_factors,
    timing_factors,
)


class TestEventPrompts:
    """Test weather and historic prompts."""

    def test_weather_prompt_has_event_fields(self, sample_event):
        prompt = build_prompt(AgentKind.WEATHER, {"eventDetails": sample_event})
        assert "• Location: Austin, TX" in prompt
        assert "• Expected Attendance: 500" in prompt
        assert "• Budget: 15000" in prompt
        assert "Weather-related risks for 500 attendees" in prompt
        assert "Keep response under 200 words" in prompt

    def test_word_limit_override(self, sample_event):
        prompt = build_prompt("historicEvents", {"eventDetails": sample_event, "wordLimit": 90})
        assert "Keep response under 90 words" in prompt

    def test_missing_fields_use_placeholders(self):
        prompt = build_prompt(AgentKind.HISTORIC_EVENTS, {"eventDetails": {"location": "Austin"}})
        assert "• Event Type: event" in prompt
        assert "• Expected Attendance: unknown" in prompt
        assert "Date not specified." in prompt

    def test_extra_context_is_serialized(self, sample_event):
        prompt = build_prompt(
            AgentKind.HISTORIC_EVENTS,
            {"eventDetails": sample_event, "historicalData": [{"year": 2025}]},
        )
        assert "CONTEXTUAL DATA FOR ANALYSIS" in prompt
        assert '"year": 2025' in prompt

    def test_pure_and_key_order_independent(self, sample_event):
        a = build_prompt(AgentKind.WEATHER, {"eventDetails": sample_event, "b": 2, "a": 1})
        b = build_prompt(AgentKind.WEATHER, {"a": 1, "b": 2, "eventDetails": sample_event})
        assert a == b


class TestCurrentEventsPrompt:
    """Test competing events and traffic context."""

    def test_context_sections(self, sample_event):
        prompt = build_prompt(AgentKind.CURRENT_EVENTS, {
            "eventDetails": sample_event,
            "currentEvents": [{
                "name": "Food Festival", "type": "Festival", "venue": "Park",
                "time": "12:00 PM", "expectedAttendance": 800,
            }],
            "trafficConditions": {
                "trafficLevel": "High", "congestionFactor": 1.6,
                "peakHours": ["7-9 AM", "5-7 PM"],
            },
        })
        assert "COMPETING EVENTS (1 found):" in prompt
        assert "1. Food Festival (Festival) - Park at 12:00 PM - 800 attendees" in prompt
        assert "- Level: High" in prompt
        assert "- Peak Hours: 7-9 AM, 5-7 PM" in prompt
        assert "Keep response under 250 words" in prompt

    def test_without_context(self, sample_event):
        prompt = build_prompt(AgentKind.CURRENT_EVENTS, {"eventDetails": sample_event})
        assert "COMPETING EVENTS (0 found):" in prompt
        assert "- Level: Unknown" in prompt


class TestScoringAndAssistant:
    """Test scoring and assistant prompts."""

    def test_scoring_includes_analyses(self, sample_event):
        prompt = build_prompt(AgentKind.ORGANIZER_SCORING, {
            "eventDetails": sample_event,
            "weatherAnalysis": "Clear skies expected",
            "currentEventsAnalysis": "",
            "historicAnalysis": "Attendance grew 10%",
        })
        assert "WEATHER ANALYSIS:\nClear skies expected" in prompt
        assert "No current events data available" in prompt
        assert "Attendance grew 10%" in prompt
        assert "EXACT JSON structure" in prompt
        assert '"overallScore"' in prompt

    def test_assistant_prompt(self):
        prompt = build_prompt(AgentKind.AI_ASSISTANT, {"message": "How do I recruit volunteers?"})
        assert "User's question: How do I recruit volunteers?" in prompt
        assert "Keep response under 250 words" in prompt

    def test_unknown_kind(self):
        with pytest.raises(InvalidAgentKind):
            build_prompt("budgetAgent", {})

    def test_parser_prompt(self):
        prompt = build_parser_prompt("Fun run in Austin next May for 300 people")
        assert 'User Input: "Fun run in Austin next May for 300 people"' in prompt
        assert "Return ONLY a JSON object" in prompt


class TestFactors:
    """Test the event-specific factor helpers."""

    def test_scale(self):
        assert scale_factors(1500).startswith("Large-scale")
        assert scale_factors(250).startswith("Mid-scale")
        assert scale_factors(None).startswith("Intimate")

    def test_location(self):
        assert "subway" in location_factors("Brooklyn, New York")
        assert location_factors("Boise, ID").startswith("Consider local transportation")

    def test_timing(self):
        assert timing_factors("2026-11-14").startswith("Weekend timing")
        assert "Spring/Fall season" in timing_factors("2026-11-14")
        assert "Summer season" in timing_factors("2026-07-15")
        assert timing_factors("someday") == "Date could not be interpreted."

    def test_budget(self):
        assert budget_factors(None) == "Budget not specified."
        assert budget_factors(250_000).startswith("High budget")
        assert budget_factors(5_000).startswith("Limited budget")
