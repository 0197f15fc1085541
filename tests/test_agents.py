"""Tests for the five analysis agents.

Tests cover:
- Weather: live OpenWeatherMap path, closest forecast entry, planning notes,
  not-found / auth / retry-exhausted fallbacks, seasonal estimate without key
- Current events: JSON result, competing-events context, fallbacks
- Historic events: synthesized history in prompt, aggregates in report
- Organizer scoring: readiness JSON and prose replies, credential notice
- AI assistant: truncation and static tips fallback
- BaseAgent: payload validation and run metadata
"""

import dataclasses
import json

import httpx
import pytest

from cepi.agents import (
    AIAssistantAgent,
    CurrentEventsAgent,
    HistoricEventsAgent,
    OrganizerScoringAgent,
    WeatherAgent,
)
from cepi.agents.weather import closest_forecast, event_timestamp
from cepi.errors import ValidationError
from cepi.fallback import ASSISTANT_FALLBACK_MESSAGE


PLACES = [{"name": "Austin", "lat": 30.27, "lon": -97.74, "country": "US"}]


def forecast_entry(ts, temp, condition="Clear", description="clear sky", humidity=50, wind=3.2):
    return {
        "dt": int(ts),
        "main": {"temp": temp, "humidity": humidity},
        "weather": [{"main": condition, "description": description}],
        "wind": {"speed": wind},
    }


def weather_api(entries=None, places=PLACES, status=200, seen=None):
    """Handler answering the geocode and forecast endpoints."""
    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        if status != 200:
            return httpx.Response(status)
        if request.url.path == "/geo/1.0/direct":
            return httpx.Response(200, json=places)
        if request.url.path == "/data/2.5/forecast":
            return httpx.Response(200, json={"list": entries or []})
        return httpx.Response(404)
    return handler


@pytest.fixture
def austin_forecast():
    target = event_timestamp("2026-11-14")
    return [
        forecast_entry(target - 10800, 10.0, "Rain", "light rain"),
        forecast_entry(target + 3600, 18.5),
        forecast_entry(target + 20000, 25.0),
    ]


def scoring_payload(event):
    return {
        "eventDetails": event,
        "weatherAnalysis": "Mild and dry",
        "currentEventsAnalysis": '{"summary": "Busy weekend"}',
        "historicAnalysis": "Attendance steady",
    }


# ============================================================================
# Weather
# ============================================================================


class TestWeatherHelpers:
    """Test forecast selection helpers."""

    def test_bare_date_is_midnight_utc(self):
        assert event_timestamp("2026-11-14") == event_timestamp("2026-11-14T00:00:00Z")

    def test_closest_forecast_first_wins_ties(self):
        entries = [{"dt": 100, "id": "a"}, {"dt": 300, "id": "b"}]
        assert closest_forecast(entries, 200)["id"] == "a"
        assert closest_forecast(entries, 290)["id"] == "b"


class TestWeatherAgent:
    """Test the weather agent."""

    @pytest.mark.asyncio
    async def test_without_key_uses_seasonal_estimate(self, lite_config, sample_event):
        report = await WeatherAgent(lite_config).run(sample_event)
        assert report.fallback_mode
        assert report.response.metadata["fallbackReason"] == "WEATHER_API_KEY not configured"
        assert report.markdown.startswith("# Weather Analysis (Estimated)")

    @pytest.mark.asyncio
    async def test_live_forecast(self, live_config, sample_event, mock_http, sleep_recorder, austin_forecast):
        seen = []
        async with mock_http(weather_api(austin_forecast, seen=seen)) as client:
            agent = WeatherAgent(live_config, http_client=client, sleep=sleep_recorder)
            report = await agent.run(sample_event)

        assert not report.fallback_mode
        assert report.markdown.startswith("# Weather Analysis\n")
        assert "## Current Forecast" in report.markdown
        assert "18.5°C" in report.markdown
        assert "## Planning Notes" not in report.markdown
        assert report.response.confidence_score == 85
        assert report.response.metadata["dataSource"] == "OpenWeatherMap"
        assert report.response.metadata["attempts"] == 2
        assert report.response.metadata["weather"]["temperature"] == 18.5
        assert "processingMs" in report.response.metadata

        geocode, forecast = seen
        assert geocode.url.params["q"] == "Austin, TX"
        assert geocode.url.params["appid"] == "test-weather-key"
        assert forecast.url.params["units"] == "metric"
        assert forecast.url.params["lat"] == "30.27"

    @pytest.mark.asyncio
    async def test_planning_notes_from_llm(
        self, live_config, sample_event, mock_http, sleep_recorder, austin_forecast, fake_llm
    ):
        llm = fake_llm("Set up the registration tent before 8 AM.")
        async with mock_http(weather_api(austin_forecast)) as client:
            report = await WeatherAgent(live_config, llm=llm, http_client=client, sleep=sleep_recorder).run(sample_event)
        assert "## Planning Notes\n\nSet up the registration tent before 8 AM." in report.markdown
        assert '"temperature": 18.5' in llm.prompts[0]

    @pytest.mark.asyncio
    async def test_planning_notes_failure_keeps_forecast(
        self, live_config, sample_event, mock_http, sleep_recorder, austin_forecast, fake_llm, failed_llm_response
    ):
        llm = fake_llm(failed_llm_response("transport"))
        async with mock_http(weather_api(austin_forecast)) as client:
            report = await WeatherAgent(live_config, llm=llm, http_client=client, sleep=sleep_recorder).run(sample_event)
        assert not report.fallback_mode
        assert "## Planning Notes" not in report.markdown

    @pytest.mark.asyncio
    async def test_location_not_found(self, live_config, sample_event, mock_http, sleep_recorder):
        async with mock_http(weather_api(places=[])) as client:
            report = await WeatherAgent(live_config, http_client=client, sleep=sleep_recorder).run(sample_event)
        assert report.fallback_mode
        assert 'Location "Austin, TX" not found' in report.response.metadata["fallbackReason"]

    @pytest.mark.asyncio
    async def test_rejected_key_shows_notice(self, live_config, sample_event, mock_http, sleep_recorder):
        async with mock_http(weather_api(status=401)) as client:
            report = await WeatherAgent(live_config, http_client=client, sleep=sleep_recorder).run(sample_event)
        assert report.fallback_mode
        assert report.markdown.startswith("> ⚠️ **Configuration problem:** openweathermap")
        assert "Check WEATHER_API_KEY" in report.markdown
        assert "configurationError" in report.response.metadata
        assert sleep_recorder.calls == []

    @pytest.mark.asyncio
    async def test_server_errors_fall_back_after_retries(self, live_config, sample_event, mock_http, sleep_recorder):
        seen = []
        async with mock_http(weather_api(status=502, seen=seen)) as client:
            report = await WeatherAgent(live_config, http_client=client, sleep=sleep_recorder).run(sample_event)
        assert report.fallback_mode
        assert len(seen) == live_config.weather_max_attempts
        assert len(sleep_recorder.calls) == live_config.weather_max_attempts - 1
        assert "configurationError" not in report.response.metadata

    @pytest.mark.asyncio
    async def test_geocode_without_coordinates_falls_back(self, live_config, sample_event, mock_http, sleep_recorder):
        async with mock_http(weather_api(places=[{"name": "Austin"}])) as client:
            report = await WeatherAgent(live_config, http_client=client, sleep=sleep_recorder).run(sample_event)
        assert report.fallback_mode
        assert "has no coordinates" in report.response.metadata["fallbackReason"]

    @pytest.mark.asyncio
    async def test_unexpected_forecast_body_falls_back(self, live_config, sample_event, mock_http, sleep_recorder):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/geo/1.0/direct":
                return httpx.Response(200, json=PLACES)
            return httpx.Response(200, json=[{"dt": 1}])

        async with mock_http(handler) as client:
            report = await WeatherAgent(live_config, http_client=client, sleep=sleep_recorder).run(sample_event)
        assert report.fallback_mode
        assert "unexpected body" in report.response.metadata["fallbackReason"]
        assert report.markdown.startswith("# Weather Analysis (Estimated)")

    @pytest.mark.asyncio
    async def test_malformed_forecast_entry_falls_back(self, live_config, sample_event, mock_http, sleep_recorder):
        entries = [{"dt": 1, "main": {"temp": "warm"}}]
        async with mock_http(weather_api(entries)) as client:
            report = await WeatherAgent(live_config, http_client=client, sleep=sleep_recorder).run(sample_event)
        assert report.fallback_mode
        assert "forecast entry is malformed" in report.response.metadata["fallbackReason"]

    @pytest.mark.asyncio
    async def test_missing_date_is_rejected(self, lite_config):
        with pytest.raises(ValidationError) as exc_info:
            await WeatherAgent(lite_config).run({"location": "Austin"})
        assert exc_info.value.fields == ["date"]


# ============================================================================
# Current events
# ============================================================================


SECTIONED_REPLY = (
    "The weekend is busy in Austin.\n"
    "## Key Findings\n"
    "- Four competing events nearby\n"
    "- Light traffic late at night\n"
    "## Top Recommendations\n"
    "- Promote early on community boards\n"
    "## Risk Factors\n"
    "- Overlap with the farmers market\n"
    "## Opportunities\n"
    "- Partner with the brewery concert\n"
)


class TestCurrentEventsAgent:
    """Test the current events agent."""

    @pytest.mark.asyncio
    async def test_without_llm(self, lite_config, sample_event):
        report = await CurrentEventsAgent(lite_config).run(sample_event)
        data = json.loads(report.result)
        assert data["metadata"]["fallbackMode"] is True
        assert data["metadata"]["eventsFound"] == 0

    @pytest.mark.asyncio
    async def test_live_analysis(self, lite_config, sample_event, fake_llm):
        llm = fake_llm(SECTIONED_REPLY)
        report = await CurrentEventsAgent(lite_config, llm=llm).run(sample_event)

        data = json.loads(report.result)
        assert data["agent"] == "currentEvents"
        assert data["summary"].startswith("Competitive landscape analysis for Charity Run in Austin, TX")
        assert data["findings"] == ["Four competing events nearby", "Light traffic late at night"]
        assert data["recommendations"] == ["Promote early on community boards"]
        assert data["opportunities"] == ["Partner with the brewery concert"]
        assert data["metadata"]["eventsFound"] == 4
        assert data["metadata"]["trafficDataAvailable"] is True
        assert data["metadata"]["trafficLevel"] == "low"
        assert not report.fallback_mode
        assert "COMPETING EVENTS (4 found):" in llm.prompts[0]
        assert "# Current Events Analysis" in report.markdown

    @pytest.mark.asyncio
    async def test_reply_is_truncated(self, sample_event, fake_llm, lite_config):
        cfg = dataclasses.replace(lite_config, current_events_word_limit=5)
        llm = fake_llm(" ".join(f"word{i}" for i in range(40)))
        report = await CurrentEventsAgent(cfg, llm=llm).run(sample_event)
        assert report.response.metadata["wordCount"] == 5

    @pytest.mark.asyncio
    async def test_empty_reply_falls_back(self, lite_config, sample_event, fake_llm):
        report = await CurrentEventsAgent(lite_config, llm=fake_llm("   ")).run(sample_event)
        assert report.fallback_mode
        assert report.response.metadata["fallbackReason"] == "model reply had no usable content"

    @pytest.mark.asyncio
    async def test_llm_failure_falls_back(self, lite_config, sample_event, fake_llm, failed_llm_response):
        llm = fake_llm(failed_llm_response("transport"))
        report = await CurrentEventsAgent(lite_config, llm=llm).run(sample_event)
        assert report.fallback_mode
        assert report.response.metadata["fallbackReason"] == "fake transport failure"


# ============================================================================
# Historic events
# ============================================================================


class TestHistoricEventsAgent:
    """Test the historic events agent."""

    @pytest.mark.asyncio
    async def test_without_llm(self, lite_config, sample_event):
        report = await HistoricEventsAgent(lite_config).run(sample_event)
        assert report.fallback_mode
        assert report.markdown.startswith("# Historical Analysis")

    @pytest.mark.asyncio
    async def test_live_analysis(self, lite_config, sample_event, fake_llm):
        reply = (
            "## Attendance Trends\n"
            "Past charity runs in Austin drew steady crowds.\n"
            "## Recommendations\n"
            "- Start promotion six weeks out\n"
        )
        llm = fake_llm(reply)
        report = await HistoricEventsAgent(lite_config, llm=llm).run(sample_event)

        assert not report.fallback_mode
        assert report.response.confidence_score == 80
        assert report.response.recommendations == ["Start promotion six weeks out"]
        assert report.response.metadata["historicalData"]["eventsAnalyzed"] >= 4
        assert "## Historical Data" in report.markdown
        assert "historicalData" in llm.prompts[0]
        assert "Keep response under 150 words" in llm.prompts[0]

    @pytest.mark.asyncio
    async def test_date_not_required(self, lite_config):
        report = await HistoricEventsAgent(lite_config).run({"eventType": "Gala", "location": "Denver"})
        assert report.fallback_mode


# ============================================================================
# Organizer scoring
# ============================================================================


class TestOrganizerScoringAgent:
    """Test the organizer scoring agent."""

    @pytest.mark.asyncio
    async def test_without_llm(self, lite_config, sample_event):
        report = await OrganizerScoringAgent(lite_config).run(scoring_payload(sample_event))
        assert report.fallback_mode
        assert "85/100" in report.markdown

    @pytest.mark.asyncio
    async def test_readiness_json(self, lite_config, sample_event, fake_llm):
        reply = json.dumps({
            "overallScore": {"total": 88, "breakdown": {"weather": 90}},
            "criticalIssues": ["Permit pending"],
            "strengths": ["Experienced team"],
            "recommendations": [{"priority": "High", "action": "File permit this week"}],
            "successProbability": {"percentage": 80, "confidence": "Medium"},
            "nextSteps": ["Confirm vendors"],
            "summary": "Nearly ready.",
        })
        llm = fake_llm("```json\n" + reply + "\n```")
        report = await OrganizerScoringAgent(lite_config, llm=llm).run(scoring_payload(sample_event))

        assert report.markdown.startswith("🎯 EVENT READINESS ASSESSMENT")
        assert "88/100" in report.markdown
        assert report.response.confidence_score == 70
        assert report.response.recommendations == ["File permit this week", "Confirm vendors"]
        assert "WEATHER ANALYSIS:\nMild and dry" in llm.prompts[0]

    @pytest.mark.asyncio
    async def test_prose_reply_is_shown(self, lite_config, sample_event, fake_llm):
        llm = fake_llm("The event looks ready overall. Secure permits soon.")
        report = await OrganizerScoringAgent(lite_config, llm=llm).run(scoring_payload(sample_event))
        assert report.markdown == "The event looks ready overall. Secure permits soon."
        assert not report.fallback_mode

    @pytest.mark.asyncio
    async def test_rejected_credentials(self, lite_config, sample_event, fake_llm, failed_llm_response):
        llm = fake_llm(failed_llm_response("auth", status_code=401))
        report = await OrganizerScoringAgent(lite_config, llm=llm).run(scoring_payload(sample_event))
        assert report.fallback_mode
        assert report.markdown.startswith("> ⚠️ **Configuration problem:** fake")
        assert "🎯 EVENT READINESS ASSESSMENT" in report.markdown
        assert report.response.metadata["configurationError"] == "fake auth failure"

    @pytest.mark.asyncio
    async def test_scores_sent_as_text(self, lite_config, sample_event, fake_llm):
        reply = json.dumps({
            "overallScore": {"total": "80"},
            "summary": "Ready",
            "recommendations": ["Book venue"],
            "successProbability": {"percentage": "75%", "confidence": "High"},
        })
        llm = fake_llm(reply)
        report = await OrganizerScoringAgent(lite_config, llm=llm).run(scoring_payload(sample_event))
        assert not report.fallback_mode
        assert "80/100" in report.markdown
        assert "🟡 75% (🟢 High confidence)" in report.markdown

    @pytest.mark.asyncio
    async def test_unrenderable_json_shows_reply(self, lite_config, sample_event, fake_llm):
        reply = json.dumps({"overallScore": {"total": 70}, "summary": "Ready", "criticalIssues": 42})
        llm = fake_llm("  " + reply + "\n")
        report = await OrganizerScoringAgent(lite_config, llm=llm).run(scoring_payload(sample_event))
        assert not report.fallback_mode
        assert report.markdown == reply

    @pytest.mark.asyncio
    async def test_incomplete_payload(self, lite_config, sample_event):
        with pytest.raises(ValidationError):
            await OrganizerScoringAgent(lite_config).run({"eventDetails": sample_event})


# ============================================================================
# AI assistant
# ============================================================================


class TestAIAssistantAgent:
    """Test the planning assistant."""

    @pytest.mark.asyncio
    async def test_without_llm(self, lite_config):
        report = await AIAssistantAgent(lite_config).run({"message": "How do I find sponsors?"})
        assert report.result == ASSISTANT_FALLBACK_MESSAGE
        assert report.fallback_mode

    @pytest.mark.asyncio
    async def test_reply(self, lite_config, fake_llm):
        llm = fake_llm("## Finding Sponsors\n\n1. List local businesses\n2. Prepare a sponsor deck")
        report = await AIAssistantAgent(lite_config, llm=llm).run({"message": "How do I find\x00 sponsors?"})
        assert report.result.startswith("## Finding Sponsors")
        assert "User's question: How do I find sponsors?" in llm.prompts[0]
        assert report.response.metadata["dataSource"] == "AI assistant"

    @pytest.mark.asyncio
    async def test_long_reply_is_truncated(self, lite_config, fake_llm):
        llm = fake_llm(" ".join(["tip"] * 400))
        report = await AIAssistantAgent(lite_config, llm=llm).run({"message": "Tips?"})
        assert report.result.endswith("...")
        assert report.response.metadata["wordCount"] == lite_config.assistant_word_limit

    @pytest.mark.asyncio
    async def test_message_required(self, lite_config):
        with pytest.raises(ValidationError):
            await AIAssistantAgent(lite_config).run({"message": ""})
