"""Tests for the agent dispatcher and the full event analysis.

Tests cover:
- Kind validation and payload validation before any agent runs
- Recording agent results against an eventId
- Parallel analyses, fan-in with fallbacks, scoring last
"""

from unittest.mock import AsyncMock

import pytest

from cepi.agents import AgentDispatcher, EventAnalysisOrchestrator, WeatherAgent
from cepi.errors import InvalidAgentKind, ValidationError
from cepi.models import AgentKind


@pytest.fixture
def store():
    store = AsyncMock()
    store.record_agent_result.return_value = True
    return store


# ============================================================================
# Dispatcher
# ============================================================================


class TestAgentDispatcher:
    """Test AgentDispatcher.dispatch."""

    @pytest.mark.asyncio
    async def test_invalid_kind(self, lite_config):
        dispatcher = AgentDispatcher(lite_config)
        with pytest.raises(InvalidAgentKind) as exc_info:
            await dispatcher.dispatch("budgetAgent", {})
        assert "weather" in exc_info.value.valid_kinds
        assert exc_info.value.to_dict()["validAgents"] == exc_info.value.valid_kinds

    @pytest.mark.asyncio
    async def test_invalid_payload(self, lite_config, store):
        dispatcher = AgentDispatcher(lite_config, store=store)
        with pytest.raises(ValidationError):
            await dispatcher.dispatch("weather", {"location": "Austin"}, event_id="evt-1")
        store.record_agent_result.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_non_finite_attendance_is_invalid(self, lite_config, sample_event):
        with pytest.raises(ValidationError) as exc_info:
            await AgentDispatcher(lite_config).dispatch("weather", {**sample_event, "expectedAttendance": "nan"})
        assert exc_info.value.fields == ["expectedAttendance"]

    @pytest.mark.asyncio
    async def test_dispatch_runs_agent(self, lite_config, sample_event):
        report = await AgentDispatcher(lite_config).dispatch("historicEvents", sample_event)
        assert report.kind == AgentKind.HISTORIC_EVENTS
        assert report.fallback_mode

    @pytest.mark.asyncio
    async def test_records_result_for_event(self, lite_config, sample_event, store):
        dispatcher = AgentDispatcher(lite_config, store=store)
        report = await dispatcher.dispatch("weather", sample_event, event_id="evt-1", user_id="u-1")
        store.record_agent_result.assert_awaited_once_with("evt-1", "weather", report.result)

    @pytest.mark.asyncio
    async def test_no_event_id_no_record(self, lite_config, sample_event, store):
        await AgentDispatcher(lite_config, store=store).dispatch("weather", sample_event)
        store.record_agent_result.assert_not_awaited()

    def test_agent_lookup(self, lite_config):
        dispatcher = AgentDispatcher(lite_config)
        assert isinstance(dispatcher.agent("weather"), WeatherAgent)
        assert dispatcher.agent(AgentKind.WEATHER) is dispatcher.agent("weather")


# ============================================================================
# Orchestrator
# ============================================================================


class TestEventAnalysisOrchestrator:
    """Test the parallel analysis followed by scoring."""

    @pytest.mark.asyncio
    async def test_lite_analysis(self, lite_config, sample_event):
        orchestrator = EventAnalysisOrchestrator(AgentDispatcher(lite_config))
        analysis = await orchestrator.analyze(sample_event)
        data = analysis.to_dict()

        assert set(data["results"]) == {"weather", "currentEvents", "historicEvents", "organizerScoring"}
        assert data["fallbackAgents"] == ["weather", "currentEvents", "historicEvents", "organizerScoring"]
        assert data["eventDetails"]["location"] == "Austin, TX"
        assert data["results"]["organizerScoring"].startswith("🎯 EVENT READINESS ASSESSMENT")
        assert data["latencyMs"] >= 0

    @pytest.mark.asyncio
    async def test_scoring_runs_last(self, lite_config, sample_event, store):
        orchestrator = EventAnalysisOrchestrator(AgentDispatcher(lite_config, store=store))
        await orchestrator.analyze(sample_event, event_id="evt-9")

        recorded = [c.args[1] for c in store.record_agent_result.await_args_list]
        assert sorted(recorded[:3]) == ["currentEvents", "historicEvents", "weather"]
        assert recorded[3] == "organizerScoring"

    @pytest.mark.asyncio
    async def test_failed_agent_is_replaced(self, lite_config, sample_event, monkeypatch):
        async def boom(self, payload):
            raise RuntimeError("boom")

        monkeypatch.setattr(WeatherAgent, "_analyze", boom)
        analysis = await EventAnalysisOrchestrator(AgentDispatcher(lite_config)).analyze(sample_event)

        assert analysis.weather.fallback_mode
        assert analysis.weather.response.metadata["fallbackReason"] == "weather analysis failed: boom"
        assert analysis.weather.markdown.startswith("# Weather Analysis (Estimated)")
        assert analysis.scoring.kind == AgentKind.ORGANIZER_SCORING

    @pytest.mark.asyncio
    async def test_required_fields(self, lite_config):
        orchestrator = EventAnalysisOrchestrator(AgentDispatcher(lite_config))
        with pytest.raises(ValidationError) as exc_info:
            await orchestrator.analyze({"eventType": "Fun Run"})
        assert set(exc_info.value.fields) == {"location", "date"}
