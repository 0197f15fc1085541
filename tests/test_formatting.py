"""Tests for the markdown formatters used by agent reports.

Tests cover:
- List, recommendation and risk formatting with overflow markers
- Score and label helpers
- Model prose cleanup
- Readiness and historic report rendering
"""

from cepi.formatting import (
    clean_ai_response,
    format_list,
    format_recommendations,
    format_risks,
    format_score,
    humidity_label,
    render_historic_report,
    render_readiness_report,
    risk_level,
    temperature_label,
    wind_label,
)


class TestLists:
    """Test list-style formatters."""

    def test_empty_list(self):
        assert format_list([]) == "• None identified"

    def test_numbered_with_overflow(self):
        assert format_list(["a", "b", "c"], max_items=2) == "1. a\n2. b\n• ... and 1 more"

    def test_compact(self):
        assert format_list(["a", "b", "c"], max_items=2, compact=True) == "• a\n• b"

    def test_recommendations(self):
        recs = [{"priority": "High", "action": "Book venue"}, "Recruit volunteers"]
        assert format_recommendations(recs) == "🔴 Book venue\n🟡 Recruit volunteers"
        assert format_recommendations(None) == "• No specific recommendations"

    def test_recommendations_detailed(self):
        text = format_recommendations([{"priority": "Low", "category": "Budget", "action": "Trim"}], compact=False)
        assert text == "1. 🟢 [Low] Budget\n   Trim"

    def test_risks(self):
        risks = [{"risk": "Rain", "probability": "High", "impact": "High"}, {"risk": "Parking"}]
        assert format_risks(risks) == "🔴 Rain\n🟢 Parking"
        assert format_risks([]) == "• No significant risks identified"

    def test_risk_level(self):
        assert risk_level("High", "High") == "High"
        assert risk_level("Low", "High") == "Medium"
        assert risk_level("Low", "Low") == "Low"


class TestLabels:
    """Test score and weather labels."""

    def test_score(self):
        assert format_score(8, 10) == "🟢 8/10 (80%)"
        assert format_score(5, 10) == "🔴 5/10 (50%)"

    def test_weather_labels(self):
        assert temperature_label(5) == "Cold"
        assert temperature_label(20) == "Comfortable"
        assert wind_label(12) == "Strong"
        assert wind_label(7) == "Moderate"
        assert humidity_label(30) == "Low"


class TestCleanAIResponse:
    """Test model prose cleanup."""

    def test_headers_and_bullets(self):
        text = "KEY FINDINGS\n- Busy weekend\nRISKS:\n* Traffic\n## Next\nPlain line"
        assert clean_ai_response(text) == (
            "## KEY FINDINGS\n\nBusy weekend\n\n## RISKS\n\nTraffic\n\n## Next\n\nPlain line"
        )

    def test_empty(self):
        assert clean_ai_response("") == "No analysis available"


class TestReports:
    """Test full report rendering."""

    def test_readiness_report(self):
        report = render_readiness_report(
            {
                "overallScore": {"total": 78, "breakdown": {"weather": 80, "budget": 70}},
                "criticalIssues": ["Permit pending"],
                "successProbability": {"percentage": 75, "confidence": "Medium"},
                "summary": "Mostly ready.",
            },
            {"eventType": "Gala", "location": "Denver", "date": "2026-12-05"},
        )
        assert report.startswith("🎯 EVENT READINESS ASSESSMENT")
        assert "📍 Gala • Denver • 2026-12-05" in report
        assert "78/100" in report
        assert "• Weather: 80/100" in report
        assert "• Competition: N/A/100" in report
        assert "• Permit pending" in report
        assert "🟡 75% (🟡 Medium confidence)" in report
        assert report.endswith("Mostly ready.")

    def test_readiness_report_without_breakdown(self):
        report = render_readiness_report({"overallScore": 60}, {})
        assert "60/100" in report
        assert "SCORE BREAKDOWN" not in report
        assert "📍 Event • Unknown location • TBD" in report

    def test_readiness_scores_sent_as_text(self):
        report = render_readiness_report(
            {
                "overallScore": {"total": "80"},
                "successProbability": {"percentage": "75%", "confidence": "High"},
            },
            {},
        )
        assert "🟢 80/100" in report
        assert "🟡 75% (🟢 High confidence)" in report

    def test_readiness_scores_that_are_not_numbers(self):
        report = render_readiness_report(
            {"overallScore": {"total": "pending"}, "successProbability": {"percentage": None}},
            {},
        )
        assert "N/A/100" in report
        assert "🔴 0% (🔴 Unknown confidence)" in report

    def test_historic_report(self):
        report = render_historic_report(
            "Fun Run",
            "Austin, TX",
            "2026-11-14",
            "  Steady turnout.  ",
            {
                "eventsAnalyzed": 5,
                "dataRange": {"earliest": "2024-03-01", "latest": "2025-10-01"},
                "averageAttendance": 320,
                "averageBudget": 12000,
            },
        )
        assert report.startswith("Steady turnout.\n\n## Historical Data")
        assert "• Data Range: 2024-03-01 to 2025-10-01" in report
        assert "• Average Budget: $12,000" in report
