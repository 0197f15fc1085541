"""Analysis agents.

Five independently invocable agents behind one dispatcher:
1. Weather - forecast or seasonal estimate for the event date
2. Current Events - competing events and traffic impact
3. Historic Events - benchmarks from comparable past events
4. Organizer Scoring - readiness score across the three analyses
5. AI Assistant - planning chat
"""

from .ai_assistant import AIAssistantAgent
from .base import BaseAgent
from .current_events import CurrentEventsAgent
from .dispatcher import AGENT_CLASSES, AgentDispatcher
from .historic_events import HistoricEventsAgent
from .input_parser import InputParser
from .orchestrator import EventAnalysis, EventAnalysisOrchestrator
from .organizer_scoring import OrganizerScoringAgent
from .weather import WeatherAgent

__all__ = [
    "AGENT_CLASSES",
    "AIAssistantAgent",
    "AgentDispatcher",
    "BaseAgent",
    "CurrentEventsAgent",
    "EventAnalysis",
    "EventAnalysisOrchestrator",
    "HistoricEventsAgent",
    "InputParser",
    "OrganizerScoringAgent",
    "WeatherAgent",
]
