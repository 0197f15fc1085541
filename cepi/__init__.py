"""CEPI - Community Event Impact Predictor.

Multi-agent analysis of charity event plans: weather, competing events,
historical benchmarks, organizer readiness scoring and a planning assistant.
"""

__version__ = "0.3.0"
