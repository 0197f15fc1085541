"""CEPI utility modules."""

from .resilience import (
    backoff_delay_ms,
    classify_status,
    fetch_with_retry,
    raise_for_upstream_status,
    sanitize_text_input,
)

__all__ = [
    # Resilience
    "backoff_delay_ms",
    "classify_status",
    "fetch_with_retry",
    "raise_for_upstream_status",
    "sanitize_text_input",
]
