"""Error taxonomy for agent dispatch and upstream calls.

Only ValidationError (and its InvalidAgentKind subclass) is ever shown to
the caller as a failed request. Upstream errors are absorbed by the agents
and turned into fallback analysis; ParseError never leaves the normalizer.
"""

from typing import Any, Optional


class CEPIError(Exception):
    """Base class for all service errors."""

    def to_dict(self) -> dict[str, Any]:
        return {"error": type(self).__name__, "message": str(self)}


class ValidationError(CEPIError):
    """Payload is missing required fields or carries invalid values."""

    def __init__(self, message: str, fields: Optional[list[str]] = None):
        super().__init__(message)
        self.fields = fields or []

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.fields:
            result["fields"] = self.fields
        return result


class InvalidAgentKind(ValidationError):
    """Requested agent is not one of the known kinds."""

    def __init__(self, agent: Any, valid_kinds: list[str]):
        super().__init__(
            f"Invalid agent type. Must be one of: {', '.join(valid_kinds)}",
            fields=["agent"],
        )
        self.agent = agent
        self.valid_kinds = valid_kinds

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["validAgents"] = self.valid_kinds
        return result


UnknownAgentKind = InvalidAgentKind


class UpstreamError(CEPIError):
    """An external API call failed."""

    def __init__(
        self,
        message: str,
        service: str = "upstream",
        status_code: Optional[int] = None,
    ):
        super().__init__(message)
        self.service = service
        self.status_code = status_code


class UpstreamTransportError(UpstreamError):
    """Network failure, timeout, 5xx or 429 that outlived the retry budget."""


class UpstreamAuthError(UpstreamError):
    """401/403 from an upstream. Retrying cannot fix a bad key."""


class UpstreamResponseError(UpstreamError):
    """Non-retryable 4xx or a payload the caller cannot use."""


class ParseError(CEPIError):
    """Model output did not match the expected structure."""
