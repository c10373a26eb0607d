"""Canonical span record shipped to the Pulse trace service.

The field names and enum values below are the wire contract the trace
service and its query API depend on.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, Optional


class Source(str, Enum):
    """Agent that produced an event."""

    CLAUDE_CODE = "claude_code"
    OPENCODE = "opencode"
    OPENCLAW = "openclaw"


class SpanKind(str, Enum):
    """Coarse event category."""

    TOOL_USE = "tool_use"
    SESSION = "session"
    AGENT_RUN = "agent_run"
    USER_PROMPT = "user_prompt"
    LLM_RESPONSE = "llm_response"
    NOTIFICATION = "notification"


class SpanStatus(str, Enum):
    """Outcome of the event."""

    SUCCESS = "success"
    ERROR = "error"


# Emitted only when set; absence is meaningful to consumers.
OPTIONAL_FIELDS = (
    "tool_use_id",
    "tool_name",
    "tool_input",
    "tool_response",
    "error",
    "is_interrupt",
    "cwd",
    "model",
    "agent_name",
)


@dataclass(frozen=True)
class Span:
    """
    One normalized agent lifecycle or tool-use event.

    Attributes:
        span_id: Random v4 UUID generated per emission.
        session_id: Agent-supplied session identifier (never empty).
        timestamp: UTC ISO-8601 time the span was extracted.
        source: Agent the hook belongs to.
        kind: Coarse category derived from event_type.
        event_type: Canonical lifecycle event name.
        status: success or error.
        metadata: Always holds cli_version and project_id.
    """

    span_id: str
    session_id: str
    timestamp: str
    source: Source
    kind: SpanKind
    event_type: str
    status: SpanStatus = SpanStatus.SUCCESS
    tool_use_id: Optional[str] = None
    tool_name: Optional[str] = None
    tool_input: Any = None
    tool_response: Any = None
    error: Any = None
    is_interrupt: Optional[bool] = None
    cwd: Optional[str] = None
    model: Optional[str] = None
    agent_name: Optional[str] = None
    metadata: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the wire shape, omitting unset optional fields."""
        out: dict[str, Any] = {
            "span_id": self.span_id,
            "session_id": self.session_id,
            "timestamp": self.timestamp,
            "source": self.source.value,
            "kind": self.kind.value,
            "event_type": self.event_type,
            "status": self.status.value,
        }
        for name in OPTIONAL_FIELDS:
            value = getattr(self, name)
            if value is not None:
                out[name] = value
        out["metadata"] = dict(self.metadata)
        return out
