"""Normalize raw agent hook payloads into canonical spans.

Each supported agent names its lifecycle events differently. Extraction
happens in two steps:

1. Native event names (OpenCode's ``session.idle``, OpenClaw's
   ``command:new`` ...) are mapped onto the canonical vocabulary, along with
   any payload values the native name implies.
2. The canonical event type selects an ``ExtractionRule`` from
   ``EXTRACTION_RULES``, which says which optional span fields and which
   metadata keys are copied out of the payload.

Unknown event types still produce a span (kind ``session``) carrying only
the generic fields, so new agent events never break the pipeline.

Example:
    >>> span = extract("claude_code", "pre_tool_use", {
    ...     "session_id": "sess_1",
    ...     "tool_name": "Bash",
    ...     "tool_input": {"command": "ls"},
    ... })
    >>> span.kind.value, span.tool_name
    ('tool_use', 'Bash')
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Optional, Union

from . import __version__
from .errors import MissingRequiredFieldError, PayloadParseError
from .ids import new_span_id, now_iso
from .span import Source, Span, SpanKind, SpanStatus

# =============================================================================
# Extraction table
# =============================================================================

# Span fields that hold free-form JSON rather than strings.
_STRUCTURED_FIELDS = frozenset({"tool_input", "tool_response", "error"})


@dataclass(frozen=True)
class ExtractionRule:
    """
    How to build a span for one canonical event type.

    Attributes:
        kind: Span kind for the event.
        status: Span status for the event.
        fields: (span_field, payload_keys) pairs. The first payload key with
            a usable value wins.
        metadata: (metadata_key, payload_key) pairs copied into metadata.
        enrich: Optional pure function returning extra metadata.
    """

    kind: SpanKind
    status: SpanStatus = SpanStatus.SUCCESS
    fields: tuple[tuple[str, tuple[str, ...]], ...] = ()
    metadata: tuple[tuple[str, str], ...] = ()
    enrich: Optional[Callable[[Mapping[str, Any]], dict[str, Any]]] = None


def _usage_metadata(payload: Mapping[str, Any]) -> dict[str, Any]:
    """Flatten OpenCode token accounting into metadata.usage."""
    usage: dict[str, Any] = {}
    tokens = payload.get("tokens")
    if isinstance(tokens, Mapping):
        for src, dst in (
            ("input", "input_tokens"),
            ("output", "output_tokens"),
            ("reasoning", "reasoning_tokens"),
        ):
            if isinstance(tokens.get(src), (int, float)):
                usage[dst] = tokens[src]
        cache = tokens.get("cache")
        if isinstance(cache, Mapping):
            for src, dst in (("read", "cache_read_tokens"), ("write", "cache_write_tokens")):
                if isinstance(cache.get(src), (int, float)):
                    usage[dst] = cache[src]
    cost = payload.get("cost")
    if isinstance(cost, (int, float)) and not isinstance(cost, bool):
        usage["cost"] = cost
    return {"usage": usage} if usage else {}


_TOOL_FIELDS = (
    ("tool_use_id", ("tool_use_id",)),
    ("tool_name", ("tool_name",)),
    ("tool_input", ("tool_input",)),
)

_SUBAGENT = ExtractionRule(
    kind=SpanKind.AGENT_RUN,
    fields=(("agent_name", ("agent_type", "agent_name")),),
    metadata=(("agent_id", "agent_id"),),
)

EXTRACTION_RULES: dict[str, ExtractionRule] = {
    "pre_tool_use": ExtractionRule(
        kind=SpanKind.TOOL_USE,
        fields=_TOOL_FIELDS,
    ),
    "post_tool_use": ExtractionRule(
        kind=SpanKind.TOOL_USE,
        fields=_TOOL_FIELDS + (("tool_response", ("tool_response",)),),
    ),
    "post_tool_use_failure": ExtractionRule(
        kind=SpanKind.TOOL_USE,
        status=SpanStatus.ERROR,
        fields=_TOOL_FIELDS + (("error", ("error",)), ("is_interrupt", ("is_interrupt",))),
    ),
    "session_start": ExtractionRule(
        kind=SpanKind.SESSION,
        fields=(("model", ("model",)),),
    ),
    "session_end": ExtractionRule(
        kind=SpanKind.SESSION,
        fields=(("error", ("error",)),),
        metadata=(("reason", "reason"),),
    ),
    "stop": ExtractionRule(kind=SpanKind.SESSION),
    "subagent_start": _SUBAGENT,
    "subagent_stop": _SUBAGENT,
    "user_prompt_submit": ExtractionRule(
        kind=SpanKind.USER_PROMPT,
        metadata=(("prompt", "prompt"),),
    ),
    "notification": ExtractionRule(
        kind=SpanKind.NOTIFICATION,
        metadata=(("message", "message"), ("title", "title")),
    ),
    "assistant_message": ExtractionRule(
        kind=SpanKind.LLM_RESPONSE,
        fields=(("model", ("model",)),),
        enrich=_usage_metadata,
    ),
}

# Catch-all for event types outside the table.
DEFAULT_RULE = ExtractionRule(kind=SpanKind.SESSION)


def event_type_to_kind(event_type: str) -> SpanKind:
    """Map a canonical event type to its span kind."""
    return EXTRACTION_RULES.get(event_type, DEFAULT_RULE).kind


def event_type_to_status(event_type: str) -> SpanStatus:
    """Map a canonical event type to its default span status."""
    return EXTRACTION_RULES.get(event_type, DEFAULT_RULE).status


# =============================================================================
# Native event normalization
# =============================================================================


@dataclass(frozen=True)
class EventAlias:
    """
    A native event name and the canonical event it stands for.

    Attributes:
        event_type: Canonical event type.
        defaults: Payload values implied by the native name (set if absent).
        renames: payload key -> canonical key, applied when canonical is absent.
        status: Overrides the rule's status (native failure events).
    """

    event_type: str
    defaults: Mapping[str, Any] = field(default_factory=dict)
    renames: Mapping[str, str] = field(default_factory=dict)
    status: Optional[SpanStatus] = None


EVENT_ALIASES: dict[tuple[Source, str], EventAlias] = {
    (Source.OPENCODE, "session.created"): EventAlias("session_start"),
    (Source.OPENCODE, "session.idle"): EventAlias("session_end", defaults={"reason": "idle"}),
    (Source.OPENCODE, "session.error"): EventAlias(
        "session_end", defaults={"reason": "error"}, status=SpanStatus.ERROR
    ),
    (Source.OPENCODE, "tool.execute.before"): EventAlias("pre_tool_use"),
    (Source.OPENCODE, "tool.execute.after"): EventAlias("post_tool_use"),
    (Source.OPENCLAW, "command:new"): EventAlias("session_start"),
    (Source.OPENCLAW, "command:stop"): EventAlias("stop"),
    (Source.OPENCLAW, "command:reset"): EventAlias("session_end", defaults={"reason": "reset"}),
    (Source.OPENCLAW, "message:received"): EventAlias(
        "user_prompt_submit", renames={"content": "prompt"}
    ),
    (Source.OPENCLAW, "message:sent"): EventAlias(
        "notification", renames={"content": "message"}
    ),
}

# OpenCode reports both sides of a conversation as message.updated.
_OPENCODE_MESSAGE_ROLES = {
    "user": EventAlias("user_prompt_submit", renames={"content": "prompt"}),
    "assistant": EventAlias("assistant_message"),
}


def _resolve_alias(source: Source, event_type: str, payload: Mapping[str, Any]) -> Optional[EventAlias]:
    if source is Source.OPENCODE and event_type == "message.updated":
        return _OPENCODE_MESSAGE_ROLES.get(str(payload.get("role") or ""))
    return EVENT_ALIASES.get((source, event_type))


def normalize_event(
    source: Union[Source, str],
    event_type: str,
    payload: Mapping[str, Any],
) -> tuple[str, dict[str, Any], Optional[SpanStatus]]:
    """
    Map a native event onto the canonical vocabulary.

    Canonical names pass through for every source.

    Returns:
        (canonical_event_type, payload, status_override)
    """
    source = Source(source)
    event_type = event_type.strip()
    data = dict(payload)

    if event_type in EXTRACTION_RULES:
        return event_type, data, None

    alias = _resolve_alias(source, event_type, data)
    if alias is None:
        return event_type, data, None

    for src, dst in alias.renames.items():
        if data.get(dst) in (None, "") and src in data:
            data[dst] = data[src]
    for key, value in alias.defaults.items():
        if data.get(key) in (None, ""):
            data[key] = value
    return alias.event_type, data, alias.status


# =============================================================================
# Field helpers
# =============================================================================


def _str_field(payload: Mapping[str, Any], key: str) -> Optional[str]:
    """Return payload[key] if it is a non-empty string."""
    value = payload.get(key)
    if isinstance(value, str) and value.strip():
        return value
    return None


def _field_value(payload: Mapping[str, Any], span_field: str, key: str) -> Any:
    if span_field in _STRUCTURED_FIELDS:
        return payload.get(key)
    if span_field == "is_interrupt":
        value = payload.get(key)
        return value if isinstance(value, bool) else None
    return _str_field(payload, key)


# =============================================================================
# Public API
# =============================================================================


def extract(
    source: Union[Source, str],
    event_type: str,
    payload: Any,
    *,
    project_id: str = "",
    cli_version: str = __version__,
) -> Span:
    """
    Build a span from a raw hook payload.

    Args:
        source: Agent the installed hook belongs to. Never read from payload.
        event_type: Event name as passed by the hook (canonical or native).
        payload: Decoded JSON payload.
        project_id: Configured Pulse project id (copied into metadata).
        cli_version: Version tag copied into metadata.

    Returns:
        A populated Span.

    Raises:
        PayloadParseError: If payload is not a JSON object.
        MissingRequiredFieldError: If session_id is absent or blank.
        ValueError: If source is not a supported agent.
    """
    source = Source(source)
    if not isinstance(payload, Mapping):
        raise PayloadParseError(f"Expected a JSON object, got {type(payload).__name__}")

    event_type, data, status_override = normalize_event(source, event_type, payload)

    session_id = _str_field(data, "session_id")
    if session_id is None:
        raise MissingRequiredFieldError("session_id")

    rule = EXTRACTION_RULES.get(event_type, DEFAULT_RULE)

    optional: dict[str, Any] = {"cwd": _str_field(data, "cwd")}
    for span_field, keys in rule.fields:
        for key in keys:
            value = _field_value(data, span_field, key)
            if value is not None:
                optional[span_field] = value
                break

    metadata: dict[str, Any] = {
        "cli_version": cli_version,
        "project_id": project_id,
    }
    for meta_key, payload_key in rule.metadata:
        value = _str_field(data, payload_key)
        if value is not None:
            metadata[meta_key] = value
    if rule.enrich is not None:
        metadata.update(rule.enrich(data))

    return Span(
        span_id=new_span_id(),
        session_id=session_id.strip(),
        timestamp=now_iso(),
        source=source,
        kind=rule.kind,
        event_type=event_type,
        status=status_override or rule.status,
        metadata=metadata,
        **optional,
    )
