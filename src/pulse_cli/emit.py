"""Dispatch entrypoint invoked by installed agent hooks.

Usage (what the hooks run):
    pulse emit <event_type> [--source claude_code|opencode|openclaw]

The hook payload is read from stdin as JSON. This path must never fail or
delay the agent: malformed input, unknown events, missing configuration
and network errors all end in a silent, successful return. The only
trace of what happened is the opt-in debug log (PULSE_DEBUG=1).
"""

from __future__ import annotations

import json
import sys
from typing import IO, Callable, Optional

from . import __version__
from .config import ConfigStore, PulseConfig
from .errors import MissingRequiredFieldError, PayloadParseError, PulseError
from .extract import extract
from .logger import configure_logging, get_logger, log_payload, log_span_dropped
from .sanitize import sanitize_span
from .sinks import HttpSpanSink, TelemetrySink
from .span import Source, Span

DEFAULT_SOURCE = Source.CLAUDE_CODE

SinkFactory = Callable[[PulseConfig], TelemetrySink]


def _default_sink(config: PulseConfig) -> TelemetrySink:
    return HttpSpanSink.from_config(config, timeout_seconds=config.emit_timeout_seconds)


def build_span(
    event_type: str,
    raw: str,
    config: PulseConfig,
    source: Optional[str] = None,
) -> Optional[Span]:
    """
    Turn a raw stdin payload into a sanitized span.

    Returns None (after logging why) when no valid span can be built.
    """
    event_type = event_type.strip()
    if not event_type or not raw.strip():
        log_span_dropped(event_type, "empty event type or payload")
        return None

    try:
        resolved_source = Source((source or DEFAULT_SOURCE.value).strip())
    except ValueError:
        log_span_dropped(event_type, f"unknown source {source!r}")
        return None

    try:
        payload = json.loads(raw)
        span = extract(
            resolved_source,
            event_type,
            payload,
            project_id=config.project_id,
            cli_version=__version__,
        )
    except json.JSONDecodeError as e:
        log_span_dropped(event_type, f"invalid JSON: {e}")
        return None
    except (PayloadParseError, MissingRequiredFieldError) as e:
        log_span_dropped(event_type, str(e))
        return None

    return sanitize_span(span, redact=config.redact_enabled, max_chars=config.max_value_chars)


def run_emit(
    event_type: str,
    source: Optional[str] = None,
    stdin: Optional[IO[str]] = None,
    config: Optional[PulseConfig] = None,
    sink_factory: Optional[SinkFactory] = None,
) -> None:
    """
    Read a hook payload, extract a span and send it. Never raises.

    Args:
        event_type: Event name passed by the hook.
        source: Agent the hook belongs to (defaults to claude_code).
        stdin: Stream to read the payload from (defaults to sys.stdin).
        config: Pulse config (loaded from ~/.pulse/config if omitted).
        sink_factory: Builds the sink for the span (defaults to HTTP).
    """
    try:
        _emit(event_type, source, stdin or sys.stdin, config, sink_factory or _default_sink)
    except Exception as e:
        # Instrumentation must never be the reason an agent operation fails
        try:
            get_logger().debug("emit failed: %s: %s", type(e).__name__, e)
        except Exception:
            pass


def _emit(
    event_type: str,
    source: Optional[str],
    stdin: IO[str],
    config: Optional[PulseConfig],
    sink_factory: SinkFactory,
) -> None:
    raw = stdin.read()

    if config is None:
        try:
            config = ConfigStore.load()
        except PulseError as e:
            log_payload(source or DEFAULT_SOURCE.value, event_type, raw)
            log_span_dropped(event_type, str(e))
            return
    if config.debug:
        configure_logging(debug=True)

    log_payload(source or DEFAULT_SOURCE.value, event_type, raw)

    span = build_span(event_type, raw, config, source)
    if span is None:
        return

    with sink_factory(config) as sink:
        sink.write(span.to_dict())
