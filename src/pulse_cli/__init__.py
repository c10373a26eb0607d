"""Pulse - lifecycle hooks and span normalization for AI coding agents.

Example usage:
    $ pulse init --api-url https://pulse.example.com --api-key pk_... --project-id proj_1
    $ pulse connect      # install hooks into Claude Code, OpenCode, OpenClaw
    $ pulse status
    $ pulse disconnect

Installed hooks call ``pulse emit <event_type>`` with the agent's event
payload on stdin; see ``pulse_cli.emit``.
"""

from __future__ import annotations

__version__ = "0.3.0"

from .extract import extract
from .span import Source, Span, SpanKind, SpanStatus

__all__ = [
    "Source",
    "Span",
    "SpanKind",
    "SpanStatus",
    "__version__",
    "extract",
]
