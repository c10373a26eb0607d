"""Span sinks for trace service output."""

from .base import TelemetrySink
from .http import HttpSpanSink, TLSRequiredError

__all__ = ["TelemetrySink", "HttpSpanSink", "TLSRequiredError"]
