"""Identifier and timestamp helpers."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone


def new_span_id() -> str:
    """Return a random v4 UUID string."""
    return str(uuid.uuid4())


def now_iso() -> str:
    """Get current UTC timestamp in ISO format."""
    return datetime.now(timezone.utc).isoformat()
