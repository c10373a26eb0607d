"""Diagnostic logging for pulse.

Hooks run inside the agent's process tree, so nothing may be written to
stdout/stderr on the emit path. Debug output goes to
``~/.pulse/debug.log`` and only when enabled with ``PULSE_DEBUG=1`` (or
``debug`` in the pulse config).
"""

from __future__ import annotations

import json
import logging
import os
import threading
from pathlib import Path
from typing import Any, Optional

LOGGER_NAME = "pulse"
LOG_FORMAT = "[%(asctime)s] [%(levelname)s] %(message)s"
DEBUG_LOG_FILENAME = "debug.log"

_configured = False
_configure_lock = threading.Lock()


def debug_enabled() -> bool:
    """Check if debug logging was requested through the environment."""
    return os.environ.get("PULSE_DEBUG", "").lower() in {"1", "true", "yes", "y"}


def configure_logging(debug: Optional[bool] = None, log_dir: Optional[Path] = None) -> logging.Logger:
    """
    Attach handlers to the pulse logger.

    Args:
        debug: Force debug logging on/off. Defaults to PULSE_DEBUG.
        log_dir: Directory for debug.log. Defaults to the pulse config dir.

    Returns:
        The configured logger.
    """
    global _configured

    logger = logging.getLogger(LOGGER_NAME)
    with _configure_lock:
        for existing in list(logger.handlers):
            logger.removeHandler(existing)
            existing.close()

        if debug is None:
            debug = debug_enabled()

        handler: logging.Handler = logging.NullHandler()
        if debug:
            if log_dir is None:
                from .config import ConfigStore
                log_dir = ConfigStore.config_dir()
            try:
                log_dir.mkdir(parents=True, exist_ok=True)
                handler = logging.FileHandler(log_dir / DEBUG_LOG_FILENAME, encoding="utf-8")
                handler.setFormatter(logging.Formatter(LOG_FORMAT))
            except OSError:
                handler = logging.NullHandler()

        logger.addHandler(handler)
        logger.setLevel(logging.DEBUG if debug else logging.WARNING)
        logger.propagate = False
        _configured = True
    return logger


def get_logger() -> logging.Logger:
    """Get the pulse logger, configuring it on first use."""
    if not _configured:
        return configure_logging()
    return logging.getLogger(LOGGER_NAME)


def log_payload(source: str, event_type: str, raw: Any) -> None:
    """Record a raw emit payload for offline diagnosis."""
    logger = get_logger()
    if not logger.isEnabledFor(logging.DEBUG):
        return
    if not isinstance(raw, str):
        raw = json.dumps(raw, default=str)
    logger.debug("emit source=%s event=%s payload=%s", source, event_type, raw)


def log_span_dropped(event_type: str, reason: str) -> None:
    """Record a span that was not sent."""
    get_logger().debug("span dropped event=%s reason=%s", event_type, reason)
