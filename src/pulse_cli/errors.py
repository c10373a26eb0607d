"""Exception types raised by pulse.

Interactive commands (connect/disconnect/status/init) surface these to the
operator. The emit hot path catches every one of them.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional


class PulseError(Exception):
    """Base class for all pulse errors."""

    pass


class ConfigMissingError(PulseError):
    """Raised when pulse has not been initialised on this machine."""

    def __init__(self, path: Optional[Path] = None) -> None:
        self.path = path
        super().__init__("Pulse is not initialized. Run `pulse init` first.")


class ConfigParseError(PulseError):
    """Raised when an agent's configuration file cannot be understood."""

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot parse {path}: {reason}")


class ConfigWriteError(PulseError):
    """Raised when writing or removing an agent configuration fails."""

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot write {path}: {reason}")


class PayloadParseError(PulseError):
    """Raised when an emitted payload is not a JSON object."""

    pass


class MissingRequiredFieldError(PulseError):
    """Raised when a payload lacks a field every span must carry."""

    def __init__(self, field_name: str) -> None:
        self.field_name = field_name
        super().__init__(f"Payload is missing required field '{field_name}'")


class TransmissionError(PulseError):
    """Raised when spans cannot be delivered to the trace service."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        self.status_code = status_code
        super().__init__(message)
