"""Base class for span sinks."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class TelemetrySink(ABC):
    """Destination for serialized spans."""

    @abstractmethod
    def write(self, span: dict[str, Any]) -> None:
        """Buffer or send one serialized span."""

    @abstractmethod
    def flush(self) -> None:
        """Deliver anything buffered."""

    def close(self) -> None:
        self.flush()

    def __enter__(self) -> "TelemetrySink":
        return self

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        self.close()
