"""HTTP sink for sending spans to the Pulse trace service."""

from __future__ import annotations

import json
from typing import Any, Optional
from urllib.parse import urlparse

import httpx

from .. import __version__
from ..errors import TransmissionError
from .base import TelemetrySink

USER_AGENT = f"pulse-cli/{__version__}"
SPANS_PATH = "/v1/spans/batch"
HEALTH_PATH = "/health"
DEFAULT_TIMEOUT_SECONDS = 5.0


class TLSRequiredError(ValueError):
    """Raised when TLS is required but endpoint uses HTTP."""

    pass


class HttpSpanSink(TelemetrySink):
    """
    Buffer spans and POST them as one JSON array on flush().

    The emit path sends a single span per process, so there is no
    background flushing; callers flush (or close) explicitly.
    """

    def __init__(
        self,
        api_url: str,
        api_key: str,
        project_id: str,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        require_tls: bool = False,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        """
        Initialize the HTTP sink.

        Args:
            api_url: Base URL of the trace service
            api_key: API key for authentication
            project_id: Pulse project the spans belong to
            timeout_seconds: HTTP request timeout
            require_tls: Refuse non-HTTPS endpoints
            transport: Optional httpx transport (used by tests)
        """
        base = api_url.strip().rstrip("/")
        parsed = urlparse(base)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError(f"Invalid API url: {api_url!r}")
        if require_tls and parsed.scheme != "https":
            raise TLSRequiredError(
                f"HTTPS is required for the trace service. Got scheme '{parsed.scheme}'."
            )

        self.api_url = base
        self.api_key = api_key
        self.project_id = project_id
        self.timeout_seconds = timeout_seconds

        # Safe endpoint for error messages (no query params/credentials)
        port = f":{parsed.port}" if parsed.port else ""
        self._safe_endpoint = f"{parsed.scheme}://{parsed.hostname}{port}{parsed.path}"

        self._buffer: list[dict[str, Any]] = []
        self._client = httpx.Client(
            timeout=timeout_seconds,
            headers={"User-Agent": USER_AGENT},
            transport=transport,
        )

    @classmethod
    def from_config(cls, config: Any, timeout_seconds: Optional[float] = None, **kwargs: Any) -> "HttpSpanSink":
        return cls(
            api_url=config.api_url,
            api_key=config.api_key,
            project_id=config.project_id,
            timeout_seconds=timeout_seconds or DEFAULT_TIMEOUT_SECONDS,
            require_tls=config.require_tls,
            **kwargs,
        )

    def _auth_headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "X-Project-Id": self.project_id,
        }

    def write(self, span: dict[str, Any]) -> None:
        self._buffer.append(span)

    def flush(self) -> None:
        """
        Send buffered spans.

        Raises:
            TransmissionError: If the request fails or is rejected.
        """
        if not self._buffer:
            return

        batch = list(self._buffer)
        self._buffer.clear()
        try:
            response = self._client.post(
                self.api_url + SPANS_PATH,
                content=json.dumps(batch, separators=(",", ":"), default=str),
                headers={**self._auth_headers(), "Content-Type": "application/json"},
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            hint = " (check API key)" if status_code in (401, 403) else ""
            raise TransmissionError(
                f"Trace service rejected {len(batch)} span(s): "
                f"status={status_code}{hint} endpoint={self._safe_endpoint}",
                status_code=status_code,
            ) from e
        except httpx.HTTPError as e:
            raise TransmissionError(
                f"Failed to send {len(batch)} span(s): {type(e).__name__} "
                f"endpoint={self._safe_endpoint}"
            ) from e

    def health_check(self) -> None:
        """
        Check the trace service is reachable.

        Raises:
            TransmissionError: If the health endpoint fails.
        """
        try:
            response = self._client.get(self.api_url + HEALTH_PATH, headers=self._auth_headers())
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise TransmissionError(
                f"Health check failed with status {e.response.status_code}",
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise TransmissionError(f"Unable to reach {self._safe_endpoint}: {e}") from e

    def close(self) -> None:
        try:
            self.flush()
        finally:
            self._client.close()
