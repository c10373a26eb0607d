"""Bring every agent's hooks to the desired state.

``connect`` installs into every detected agent, ``disconnect`` removes from
all of them, and ``status`` reports what is there. A failure in one agent
(unparsable settings, permission denied) is recorded on that agent's report
and never stops the others from being processed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Optional

from .config import PulseConfig
from .errors import PulseError
from .hooks import AgentAdapter, AgentState, HookStatus, registered_adapters
from .logger import get_logger
from .sinks import HttpSpanSink


class Outcome(str, Enum):
    """Result of running one reconciler command against one agent."""

    INSTALLED = "installed"
    ALREADY_INSTALLED = "already_installed"
    REMOVED = "removed"
    NOTHING_TO_REMOVE = "nothing_to_remove"
    NOT_DETECTED = "not_detected"
    REPORTED = "reported"
    FAILED = "failed"


@dataclass
class AgentReport:
    """Per-agent outcome of connect, disconnect or status."""

    agent: str
    outcome: Outcome
    path: Optional[Path] = None
    status: Optional[HookStatus] = None
    changed: list[str] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def state(self) -> Optional[AgentState]:
        return self.status.state if self.status else None

    @property
    def failed(self) -> bool:
        return self.outcome is Outcome.FAILED


@dataclass
class Connectivity:
    """Result of the trace service health check."""

    reachable: bool
    detail: str


@dataclass
class StatusReport:
    """Combined output of the status command."""

    agents: list[AgentReport]
    connectivity: Optional[Connectivity] = None


HealthCheck = Callable[[PulseConfig], None]


def _default_health_check(config: PulseConfig) -> None:
    sink = HttpSpanSink.from_config(config)
    try:
        sink.health_check()
    finally:
        sink.close()


class HookReconciler:
    """Drive all agent adapters for connect, disconnect and status."""

    def __init__(
        self,
        adapters: Optional[list[AgentAdapter]] = None,
        health_check: Optional[HealthCheck] = None,
    ) -> None:
        self.adapters = adapters if adapters is not None else registered_adapters()
        self.health_check = health_check or _default_health_check
        self._logger = get_logger()

    def _failed(self, adapter: AgentAdapter, command: str, exc: Exception) -> AgentReport:
        self._logger.warning("%s failed for %s: %s", command, adapter.name, exc)
        return AgentReport(
            agent=adapter.name,
            outcome=Outcome.FAILED,
            path=adapter.path,
            error=str(exc),
        )

    def connect(self) -> list[AgentReport]:
        """Install hooks into every detected agent."""
        reports = []
        for adapter in self.adapters:
            try:
                if not adapter.detect():
                    reports.append(AgentReport(
                        agent=adapter.name,
                        outcome=Outcome.NOT_DETECTED,
                        path=adapter.path,
                        status=adapter.not_detected(),
                    ))
                    continue
                result = adapter.install()
                reports.append(AgentReport(
                    agent=adapter.name,
                    outcome=Outcome.INSTALLED if result.modified else Outcome.ALREADY_INSTALLED,
                    path=result.path,
                    status=result.status,
                    changed=list(result.added),
                ))
            except (PulseError, OSError) as e:
                reports.append(self._failed(adapter, "connect", e))
        return reports

    def disconnect(self) -> list[AgentReport]:
        """Remove hooks from every agent, detected or not."""
        reports = []
        for adapter in self.adapters:
            try:
                result = adapter.uninstall()
                reports.append(AgentReport(
                    agent=adapter.name,
                    outcome=Outcome.REMOVED if result.modified else Outcome.NOTHING_TO_REMOVE,
                    path=result.path,
                    changed=list(result.removed),
                ))
            except (PulseError, OSError) as e:
                reports.append(self._failed(adapter, "disconnect", e))
        return reports

    def check_connectivity(self, config: PulseConfig) -> Connectivity:
        try:
            self.health_check(config)
        except (PulseError, ValueError) as e:
            return Connectivity(reachable=False, detail=str(e))
        return Connectivity(reachable=True, detail="Trace service reachable")

    def status(self, config: Optional[PulseConfig] = None) -> StatusReport:
        """Report hook state for every agent, plus connectivity if configured."""
        agents = []
        for adapter in self.adapters:
            try:
                if not adapter.detect():
                    status = adapter.not_detected()
                    outcome = Outcome.NOT_DETECTED
                else:
                    status = adapter.status()
                    outcome = Outcome.REPORTED
                agents.append(AgentReport(
                    agent=adapter.name,
                    outcome=outcome,
                    path=status.path,
                    status=status,
                ))
            except (PulseError, OSError) as e:
                agents.append(self._failed(adapter, "status", e))

        connectivity = self.check_connectivity(config) if config is not None else None
        return StatusReport(agents=agents, connectivity=connectivity)
