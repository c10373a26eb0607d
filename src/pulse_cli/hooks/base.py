"""Shared contract for agent hook adapters.

Every supported agent gets one ``AgentAdapter`` subclass that knows where
the agent keeps its configuration and how to add or remove the hooks pulse
owns there. Adapters only ever touch entries they can recognize as their
own; everything else in the agent's configuration is left alone.
"""

from __future__ import annotations

import os
import tempfile
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from importlib import resources
from pathlib import Path
from typing import Optional

from ..errors import ConfigWriteError
from ..span import Source

# Marks directories pulse created; only those are pruned on uninstall
CREATED_MARKER = ".pulse-created"


class AgentState(str, Enum):
    """Hook installation state of one agent."""

    NOT_DETECTED = "not_detected"
    NOT_INSTALLED = "not_installed"
    PARTIALLY_INSTALLED = "partially_installed"
    FULLY_INSTALLED = "fully_installed"


@dataclass(frozen=True)
class HookDescriptor:
    """
    One instrumentation point pulse installs into an agent.

    Attributes:
        key: Stable name used to recognize the hook on re-read.
        event: Native event the hook binds to.
        command: Command line (or generated file name) the hook runs.
        path: Config file or directory the hook lives in.
    """

    key: str
    event: str
    command: str
    path: Path


@dataclass
class HookStatus:
    """Observed hook state of one agent."""

    agent: str
    detected: bool
    installed_count: int = 0
    expected_count: int = 0
    hooks: dict[str, bool] = field(default_factory=dict)
    path: Optional[Path] = None
    message: Optional[str] = None

    @property
    def state(self) -> AgentState:
        if not self.detected:
            return AgentState.NOT_DETECTED
        if self.installed_count == 0:
            return AgentState.NOT_INSTALLED
        if self.installed_count < self.expected_count:
            return AgentState.PARTIALLY_INSTALLED
        return AgentState.FULLY_INSTALLED

    @property
    def installed_hook_names(self) -> list[str]:
        return [key for key, present in self.hooks.items() if present]


@dataclass
class HookInstallResult:
    """Outcome of AgentAdapter.install()."""

    agent: str
    path: Path
    added: list[str] = field(default_factory=list)
    status: Optional[HookStatus] = None

    @property
    def modified(self) -> bool:
        return bool(self.added)


@dataclass
class HookUninstallResult:
    """Outcome of AgentAdapter.uninstall()."""

    agent: str
    path: Path
    removed: list[str] = field(default_factory=list)

    @property
    def modified(self) -> bool:
        return bool(self.removed)


def atomic_write(file_path: Path, content: str, mode: Optional[int] = None) -> None:
    """Write content to file atomically using temp file and rename.

    Readers (including an agent starting up concurrently) see either the
    old file or the new one, never a partial write.

    Args:
        file_path: Target file path.
        content: Content to write.
        mode: Optional permission bits for the new file.

    Raises:
        ConfigWriteError: If the write fails.
    """
    try:
        file_path.parent.mkdir(parents=True, exist_ok=True)
        fd, temp_path = tempfile.mkstemp(
            dir=file_path.parent,
            prefix=f".{file_path.name}_",
            suffix=".tmp",
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
            if mode is not None:
                os.chmod(temp_path, mode)
            elif file_path.exists():
                os.chmod(temp_path, file_path.stat().st_mode & 0o777)
            else:
                os.chmod(temp_path, 0o644)

            os.replace(temp_path, file_path)
        except Exception:
            try:
                os.unlink(temp_path)
            except OSError:
                pass
            raise
    except OSError as e:
        raise ConfigWriteError(file_path, e.strerror or str(e)) from e


def load_asset(*parts: str) -> str:
    """Read a generated hook source shipped under pulse_cli/hooks/assets."""
    resource = resources.files("pulse_cli.hooks") / "assets"
    for part in parts:
        resource = resource / part
    return resource.read_text(encoding="utf-8")


def ensure_owned_dir(path: Path) -> None:
    """Create path if missing, leaving a marker that pulse created it.

    Raises:
        ConfigWriteError: If the directory cannot be created.
    """
    if path.is_dir():
        return
    try:
        path.mkdir()
        (path / CREATED_MARKER).touch()
    except OSError as e:
        raise ConfigWriteError(path, e.strerror or str(e)) from e


def remove_owned_dir(path: Path) -> bool:
    """Remove a directory pulse created once only the marker is left in it.

    Directories that existed before pulse (no marker) are never removed.
    Returns True if removed.
    """
    marker = path / CREATED_MARKER
    try:
        if not marker.is_file():
            return False
        if any(child.name != CREATED_MARKER for child in path.iterdir()):
            return False
        marker.unlink()
        path.rmdir()
        return True
    except OSError:
        return False


class AgentAdapter(ABC):
    """
    Hook installer for one agent.

    Subclasses must make install() idempotent and merge-only, and make
    uninstall() a no-op when nothing is installed.
    """

    #: Human readable agent name
    name: str = ""
    #: Span source baked into the installed hooks
    source: Source

    def __init__(self, home: Optional[Path] = None) -> None:
        self.home = Path(home) if home is not None else Path.home()

    @abstractmethod
    def detect(self) -> bool:
        """Return True if the agent is installed on this host."""

    @abstractmethod
    def descriptors(self) -> list[HookDescriptor]:
        """Hooks this adapter owns."""

    @abstractmethod
    def install(self) -> HookInstallResult:
        """Ensure every owned hook is present."""

    @abstractmethod
    def uninstall(self) -> HookUninstallResult:
        """Remove every owned hook."""

    @abstractmethod
    def status(self) -> HookStatus:
        """Report hook presence without modifying anything."""

    @property
    @abstractmethod
    def path(self) -> Path:
        """Config file or directory the hooks are written to."""

    def not_detected(self) -> HookStatus:
        return HookStatus(
            agent=self.name,
            detected=False,
            expected_count=len(self.descriptors()),
            path=self.path,
            message=f"{self.name} not detected. Expected configuration at {self.path}",
        )

    def skip_install(self) -> HookInstallResult:
        """Install result for an agent that is not on this host."""
        return HookInstallResult(agent=self.name, path=self.path, status=self.not_detected())

    def __repr__(self) -> str:
        return f"{type(self).__name__}(home={str(self.home)!r})"
