"""OpenClaw hook installation.

OpenClaw discovers hook packages as directories under ``~/.openclaw/hooks``,
each with a ``HOOK.md`` descriptor and a ``handler.ts``. pulse owns the
``pulse-hook`` directory and nothing else in there.
"""

from __future__ import annotations

import shutil
from pathlib import Path
from typing import Optional

from ..errors import ConfigWriteError
from ..span import Source
from .base import (
    AgentAdapter,
    HookDescriptor,
    HookInstallResult,
    HookStatus,
    HookUninstallResult,
    atomic_write,
    ensure_owned_dir,
    load_asset,
    remove_owned_dir,
)

OPENCLAW_CONFIG_DIR = ".openclaw"
HOOKS_DIR_NAME = "hooks"
HOOK_DIR_NAME = "pulse-hook"
HOOK_FILES = ("HOOK.md", "handler.ts")


def hook_sources() -> dict[str, str]:
    return {name: load_asset("openclaw", name) for name in HOOK_FILES}


class OpenClawAdapter(AgentAdapter):
    """Install the pulse hook package for OpenClaw."""

    name = "OpenClaw"
    source = Source.OPENCLAW

    def __init__(self, home: Optional[Path] = None) -> None:
        super().__init__(home)
        self.config_dir = self.home / OPENCLAW_CONFIG_DIR
        self.hooks_dir = self.config_dir / HOOKS_DIR_NAME
        self.hook_dir = self.hooks_dir / HOOK_DIR_NAME

    @property
    def path(self) -> Path:
        return self.hook_dir

    def detect(self) -> bool:
        return self.config_dir.is_dir()

    def descriptors(self) -> list[HookDescriptor]:
        return [
            HookDescriptor(
                key=HOOK_DIR_NAME,
                event="command:*,message:*",
                command="handler.ts",
                path=self.hook_dir,
            )
        ]

    def _files_installed(self) -> bool:
        return all((self.hook_dir / name).is_file() for name in HOOK_FILES)

    def _outdated_files(self) -> list[str]:
        outdated = []
        for name, source in hook_sources().items():
            try:
                current = (self.hook_dir / name).read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError):
                current = None
            if current != source:
                outdated.append(name)
        return outdated

    def status(self) -> HookStatus:
        if not self.detect():
            return self.not_detected()

        installed = self._files_installed()
        message = None
        if installed and self._outdated_files():
            message = "Hook installed but outdated; run `pulse connect` to update"
        elif self.hook_dir.is_dir() and not installed:
            message = f"{self.hook_dir} is incomplete; run `pulse connect` to repair"

        return HookStatus(
            agent=self.name,
            detected=True,
            installed_count=int(installed),
            expected_count=1,
            hooks={HOOK_DIR_NAME: installed},
            path=self.hook_dir,
            message=message,
        )

    def install(self) -> HookInstallResult:
        """Write HOOK.md and handler.ts, rewriting only files that differ."""
        if not self.detect():
            return self.skip_install()

        sources = hook_sources()
        outdated = self._outdated_files()
        if outdated:
            ensure_owned_dir(self.hooks_dir)
        for name in outdated:
            atomic_write(self.hook_dir / name, sources[name])

        return HookInstallResult(
            agent=self.name,
            path=self.hook_dir,
            added=[HOOK_DIR_NAME] if outdated else [],
            status=self.status(),
        )

    def uninstall(self) -> HookUninstallResult:
        """Remove the pulse-hook directory, leaving sibling hooks alone."""
        result = HookUninstallResult(agent=self.name, path=self.hook_dir)
        if not self.hook_dir.is_dir():
            return result

        try:
            shutil.rmtree(self.hook_dir)
        except OSError as e:
            raise ConfigWriteError(self.hook_dir, e.strerror or str(e)) from e

        result.removed.append(HOOK_DIR_NAME)
        remove_owned_dir(self.hooks_dir)
        return result
