"""OpenCode hook installation.

OpenCode loads every TypeScript file in ``~/.config/opencode/plugins``.
pulse owns exactly one of them, ``pulse-plugin.ts``, recognized by its
generated-content marker on the first line.
"""

from __future__ import annotations

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

OPENCODE_CONFIG_DIR = Path(".config") / "opencode"
PLUGIN_DIR_NAME = "plugins"
PLUGIN_FILENAME = "pulse-plugin.ts"
PLUGIN_KEY = "pulse-plugin"
GENERATED_MARKER = "pulse:generated"


def plugin_source() -> str:
    return load_asset("opencode", PLUGIN_FILENAME)


class OpenCodeAdapter(AgentAdapter):
    """Install the pulse plugin file for OpenCode."""

    name = "OpenCode"
    source = Source.OPENCODE

    def __init__(self, home: Optional[Path] = None) -> None:
        super().__init__(home)
        self.config_dir = self.home / OPENCODE_CONFIG_DIR
        self.plugin_dir = self.config_dir / PLUGIN_DIR_NAME
        self.plugin_path = self.plugin_dir / PLUGIN_FILENAME

    @property
    def path(self) -> Path:
        return self.plugin_path

    def detect(self) -> bool:
        return self.config_dir.is_dir()

    def descriptors(self) -> list[HookDescriptor]:
        return [
            HookDescriptor(
                key=PLUGIN_KEY,
                event="*",
                command=PLUGIN_FILENAME,
                path=self.plugin_path,
            )
        ]

    def _read_plugin(self) -> Optional[str]:
        try:
            return self.plugin_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError):
            return None

    def _is_ours(self, contents: Optional[str]) -> bool:
        return contents is not None and GENERATED_MARKER in contents

    def status(self) -> HookStatus:
        if not self.detect():
            return self.not_detected()

        contents = self._read_plugin()
        installed = self._is_ours(contents)
        message = None
        if installed and contents != plugin_source():
            message = "Plugin installed but outdated; run `pulse connect` to update"
        elif contents is not None and not installed:
            message = f"{self.plugin_path} exists but was not generated by pulse"

        return HookStatus(
            agent=self.name,
            detected=True,
            installed_count=int(installed),
            expected_count=1,
            hooks={PLUGIN_KEY: installed},
            path=self.plugin_path,
            message=message,
        )

    def install(self) -> HookInstallResult:
        """Write the plugin file unless an identical copy is already there."""
        if not self.detect():
            return self.skip_install()

        source = plugin_source()
        added: list[str] = []
        if self._read_plugin() != source:
            ensure_owned_dir(self.plugin_dir)
            atomic_write(self.plugin_path, source)
            added.append(PLUGIN_KEY)

        return HookInstallResult(
            agent=self.name,
            path=self.plugin_path,
            added=added,
            status=self.status(),
        )

    def uninstall(self) -> HookUninstallResult:
        """Delete the plugin file if pulse generated it."""
        result = HookUninstallResult(agent=self.name, path=self.plugin_path)
        if not self._is_ours(self._read_plugin()):
            return result

        try:
            self.plugin_path.unlink()
        except FileNotFoundError:
            return result
        except OSError as e:
            raise ConfigWriteError(self.plugin_path, e.strerror or str(e)) from e

        result.removed.append(PLUGIN_KEY)
        remove_owned_dir(self.plugin_dir)
        return result
