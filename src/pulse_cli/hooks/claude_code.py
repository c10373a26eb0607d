"""Claude Code hook installation.

Hooks live in ``~/.claude/settings.json`` under ``hooks.<EventName>``.
Each pulse hook is an async command entry, so Claude Code never waits on
it::

    {
      "hooks": {
        "PreToolUse": [
          {"matcher": "", "hooks": [
            {"type": "command", "command": "pulse emit pre_tool_use", "async": true}
          ]}
        ]
      }
    }

The settings document belongs to the user. It is parsed into a plain dict
tree, only the pulse entries are added or removed, and it is written back
with its original key order, indentation, trailing newline and escaping.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from ..errors import ConfigParseError
from ..span import Source
from .base import (
    AgentAdapter,
    HookDescriptor,
    HookInstallResult,
    HookStatus,
    HookUninstallResult,
    atomic_write,
)

CLAUDE_SETTINGS = Path(".claude") / "settings.json"

# Identifier to recognize pulse hooks
PULSE_COMMAND_PREFIX = "pulse emit "

# Claude Code event name -> canonical pulse event type
HOOK_EVENTS: dict[str, str] = {
    "PreToolUse": "pre_tool_use",
    "PostToolUse": "post_tool_use",
    "PostToolUseFailure": "post_tool_use_failure",
    "SessionStart": "session_start",
    "SessionEnd": "session_end",
    "Stop": "stop",
    "SubagentStart": "subagent_start",
    "SubagentStop": "subagent_stop",
    "UserPromptSubmit": "user_prompt_submit",
    "Notification": "notification",
}


def hook_command(event_type: str) -> str:
    return f"{PULSE_COMMAND_PREFIX}{event_type}"


def is_pulse_command(command: Any) -> bool:
    """Check if a hook command was written by pulse."""
    return isinstance(command, str) and command.strip().startswith(PULSE_COMMAND_PREFIX)


def _build_entry(command: str) -> dict[str, Any]:
    return {
        "matcher": "",
        "hooks": [{"type": "command", "command": command, "async": True}],
    }


def _entry_contains_command(entry: Any, command: str) -> bool:
    if not isinstance(entry, dict):
        return False
    hooks = entry.get("hooks")
    if not isinstance(hooks, list):
        return False
    return any(isinstance(h, dict) and h.get("command") == command for h in hooks)


def _strip_pulse_hooks(entry: Any) -> bool:
    """Drop pulse commands from an entry's hook list. Returns True if changed."""
    if not isinstance(entry, dict) or not isinstance(entry.get("hooks"), list):
        return False
    hooks = entry["hooks"]
    kept = [h for h in hooks if not (isinstance(h, dict) and is_pulse_command(h.get("command")))]
    if len(kept) == len(hooks):
        return False
    entry["hooks"] = kept
    return True


@dataclass(frozen=True)
class JsonLayout:
    """
    Formatting of an existing settings file, reused when writing it back.

    Attributes:
        indent: Spaces per level, or "\\t".
        trailing_newline: Whether the file ends with a newline.
        ascii_only: Whether non-ASCII text is kept as \\u escapes.
    """

    indent: Any = 2
    trailing_newline: bool = True
    ascii_only: bool = True

    @classmethod
    def detect(cls, text: str) -> "JsonLayout":
        indent: Any = 2
        for line in text.splitlines()[1:]:
            stripped = line.lstrip(" \t")
            if stripped and len(stripped) != len(line):
                prefix = line[: len(line) - len(stripped)]
                indent = "\t" if prefix.startswith("\t") else len(prefix)
                break
        return cls(
            indent=indent,
            trailing_newline=text.endswith("\n"),
            ascii_only=text.isascii(),
        )

    def dumps(self, settings: dict[str, Any]) -> str:
        body = json.dumps(settings, indent=self.indent, ensure_ascii=self.ascii_only)
        return body + "\n" if self.trailing_newline else body


class ClaudeCodeAdapter(AgentAdapter):
    """Install pulse hooks into Claude Code's settings.json."""

    name = "Claude Code"
    source = Source.CLAUDE_CODE

    def __init__(self, home: Optional[Path] = None, settings_path: Optional[Path] = None) -> None:
        super().__init__(home)
        self.settings_path = settings_path or (self.home / CLAUDE_SETTINGS)

    @property
    def path(self) -> Path:
        return self.settings_path

    def detect(self) -> bool:
        """
        Claude Code counts as present once it has written a settings file.

        A blank file is treated the same as a missing one.
        """
        if not self.settings_path.is_file():
            return False
        try:
            return bool(self.settings_path.read_text(encoding="utf-8").strip())
        except (OSError, UnicodeDecodeError):
            # Unreadable but present; status/install report the error
            return True

    def descriptors(self) -> list[HookDescriptor]:
        return [
            HookDescriptor(
                key=event,
                event=event,
                command=hook_command(event_type),
                path=self.settings_path,
            )
            for event, event_type in HOOK_EVENTS.items()
        ]

    # -------------------------------------------------------------------------
    # Settings I/O
    # -------------------------------------------------------------------------

    def _read(self) -> tuple[dict[str, Any], JsonLayout]:
        """
        Load settings.json.

        Returns:
            (settings, layout). A missing or blank file reads as {}.

        Raises:
            ConfigParseError: If the file is not a JSON object.
        """
        try:
            text = self.settings_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}, JsonLayout()
        except (OSError, UnicodeDecodeError) as e:
            raise ConfigParseError(self.settings_path, str(e)) from e

        if not text.strip():
            return {}, JsonLayout()

        try:
            settings = json.loads(text)
        except json.JSONDecodeError as e:
            raise ConfigParseError(self.settings_path, f"invalid JSON ({e})") from e

        if not isinstance(settings, dict):
            raise ConfigParseError(self.settings_path, "settings must be a JSON object")

        return settings, JsonLayout.detect(text)

    def _write(self, settings: dict[str, Any], layout: JsonLayout) -> None:
        atomic_write(self.settings_path, layout.dumps(settings))

    def _hooks_section(self, settings: dict[str, Any], create: bool) -> Optional[dict[str, Any]]:
        hooks = settings.get("hooks")
        if hooks is None:
            if not create:
                return None
            hooks = settings["hooks"] = {}
        if not isinstance(hooks, dict):
            raise ConfigParseError(self.settings_path, "`hooks` must be a JSON object")
        return hooks

    def _event_entries(self, hooks: dict[str, Any], event: str) -> Optional[list[Any]]:
        entries = hooks.get(event)
        if entries is None:
            return None
        if not isinstance(entries, list):
            raise ConfigParseError(self.settings_path, f"`hooks.{event}` must be an array")
        return entries

    # -------------------------------------------------------------------------
    # Contract
    # -------------------------------------------------------------------------

    def _presence(self, settings: dict[str, Any]) -> dict[str, bool]:
        hooks = self._hooks_section(settings, create=False) or {}
        presence = {}
        for descriptor in self.descriptors():
            entries = self._event_entries(hooks, descriptor.event) or []
            presence[descriptor.key] = any(
                _entry_contains_command(entry, descriptor.command) for entry in entries
            )
        return presence

    def status(self) -> HookStatus:
        if not self.detect():
            return self.not_detected()
        settings, _ = self._read()
        presence = self._presence(settings)
        return HookStatus(
            agent=self.name,
            detected=True,
            installed_count=sum(presence.values()),
            expected_count=len(presence),
            hooks=presence,
            path=self.settings_path,
        )

    def install(self) -> HookInstallResult:
        """
        Add any missing pulse hooks to settings.json.

        Existing pulse hooks are left as they are, so a second run writes
        nothing. Unrelated keys and hook entries are preserved. A settings
        file that does not exist (or is blank) is never created.
        """
        if not self.detect():
            return self.skip_install()

        settings, layout = self._read()
        hooks = self._hooks_section(settings, create=True)

        added: list[str] = []
        for descriptor in self.descriptors():
            entries = self._event_entries(hooks, descriptor.event)
            if entries is None:
                entries = hooks[descriptor.event] = []
            if any(_entry_contains_command(entry, descriptor.command) for entry in entries):
                continue
            entries.append(_build_entry(descriptor.command))
            added.append(descriptor.key)

        if added:
            self._write(settings, layout)

        return HookInstallResult(
            agent=self.name,
            path=self.settings_path,
            added=added,
            status=self.status(),
        )

    def uninstall(self) -> HookUninstallResult:
        """
        Remove pulse hooks from settings.json.

        Event arrays emptied by the removal are dropped, and so is the
        ``hooks`` section if nothing is left in it.
        """
        result = HookUninstallResult(agent=self.name, path=self.settings_path)
        if not self.settings_path.exists():
            return result

        settings, layout = self._read()
        hooks = self._hooks_section(settings, create=False)
        if hooks is None:
            return result

        for event in list(hooks.keys()):
            entries = hooks[event]
            if not isinstance(entries, list):
                # Not a hook array; pulse never wrote it.
                continue
            touched = False
            kept = []
            for entry in entries:
                if _strip_pulse_hooks(entry):
                    touched = True
                    if not entry["hooks"]:
                        continue
                kept.append(entry)
            if not touched:
                continue
            result.removed.append(event)
            entries[:] = kept
            if not entries:
                del hooks[event]

        if not result.removed:
            return result

        if not hooks:
            del settings["hooks"]

        self._write(settings, layout)
        return result
