"""Hook adapters for the supported AI coding agents.

Agent Name / Config Location:
    Claude Code - ~/.claude/settings.json (hooks.<Event> entries)
    OpenCode    - ~/.config/opencode/plugins/pulse-plugin.ts
    OpenClaw    - ~/.openclaw/hooks/pulse-hook/{HOOK.md,handler.ts}
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from .base import (
    AgentAdapter,
    AgentState,
    HookDescriptor,
    HookInstallResult,
    HookStatus,
    HookUninstallResult,
    atomic_write,
)
from .claude_code import ClaudeCodeAdapter
from .openclaw import OpenClawAdapter
from .opencode import OpenCodeAdapter


def registered_adapters(home: Optional[Path] = None) -> list[AgentAdapter]:
    """The fixed set of agents pulse knows how to instrument."""
    return [
        ClaudeCodeAdapter(home),
        OpenCodeAdapter(home),
        OpenClawAdapter(home),
    ]


__all__ = [
    "AgentAdapter",
    "AgentState",
    "ClaudeCodeAdapter",
    "HookDescriptor",
    "HookInstallResult",
    "HookStatus",
    "HookUninstallResult",
    "OpenClawAdapter",
    "OpenCodeAdapter",
    "atomic_write",
    "registered_adapters",
]
