"""Connection configuration for the Pulse trace service.

Stored as a ``KEY=value`` file at ``~/.pulse/config`` (written by
``pulse init``). Environment variables with the same ``PULSE_`` names
override the file, which lets hooks be pointed elsewhere without editing it.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Optional

from .errors import ConfigMissingError, PulseError

CONFIG_DIR_NAME = ".pulse"
CONFIG_FILE_NAME = "config"
ENV_PREFIX = "PULSE_"

_TRUE_VALUES = {"1", "true", "yes", "y"}


def _as_bool(value: Optional[str], default: bool) -> bool:
    if value is None or value == "":
        return default
    return value.strip().lower() in _TRUE_VALUES


@dataclass(frozen=True)
class PulseConfig:
    """Configuration loaded from ~/.pulse/config or the environment."""

    api_url: str
    api_key: str
    project_id: str

    require_tls: bool = False
    debug: bool = False

    # Hooks must never stall the agent
    emit_timeout_seconds: float = 2.0

    redact_enabled: bool = True
    max_value_chars: int = 20_000

    def sanitized(self) -> "PulseConfig":
        """Return a copy with whitespace and trailing slashes trimmed."""
        return replace(
            self,
            api_url=self.api_url.strip().rstrip("/"),
            api_key=self.api_key.strip(),
            project_id=self.project_id.strip(),
        )

    @classmethod
    def from_values(cls, values: dict[str, str]) -> "PulseConfig":
        """
        Build a config from PULSE_* key/value pairs.

        Raises:
            PulseError: If API_URL, API_KEY or PROJECT_ID is missing.
        """

        def _get(name: str) -> Optional[str]:
            return values.get(ENV_PREFIX + name)

        missing = [
            name for name in ("API_URL", "API_KEY", "PROJECT_ID")
            if not (_get(name) or "").strip()
        ]
        if missing:
            raise PulseError(
                "Pulse config is incomplete, missing: "
                + ", ".join(ENV_PREFIX + name for name in missing)
            )

        try:
            emit_timeout = float(_get("EMIT_TIMEOUT") or "2.0")
            max_value_chars = int(_get("MAX_VALUE_CHARS") or "20000")
        except ValueError as e:
            raise PulseError(f"Invalid numeric setting in pulse config: {e}") from e

        return cls(
            api_url=_get("API_URL") or "",
            api_key=_get("API_KEY") or "",
            project_id=_get("PROJECT_ID") or "",
            require_tls=_as_bool(_get("REQUIRE_TLS"), False),
            debug=_as_bool(_get("DEBUG"), False),
            emit_timeout_seconds=emit_timeout,
            redact_enabled=_as_bool(_get("REDACT_ENABLED"), True),
            max_value_chars=max_value_chars,
        ).sanitized()

    def to_values(self) -> dict[str, str]:
        """Serialize the connection settings as PULSE_* pairs."""
        return {
            ENV_PREFIX + "API_URL": self.api_url,
            ENV_PREFIX + "API_KEY": self.api_key,
            ENV_PREFIX + "PROJECT_ID": self.project_id,
        }


def parse_env_file(path: Path) -> dict[str, str]:
    """Parse a .env style file and return key-value pairs."""
    env_vars: dict[str, str] = {}
    for line in path.read_text(encoding="utf-8").splitlines():
        line = line.strip()
        # Skip comments and empty lines
        if not line or line.startswith("#"):
            continue
        if line.startswith("export "):
            line = line[7:]
        if "=" in line:
            key, _, value = line.partition("=")
            key = key.strip()
            value = value.strip()
            if (value.startswith('"') and value.endswith('"')) or \
               (value.startswith("'") and value.endswith("'")):
                value = value[1:-1]
            env_vars[key] = value
    return env_vars


class ConfigStore:
    """Locate, load and save the pulse config file."""

    @staticmethod
    def config_dir() -> Path:
        override = os.environ.get(ENV_PREFIX + "HOME")
        if override:
            return Path(override)
        return Path.home() / CONFIG_DIR_NAME

    @classmethod
    def config_path(cls) -> Path:
        return cls.config_dir() / CONFIG_FILE_NAME

    @classmethod
    def load(cls) -> PulseConfig:
        """
        Load configuration.

        Priority order (higher priority first):
        1. PULSE_* environment variables
        2. ~/.pulse/config

        Raises:
            ConfigMissingError: If neither the file nor PULSE_API_URL exists.
            PulseError: If the file is unreadable or incomplete.
        """
        path = cls.config_path()
        values: dict[str, str] = {}
        if path.exists():
            try:
                values.update(parse_env_file(path))
            except (OSError, UnicodeDecodeError) as e:
                raise PulseError(f"Cannot read {path}: {e}") from e
        elif not os.environ.get(ENV_PREFIX + "API_URL"):
            raise ConfigMissingError(path)

        for key, value in os.environ.items():
            if key.startswith(ENV_PREFIX) and value:
                values[key] = value

        return PulseConfig.from_values(values)

    @classmethod
    def save(cls, config: PulseConfig) -> Path:
        """Write the config file atomically, readable by the owner only."""
        from .hooks.base import atomic_write

        path = cls.config_path()
        body = "".join(f"{key}={value}\n" for key, value in config.to_values().items())
        atomic_write(path, body, mode=0o600)
        return path
