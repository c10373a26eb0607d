"""Command line interface for pulse."""

from __future__ import annotations

import argparse
import sys
from typing import Optional

from . import __version__
from .config import ConfigStore, PulseConfig
from .errors import ConfigMissingError, PulseError
from .hooks import AgentState
from .reconcile import AgentReport, HookReconciler, Outcome, StatusReport


def mask_key(key: str) -> str:
    if not key:
        return "(empty)"
    return f"{key[:4]}***"


def _path_suffix(report: AgentReport) -> str:
    return f" ({report.path})" if report.path else ""


def _print_hook_details(report: AgentReport) -> None:
    status = report.status
    if status is None or status.expected_count == 0:
        return
    print(f"    {status.installed_count}/{status.expected_count} hooks installed")
    names = status.installed_hook_names
    if names:
        print(f"    {', '.join(names)}")
    if status.message:
        print(f"    {status.message}")


def format_connect(report: AgentReport) -> str:
    if report.outcome is Outcome.NOT_DETECTED:
        return f"- {report.agent}: not detected on this machine{_path_suffix(report)}"
    if report.outcome is Outcome.FAILED:
        return f"- {report.agent}: unable to install hooks: {report.error}"
    if report.outcome is Outcome.INSTALLED:
        return f"- {report.agent}: hooks installed{_path_suffix(report)}"
    return f"- {report.agent}: already connected{_path_suffix(report)}"


def format_disconnect(report: AgentReport) -> str:
    if report.outcome is Outcome.FAILED:
        return f"- {report.agent}: unable to remove hooks: {report.error}"
    if report.outcome is Outcome.REMOVED:
        return f"- {report.agent}: hooks removed{_path_suffix(report)}"
    return f"- {report.agent}: no hooks to remove"


def format_status(report: AgentReport) -> str:
    if report.outcome is Outcome.FAILED:
        return f"  - {report.agent}: error: {report.error}"
    state = report.state
    if state is AgentState.NOT_DETECTED:
        return f"  - {report.agent}: not detected"
    if state is AgentState.FULLY_INSTALLED:
        label = "connected"
    elif state is AgentState.PARTIALLY_INSTALLED:
        label = "partially connected"
    else:
        label = "disconnected"
    return f"  - {report.agent}: {label}{_path_suffix(report)}"


def cmd_init(args: argparse.Namespace) -> int:
    """Save connection settings to ~/.pulse/config."""
    config = PulseConfig(
        api_url=args.api_url,
        api_key=args.api_key,
        project_id=args.project_id,
    ).sanitized()

    if not args.no_validate:
        print("Validating credentials...")
        connectivity = HookReconciler(adapters=[]).check_connectivity(config)
        if not connectivity.reachable:
            print(
                f"Error: Failed to contact trace service at {config.api_url}: {connectivity.detail}",
                file=sys.stderr,
            )
            return 1

    try:
        path = ConfigStore.save(config)
    except PulseError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    print(f"Configuration saved to {path}")
    return 0


def _require_config() -> Optional[PulseConfig]:
    try:
        return ConfigStore.load()
    except PulseError as e:
        print(f"Error: {e}", file=sys.stderr)
        return None


def cmd_connect(args: argparse.Namespace) -> int:
    """Install hooks into every detected agent."""
    if _require_config() is None:
        return 1

    print("Detecting supported tools...")
    reports = HookReconciler().connect()
    for report in reports:
        print(format_connect(report))
        if report.outcome in (Outcome.INSTALLED, Outcome.ALREADY_INSTALLED):
            _print_hook_details(report)

    if all(r.outcome is Outcome.NOT_DETECTED for r in reports):
        print("No supported tools detected. Launch your agent at least once so pulse can locate its settings.")
    return 1 if any(r.failed for r in reports) else 0


def cmd_disconnect(args: argparse.Namespace) -> int:
    """Remove pulse hooks from every agent."""
    print("Removing hooks...")
    reports = HookReconciler().disconnect()
    for report in reports:
        print(format_disconnect(report))
    return 1 if any(r.failed for r in reports) else 0


def print_status(report: StatusReport, config: Optional[PulseConfig]) -> None:
    if config is not None:
        print("Configuration")
        print(f"  API URL     : {config.api_url}")
        print(f"  Project ID  : {config.project_id}")
        print(f"  Config file : {ConfigStore.config_path()}")
        print(f"  API key     : {mask_key(config.api_key)}")
        print()

    if report.connectivity is not None:
        print("Connectivity")
        if report.connectivity.reachable:
            print("  Trace service reachable")
        else:
            print(f"  Unable to reach trace service: {report.connectivity.detail}")
        print()

    print("Hooks")
    for agent in report.agents:
        print(format_status(agent))
        if agent.state in (AgentState.FULLY_INSTALLED, AgentState.PARTIALLY_INSTALLED):
            _print_hook_details(agent)


def cmd_status(args: argparse.Namespace) -> int:
    """Show configuration, connectivity and hook state."""
    config: Optional[PulseConfig] = None
    try:
        config = ConfigStore.load()
    except ConfigMissingError as e:
        print(str(e))
        print()
    except PulseError as e:
        print(f"Error: {e}", file=sys.stderr)
        print()

    report = HookReconciler().status(config)
    print_status(report, config)
    return 1 if any(a.failed for a in report.agents) else 0


def cmd_emit(args: argparse.Namespace) -> int:
    """Hook entrypoint; always succeeds."""
    from .emit import run_emit

    run_emit(args.event_type, source=args.source)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pulse",
        description="Pulse - trace AI coding agents",
    )
    parser.add_argument("--version", action="version", version=f"pulse {__version__}")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    init_parser = subparsers.add_parser("init", help="Save trace service connection settings")
    init_parser.add_argument("--api-url", required=True, help="Trace service URL (e.g. https://pulse.example.com)")
    init_parser.add_argument("--api-key", required=True, help="API key for authentication")
    init_parser.add_argument("--project-id", required=True, help="Project ID")
    init_parser.add_argument(
        "--no-validate",
        action="store_true",
        help="Skip health check validation",
    )
    init_parser.set_defaults(func=cmd_init)

    connect_parser = subparsers.add_parser("connect", help="Install hooks into detected agents")
    connect_parser.set_defaults(func=cmd_connect)

    disconnect_parser = subparsers.add_parser("disconnect", help="Remove pulse hooks from all agents")
    disconnect_parser.set_defaults(func=cmd_disconnect)

    status_parser = subparsers.add_parser("status", help="Show configuration and hook status")
    status_parser.set_defaults(func=cmd_status)

    emit_parser = subparsers.add_parser("emit", help="Send one hook event (used by installed hooks)")
    emit_parser.add_argument("event_type", help="Event type (e.g. post_tool_use, stop)")
    emit_parser.add_argument(
        "--source",
        default=None,
        help="Agent the event comes from (default: claude_code)",
    )
    emit_parser.set_defaults(func=cmd_emit)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """Main CLI entrypoint."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
