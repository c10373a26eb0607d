"""Tests for the OpenClaw hook package installer."""

import pytest

from pulse_cli.hooks import AgentState, OpenClawAdapter
from pulse_cli.hooks.openclaw import HOOK_DIR_NAME, HOOK_FILES, hook_sources


@pytest.fixture
def adapter(home):
    return OpenClawAdapter(home=home)


@pytest.fixture
def openclaw_dir(home):
    path = home / ".openclaw"
    path.mkdir()
    return path


class TestHookSources:
    def test_descriptor_lists_events(self):
        sources = hook_sources()
        assert set(sources) == set(HOOK_FILES)
        assert "name: pulse-hook" in sources["HOOK.md"]
        for event in ("command:new", "command:stop", "command:reset", "message:received", "message:sent"):
            assert event in sources["HOOK.md"]
        assert "pulse:generated" in sources["handler.ts"]


class TestDetect:
    def test_not_detected(self, adapter):
        assert adapter.detect() is False
        assert adapter.status().state is AgentState.NOT_DETECTED

    def test_detected(self, adapter, openclaw_dir):
        assert adapter.detect() is True
        assert adapter.status().state is AgentState.NOT_INSTALLED


class TestInstall:
    def test_install_writes_both_files(self, adapter, openclaw_dir):
        """Test install creates hooks/pulse-hook/{HOOK.md,handler.ts}."""
        result = adapter.install()
        hook_dir = openclaw_dir / "hooks" / "pulse-hook"

        assert result.modified
        assert result.added == [HOOK_DIR_NAME]
        for name, source in hook_sources().items():
            assert (hook_dir / name).read_text() == source
        assert result.status.state is AgentState.FULLY_INSTALLED

    def test_install_is_idempotent(self, adapter, openclaw_dir):
        adapter.install()
        mtimes = {name: (adapter.hook_dir / name).stat().st_mtime_ns for name in HOOK_FILES}

        result = adapter.install()

        assert not result.modified
        for name in HOOK_FILES:
            assert (adapter.hook_dir / name).stat().st_mtime_ns == mtimes[name]

    def test_install_repairs_missing_file(self, adapter, openclaw_dir):
        """Test a half-installed package is completed."""
        adapter.install()
        (adapter.hook_dir / "handler.ts").unlink()
        status = adapter.status()
        assert status.state is AgentState.NOT_INSTALLED
        assert "incomplete" in status.message

        result = adapter.install()

        assert result.modified
        assert adapter.status().state is AgentState.FULLY_INSTALLED

    def test_install_updates_outdated_file(self, adapter, openclaw_dir):
        adapter.install()
        (adapter.hook_dir / "HOOK.md").write_text("---\nname: pulse-hook\n---\n")
        assert "outdated" in adapter.status().message

        adapter.install()

        assert (adapter.hook_dir / "HOOK.md").read_text() == hook_sources()["HOOK.md"]


class TestUninstall:
    def test_round_trip(self, adapter, openclaw_dir):
        """Test install then uninstall leaves ~/.openclaw as it was."""
        adapter.install()
        result = adapter.uninstall()

        assert result.modified
        assert not adapter.hook_dir.exists()
        assert not adapter.hooks_dir.exists()
        assert list(openclaw_dir.iterdir()) == []

    def test_round_trip_keeps_existing_empty_hooks_dir(self, adapter, openclaw_dir):
        """Test a hooks dir the user already had survives uninstall."""
        adapter.hooks_dir.mkdir()

        adapter.install()
        adapter.uninstall()

        assert adapter.hooks_dir.is_dir()
        assert list(adapter.hooks_dir.iterdir()) == []

    def test_install_when_not_detected(self, adapter, home):
        result = adapter.install()
        assert not result.modified
        assert result.status.state is AgentState.NOT_DETECTED
        assert not (home / ".openclaw").exists()

    def test_uninstall_leaves_sibling_hooks(self, adapter, openclaw_dir):
        """Test other hook packages under hooks/ are untouched."""
        sibling = openclaw_dir / "hooks" / "session-memory"
        sibling.mkdir(parents=True)
        (sibling / "HOOK.md").write_text("---\nname: session-memory\n---\n")

        adapter.install()
        adapter.uninstall()

        assert (sibling / "HOOK.md").exists()
        assert not adapter.hook_dir.exists()

    def test_uninstall_when_absent(self, adapter, openclaw_dir):
        result = adapter.uninstall()
        assert not result.modified
