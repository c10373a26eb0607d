"""Tests for the pulse command line."""

import io
import json

import pytest

from pulse_cli import reconcile
from pulse_cli.cli import main, mask_key
from pulse_cli.config import ConfigStore
from pulse_cli.errors import TransmissionError


@pytest.fixture
def fake_home(home, monkeypatch):
    monkeypatch.setenv("HOME", str(home))
    return home


@pytest.fixture
def initialized(config):
    ConfigStore.save(config)
    return config


@pytest.fixture
def healthy(monkeypatch):
    monkeypatch.setattr(reconcile, "_default_health_check", lambda config: None)


class TestInit:
    def test_init_without_validation(self, capsys):
        code = main([
            "init",
            "--api-url", "https://pulse.example.com/",
            "--api-key", "pk_new",
            "--project-id", "proj_new",
            "--no-validate",
        ])

        assert code == 0
        assert "Configuration saved" in capsys.readouterr().out
        config = ConfigStore.load()
        assert config.api_url == "https://pulse.example.com"
        assert config.project_id == "proj_new"

    def test_init_validation_failure(self, monkeypatch, capsys):
        """Test an unreachable service leaves no config behind."""
        def unreachable(config):
            raise TransmissionError("Unable to reach https://pulse.example.com")

        monkeypatch.setattr(reconcile, "_default_health_check", unreachable)

        code = main(["init", "--api-url", "https://pulse.example.com", "--api-key", "k", "--project-id", "p"])

        assert code == 1
        assert "Unable to reach" in capsys.readouterr().err
        assert not ConfigStore.config_path().exists()

    def test_init_validation_success(self, healthy):
        code = main(["init", "--api-url", "https://pulse.example.com", "--api-key", "k", "--project-id", "p"])
        assert code == 0
        assert ConfigStore.config_path().exists()


class TestConnect:
    def test_connect_requires_init(self, fake_home, capsys):
        assert main(["connect"]) == 1
        assert "pulse init" in capsys.readouterr().err

    def test_connect_and_disconnect(self, fake_home, initialized, capsys):
        """Test the CLI installs into detected agents and removes again."""
        settings = fake_home / ".claude" / "settings.json"
        settings.parent.mkdir()
        settings.write_text("{}\n")

        assert main(["connect"]) == 0
        out = capsys.readouterr().out
        assert "- Claude Code: hooks installed" in out
        assert "10/10 hooks installed" in out
        assert "- OpenCode: not detected on this machine" in out
        assert "pulse emit" in settings.read_text()

        assert main(["connect"]) == 0
        assert "- Claude Code: already connected" in capsys.readouterr().out

        assert main(["disconnect"]) == 0
        out = capsys.readouterr().out
        assert "- Claude Code: hooks removed" in out
        assert "- OpenClaw: no hooks to remove" in out
        assert settings.read_text() == "{}\n"

    def test_connect_nothing_detected(self, fake_home, initialized, capsys):
        assert main(["connect"]) == 0
        assert "No supported tools detected" in capsys.readouterr().out

    def test_connect_reports_failure(self, fake_home, initialized, capsys):
        settings = fake_home / ".claude" / "settings.json"
        settings.parent.mkdir()
        settings.write_text("{oops")

        assert main(["connect"]) == 1
        assert "- Claude Code: unable to install hooks" in capsys.readouterr().out


class TestStatus:
    def test_status_uninitialized(self, fake_home, capsys):
        assert main(["status"]) == 0
        out = capsys.readouterr().out
        assert "pulse init" in out
        assert "Hooks" in out
        assert "Connectivity" not in out

    def test_status_configured(self, fake_home, initialized, healthy, capsys):
        (fake_home / ".openclaw").mkdir()

        assert main(["status"]) == 0
        out = capsys.readouterr().out
        assert "Project ID  : proj_test" in out
        assert "API key     : pk_t***" in out
        assert "pk_test_123456" not in out
        assert "Trace service reachable" in out
        assert "- OpenClaw: disconnected" in out
        assert "- Claude Code: not detected" in out


class TestEmit:
    def test_emit_always_succeeds(self, monkeypatch):
        """Test emit exits 0 even without config or valid input."""
        monkeypatch.setattr("sys.stdin", io.StringIO("{not json"))
        assert main(["emit", "stop"]) == 0

    def test_emit_with_source(self, monkeypatch):
        monkeypatch.setattr("sys.stdin", io.StringIO(json.dumps({"session_id": "s"})))
        assert main(["emit", "message:received", "--source", "openclaw"]) == 0


def test_mask_key():
    assert mask_key("pk_live_abcdef") == "pk_l***"
    assert mask_key("") == "(empty)"


def test_no_command_prints_help(capsys):
    assert main([]) == 0
    assert "usage: pulse" in capsys.readouterr().out
