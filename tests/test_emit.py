"""Tests for the emit hook entrypoint."""

import io
import json
from dataclasses import replace

import pytest

from pulse_cli.emit import build_span, run_emit
from pulse_cli.errors import TransmissionError
from pulse_cli.logger import configure_logging
from pulse_cli.sinks.base import TelemetrySink


class FailingSink(TelemetrySink):
    """Sink whose delivery always fails."""

    def write(self, span):
        pass

    def flush(self):
        raise TransmissionError("Trace service rejected 1 span(s): status=500", status_code=500)


def stdin_json(data):
    return io.StringIO(json.dumps(data))


@pytest.fixture
def debug_log(tmp_path):
    log_dir = tmp_path / "logs"
    configure_logging(debug=True, log_dir=log_dir)
    yield log_dir / "debug.log"
    configure_logging(debug=False)


class TestRunEmit:
    """Tests for run_emit()."""

    def test_sends_one_span(self, config, mock_sink):
        """Test a valid payload produces exactly one span on the sink."""
        run_emit(
            "post_tool_use",
            stdin=stdin_json({"session_id": "sess_1", "tool_name": "Read", "tool_response": "ok"}),
            config=config,
            sink_factory=lambda c: mock_sink,
        )

        assert len(mock_sink.spans) == 1
        span = mock_sink.spans[0]
        assert span["session_id"] == "sess_1"
        assert span["source"] == "claude_code"
        assert span["kind"] == "tool_use"
        assert span["metadata"]["project_id"] == "proj_test"
        assert mock_sink.closed

    def test_source_flag(self, config, mock_sink):
        run_emit(
            "session.idle",
            source="opencode",
            stdin=stdin_json({"session_id": "ses_1"}),
            config=config,
            sink_factory=lambda c: mock_sink,
        )

        assert mock_sink.spans[0]["source"] == "opencode"
        assert mock_sink.spans[0]["event_type"] == "session_end"

    @pytest.mark.parametrize("raw", ["{not json", "", "   ", "[1, 2]", '"text"'])
    def test_malformed_payload_is_dropped(self, config, mock_sink, raw):
        """Test bad stdin never raises and never reaches the sink."""
        run_emit("stop", stdin=io.StringIO(raw), config=config, sink_factory=lambda c: mock_sink)
        assert mock_sink.spans == []

    def test_missing_session_id_is_dropped(self, config, mock_sink):
        run_emit("stop", stdin=stdin_json({"cwd": "/w"}), config=config, sink_factory=lambda c: mock_sink)
        assert mock_sink.spans == []

    def test_unknown_source_is_dropped(self, config, mock_sink):
        run_emit(
            "stop",
            source="cursor",
            stdin=stdin_json({"session_id": "s"}),
            config=config,
            sink_factory=lambda c: mock_sink,
        )
        assert mock_sink.spans == []

    def test_transmission_failure_is_swallowed(self, config):
        """Test a failing trace service does not surface to the hook."""
        run_emit(
            "stop",
            stdin=stdin_json({"session_id": "s"}),
            config=config,
            sink_factory=lambda c: FailingSink(),
        )

    def test_sink_factory_error_is_swallowed(self, config):
        def broken_factory(c):
            raise ValueError("Invalid API url")

        run_emit("stop", stdin=stdin_json({"session_id": "s"}), config=config, sink_factory=broken_factory)

    def test_missing_config_sends_nothing(self, mock_sink):
        """Test an uninitialized machine silently drops the event."""
        run_emit("stop", stdin=stdin_json({"session_id": "s"}), sink_factory=lambda c: mock_sink)
        assert mock_sink.spans == []

    def test_loads_config_from_store(self, monkeypatch, mock_sink):
        monkeypatch.setenv("PULSE_API_URL", "https://pulse.example.com")
        monkeypatch.setenv("PULSE_API_KEY", "pk")
        monkeypatch.setenv("PULSE_PROJECT_ID", "proj_env")
        seen = []

        def factory(config):
            seen.append(config)
            return mock_sink

        run_emit("stop", stdin=stdin_json({"session_id": "s"}), sink_factory=factory)

        assert seen[0].project_id == "proj_env"
        assert len(mock_sink.spans) == 1

    def test_unknown_event_still_sent(self, config, mock_sink):
        run_emit(
            "pre_compact",
            stdin=stdin_json({"session_id": "s", "trigger": "manual"}),
            config=config,
            sink_factory=lambda c: mock_sink,
        )
        assert mock_sink.spans[0]["kind"] == "session"


class TestDebugLog:
    def test_dropped_span_is_logged(self, config, mock_sink, debug_log):
        """Test the opt-in debug log records payloads and drops."""
        run_emit("stop", stdin=io.StringIO("{oops"), config=config, sink_factory=lambda c: mock_sink)

        text = debug_log.read_text()
        assert "emit source=claude_code event=stop payload={oops" in text
        assert "span dropped event=stop reason=invalid JSON" in text

    def test_transmission_error_is_logged(self, config, debug_log):
        run_emit(
            "stop",
            stdin=stdin_json({"session_id": "s"}),
            config=config,
            sink_factory=lambda c: FailingSink(),
        )

        assert "emit failed: TransmissionError" in debug_log.read_text()


class TestBuildSpan:
    def test_sanitizes_before_sending(self, config):
        span = build_span(
            "pre_tool_use",
            json.dumps({"session_id": "s", "tool_name": "Bash", "tool_input": {"command": "export TOKEN=abc"}}),
            config,
        )
        assert "abc" not in span.tool_input["command"]

    def test_redaction_follows_config(self, config):
        span = build_span(
            "pre_tool_use",
            json.dumps({"session_id": "s", "tool_input": {"password": "pw"}}),
            replace(config, redact_enabled=False),
        )
        assert span.tool_input == {"password": "pw"}

    def test_empty_event_type(self, config):
        assert build_span("  ", '{"session_id": "s"}', config) is None
