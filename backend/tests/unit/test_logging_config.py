"""Unit tests for the structlog logging configuration."""

import structlog

from homebase.logging_config import redact_message_content, setup_logging


class TestSetupLogging:
    def test_setup_logging_runs_without_error_debug(self):
        setup_logging(debug=True)
        logger = structlog.get_logger("test")
        # Should not raise
        logger.info("test_event", key="value")

    def test_setup_logging_runs_without_error_production(self):
        setup_logging(debug=False)
        logger = structlog.get_logger("test")
        # Should not raise
        logger.info("test_event", key="value")

    def test_production_output_redacts_chat_text(self, capsys):
        setup_logging(debug=False)
        structlog.get_logger("redaction-test").info("turn_started", message="my gas line smells")
        out = capsys.readouterr().out
        assert "gas line" not in out
        assert "<redacted 18 chars>" in out

    def test_content_logging_can_be_enabled(self, capsys):
        setup_logging(debug=False, log_message_content=True)
        structlog.get_logger("content-test").info("turn_started", message="my gas line smells")
        assert "my gas line smells" in capsys.readouterr().out


class TestRedactMessageContent:
    def test_replaces_text_keys_with_length(self):
        event = redact_message_content(
            None, "info", {"event": "turn_completed", "reply": "hello", "content": "abc", "tool": "lookup_home"}
        )
        assert event["reply"] == "<redacted 5 chars>"
        assert event["content"] == "<redacted 3 chars>"
        assert event["tool"] == "lookup_home"
        assert event["event"] == "turn_completed"

    def test_non_string_values_untouched(self):
        event = redact_message_content(None, "info", {"event": "x", "message": None})
        assert event["message"] is None


class TestStructlogContextBinding:
    def test_context_binding_works(self):
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id="test-123", session_id="session-1")

        bound = structlog.contextvars.get_contextvars()
        assert bound["request_id"] == "test-123"
        assert bound["session_id"] == "session-1"

        structlog.contextvars.clear_contextvars()
        assert structlog.contextvars.get_contextvars() == {}
