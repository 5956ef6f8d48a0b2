"""Unit tests for logging setup."""

import json
import logging

import pytest
import structlog

from tdf_server.utils.logging import get_logger, setup_logging


@pytest.fixture(autouse=True)
def reset_logging():
    """Restore logging defaults after each test."""
    yield
    structlog.reset_defaults()
    logging.basicConfig(handlers=[logging.NullHandler()], force=True)


class TestSetupLogging:
    """Test structured logging configuration."""

    def test_json_output(self, capsys):
        """JSON renderer emits one object per event."""
        setup_logging(level="INFO", format_type="json")
        get_logger("tests").info("packet_received", component=1, content=b"\x00")

        line = capsys.readouterr().out.strip().splitlines()[-1]
        event = json.loads(line)
        assert event["event"] == "packet_received"
        assert event["component"] == 1
        assert event["level"] == "info"
        assert "timestamp" in event

    def test_level_filtering(self, capsys):
        """Events below the level are dropped."""
        setup_logging(level="WARNING", format_type="json")
        get_logger("tests").info("hidden")
        get_logger("tests").warning("shown")

        out = capsys.readouterr().out
        assert "hidden" not in out
        assert "shown" in out

    def test_console_output(self, capsys):
        """Console renderer is human readable."""
        setup_logging(level="DEBUG", format_type="console")
        get_logger("tests").debug("client_connected", peer="127.0.0.1:1")

        assert "client_connected" in capsys.readouterr().out

    def test_log_file(self, tmp_path):
        """Events are also written to the log file."""
        log_file = tmp_path / "logs" / "server.log"
        setup_logging(level="INFO", format_type="json", log_file=str(log_file))
        get_logger("tests").info("to_file")

        for handler in logging.root.handlers:
            handler.flush()
        assert "to_file" in log_file.read_text()
