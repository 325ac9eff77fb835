"""
Logging Configuration Tests
"""

import json
import logging
import logging.handlers

import pytest

from alert_sentry.logging_config import ColoredFormatter, JSONFormatter, setup_logging


def make_record(level=logging.INFO, msg="[DEDUP] store cleared"):
    return logging.LogRecord("alert_sentry.pipeline", level, __file__, 10, msg, None, None)


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


class TestFormatters:

    def test_json_formatter_fields(self):
        entry = json.loads(JSONFormatter().format(make_record()))
        assert set(entry) == {"timestamp", "level", "logger", "message"}
        assert entry["level"] == "INFO"
        assert entry["message"] == "[DEDUP] store cleared"
        assert entry["timestamp"].endswith("+00:00")

    def test_colored_formatter_labels(self):
        formatter = ColoredFormatter()
        assert "[alert_sentry.pipeline]" in formatter.format(make_record())
        assert "[WARNING]" in formatter.format(make_record(logging.WARNING))


class TestSetupLogging:

    def test_json_console_and_rotating_file(self, restore_root_logger, tmp_path):
        root = setup_logging(level="debug", fmt="json", log_file=str(tmp_path / "sentry.log"))

        assert root.level == logging.DEBUG
        assert len(root.handlers) == 2
        assert isinstance(root.handlers[0].formatter, JSONFormatter)
        assert isinstance(root.handlers[1], logging.handlers.RotatingFileHandler)
        root.handlers[1].close()

    def test_unknown_level_falls_back_to_info(self, restore_root_logger):
        root = setup_logging(level="chatty", fmt="console", log_file="")
        assert root.level == logging.INFO
        assert isinstance(root.handlers[0].formatter, ColoredFormatter)
