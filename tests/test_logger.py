"""Unit tests for logging setup."""
import json
import logging
import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

import pytest
from logger import JSONFormatter, setup_logging


def _record(msg="Stored batch 1/2", **extra):
    record = logging.LogRecord("services.ingestion_pipeline", logging.INFO, __file__, 10, msg, (), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    root.handlers = handlers
    root.setLevel(level)


class TestJSONFormatter:

    def test_basic_fields(self):
        data = json.loads(JSONFormatter().format(_record()))

        assert data["level"] == "INFO"
        assert data["logger"] == "services.ingestion_pipeline"
        assert data["message"] == "Stored batch 1/2"
        assert data["timestamp"].endswith("Z")

    def test_extra_fields_are_included(self):
        data = json.loads(JSONFormatter().format(
            _record(error_code="RATE_LIMIT_ERROR", error_details={"retry_after": 60})
        ))

        assert data["error_code"] == "RATE_LIMIT_ERROR"
        assert data["error_details"] == {"retry_after": 60}
        assert "lineno" not in data

    def test_exception_is_formatted(self):
        try:
            raise ValueError("bad chunk")
        except ValueError:
            record = logging.LogRecord("x", logging.ERROR, __file__, 1, "failed", (), sys.exc_info())

        data = json.loads(JSONFormatter().format(record))

        assert "ValueError: bad chunk" in data["exception"]


class TestSetupLogging:

    def test_replaces_root_handlers(self, restore_root_logger):
        setup_logging("DEBUG")
        setup_logging("WARNING", json_logs=True)

        assert len(restore_root_logger.handlers) == 1
        assert isinstance(restore_root_logger.handlers[0].formatter, JSONFormatter)
        assert restore_root_logger.level == logging.WARNING

    def test_unknown_level_falls_back_to_info(self, restore_root_logger):
        setup_logging("chatty")

        assert restore_root_logger.level == logging.INFO
