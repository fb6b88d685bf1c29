"""Unit tests for logging helpers."""

import io
import logging
import sys

import pytest

from sessionkit.config import SessionConfig
from sessionkit.logger import ContextFormatter, fingerprint, setup_logger
from sessionkit.session.manager import SessionManager
from sessionkit.storage.memory import MemorySessionStorage


@pytest.fixture
def manager_log():
    """Route the manager's logger into a buffer and restore it afterwards."""
    logger = logging.getLogger("sessionkit.session.manager")
    saved = (list(logger.handlers), logger.level, logger.propagate)
    logger.handlers.clear()
    stream = io.StringIO()
    setup_logger("sessionkit.session.manager", "INFO", stream=stream)
    yield stream
    logger.handlers[:] = saved[0]
    logger.setLevel(saved[1])
    logger.propagate = saved[2]


class TestSetupLogger:
    """Tests for setup_logger."""

    def test_sets_level_and_handler(self):
        """Test that the logger gets the level and one handler."""
        logger = setup_logger("sessionkit.test.level", "DEBUG")

        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 1
        assert isinstance(logger.handlers[0].formatter, ContextFormatter)
        assert logger.propagate is False

    def test_invalid_level_defaults_to_info(self, capsys):
        """Test that an unknown level falls back to INFO."""
        logger = setup_logger("sessionkit.test.invalid", "LOUD")

        assert logger.level == logging.INFO
        assert "Invalid log level" in capsys.readouterr().err

    def test_no_duplicate_handlers(self):
        """Test that repeated setup does not stack handlers."""
        setup_logger("sessionkit.test.dup")
        logger = setup_logger("sessionkit.test.dup")

        assert len(logger.handlers) == 1

    def test_extra_fields_reach_output(self):
        """Test that fields passed through extra are printed after the message."""
        stream = io.StringIO()
        logger = setup_logger("sessionkit.test.extra", stream=stream)

        logger.error("Failed to save", extra={"error_code": "Throttled", "session_id": "abcd..."})

        line = stream.getvalue().strip()
        assert line.endswith("Failed to save [error_code=Throttled session_id=abcd...]")

    def test_plain_message_has_no_context_block(self):
        """Test that records without extra fields print unchanged."""
        stream = io.StringIO()
        logger = setup_logger("sessionkit.test.plain", stream=stream)

        logger.info("Ready")

        assert stream.getvalue().strip().endswith("INFO - Ready")

    def test_session_fingerprint_is_logged(self, manager_log):
        """Test that a started session logs its id fingerprint, not the full id."""
        manager = SessionManager(
            SessionConfig(gc_probability=0), storage=MemorySessionStorage()
        )

        manager.start()

        output = manager_log.getvalue()
        assert "Session started" in output
        assert f"session_id={fingerprint(manager.get_id())}" in output
        assert manager.get_id() not in output


class TestContextFormatter:
    """Tests for ContextFormatter."""

    def test_traceback_stays_after_context(self):
        """Test that exception text follows the message line with its context."""
        formatter = ContextFormatter("%(message)s")
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = logging.LogRecord(
                "x", logging.ERROR, __file__, 1, "Failed", (), sys.exc_info()
            )
        record.operation = "save"

        lines = formatter.format(record).splitlines()

        assert lines[0] == "Failed [operation=save]"
        assert "RuntimeError: boom" in lines[-1]


class TestFingerprint:
    """Tests for session id fingerprints in logs."""

    def test_truncates_id(self):
        """Test that only a prefix of the id is kept."""
        assert fingerprint("abcdefghijklmnop") == "abcdefgh..."

    def test_empty_id(self):
        """Test placeholder for missing ids."""
        assert fingerprint("") == "-"
