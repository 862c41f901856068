"""Tests for logging setup."""

import logging
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from rich.logging import RichHandler

from gitpanic.core.history import ActionLedger
from gitpanic.core.models import ActionType
from gitpanic.core.store import MemoryHistoryStore
from gitpanic.utils import LogCapture, setup_logging


@pytest.fixture(autouse=True)
def restore_logger():
    logger = logging.getLogger("gitpanic")
    handlers, level = list(logger.handlers), logger.level
    yield
    logger.handlers[:] = handlers
    logger.setLevel(level)


class TestSetupLogging:
    """Tests for setup_logging."""

    def test_rich_console_handler(self):
        """Test a single Rich handler at the requested level."""
        logger = setup_logging("info")

        assert logger.name == "gitpanic"
        assert len(logger.handlers) == 1
        assert isinstance(logger.handlers[0], RichHandler)
        assert logger.handlers[0].level == logging.INFO

    def test_repeated_setup_does_not_duplicate(self):
        """Test handlers are replaced, not stacked."""
        setup_logging()
        logger = setup_logging()
        assert len(logger.handlers) == 1

    def test_verbose_means_debug(self):
        """Test --verbose overrides the configured level."""
        logger = setup_logging("ERROR", verbose=True)
        assert logger.handlers[0].level == logging.DEBUG

    def test_log_file(self, temp_dir: Path):
        """Test the file handler receives debug messages."""
        log_file = temp_dir / "logs" / "gitpanic.log"
        logger = setup_logging("WARNING", log_file=log_file)

        logging.getLogger("gitpanic.core").debug("written to file")
        for handler in logger.handlers:
            handler.flush()

        assert "written to file" in log_file.read_text(encoding="utf-8")

    def test_unknown_level(self):
        """Test a bad level name is rejected."""
        with pytest.raises(ValueError):
            setup_logging("LOUD")


class TestLogCapture:
    """Tests for LogCapture."""

    def test_captures_ledger_messages(self):
        """Test ledger activity is logged under the package logger."""
        inspector = MagicMock()
        inspector.head_hash.return_value = "a" * 40
        inspector.current_branch.return_value = "main"
        ledger = ActionLedger(inspector, MemoryHistoryStore())

        with LogCapture() as capture:
            ledger.complete_action(ledger.record_action(ActionType.CREATE_STASH, "Stash wip"))

        assert capture.has_message("Recording action")
        assert capture.has_message("Completed action")

    def test_restores_level(self):
        """Test the logger level is put back on exit."""
        logger = logging.getLogger("gitpanic")
        logger.setLevel(logging.ERROR)

        with LogCapture(level=logging.DEBUG):
            assert logger.level == logging.DEBUG

        assert logger.level == logging.ERROR
