"""Tests for logging setup."""

import logging

import pytest

from epub_reader.logger import ROOT_LOGGER_NAME, level_for, set_level, setup_logging


@pytest.fixture(autouse=True)
def _reset_package_logger():
    yield
    package_logger = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in package_logger.handlers:
        handler.close()
    package_logger.handlers.clear()
    package_logger.setLevel(logging.NOTSET)


class TestLevelFor:
    """Tests for level_for."""

    def test_levels(self):
        """Flags map to DEBUG, WARNING or INFO."""
        assert level_for() == logging.INFO
        assert level_for(quiet=True) == logging.WARNING
        assert level_for(verbose=True) == logging.DEBUG
        assert level_for(verbose=True, quiet=True) == logging.DEBUG


class TestSetupLogging:
    """Tests for setup_logging and set_level."""

    def test_single_console_handler(self):
        """Repeated setup does not stack handlers."""
        setup_logging()
        package_logger = setup_logging(logging.WARNING)
        assert package_logger.name == ROOT_LOGGER_NAME
        assert len(package_logger.handlers) == 1
        assert package_logger.level == logging.WARNING

    def test_log_file(self, temp_dir):
        """Module loggers reach the log file."""
        log_file = temp_dir / "reader.log"
        setup_logging(logging.INFO, log_file=str(log_file))
        logging.getLogger("epub_reader.extractor").warning("Resource 'x' is unreadable")
        for handler in logging.getLogger(ROOT_LOGGER_NAME).handlers:
            handler.flush()
        assert "Resource 'x' is unreadable" in log_file.read_text(encoding="utf-8")

    def test_set_level(self):
        """set_level changes the logger and its handlers."""
        setup_logging(logging.INFO)
        set_level(logging.DEBUG)
        package_logger = logging.getLogger(ROOT_LOGGER_NAME)
        assert package_logger.level == logging.DEBUG
        assert all(handler.level == logging.DEBUG for handler in package_logger.handlers)
