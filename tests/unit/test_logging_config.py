"""
Unit tests for logging setup
"""

import logging
from logging.handlers import RotatingFileHandler

import pytest

from core.utils.logging_config import configure_logging


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield root
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.mark.unit
class TestConfigureLogging:
    def test_console_and_error_file(self, tmp_path, restore_root_logger):
        configure_logging("debug", str(tmp_path / "logs"))

        root = restore_root_logger
        assert root.level == logging.DEBUG
        error_handlers = [h for h in root.handlers if isinstance(h, RotatingFileHandler)]
        assert len(error_handlers) == 1
        assert error_handlers[0].level == logging.ERROR
        assert error_handlers[0].maxBytes == 5 * 1024 * 1024
        assert (tmp_path / "logs" / "kline_engine_errors.log").exists()

    def test_file_log_disabled(self, restore_root_logger):
        configure_logging("WARNING", None)

        root = restore_root_logger
        assert root.level == logging.WARNING
        assert not any(isinstance(h, RotatingFileHandler) for h in root.handlers)
