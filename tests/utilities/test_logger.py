"""
Unit tests for logging setup.
"""

import logging

from utilities.logger import setup_logging


def test_setup_logging_with_file(tmp_path):
    """A file handler is attached and its directory created."""
    log_file = tmp_path / "logs" / "api.log"
    root_logger = logging.getLogger()
    handlers_before = list(root_logger.handlers)

    try:
        setup_logging(log_level="DEBUG", log_format="console", log_file=str(log_file))

        assert log_file.parent.exists()
        assert any(
            isinstance(handler, logging.FileHandler) and handler.baseFilename == str(log_file)
            for handler in root_logger.handlers
        )
    finally:
        for handler in list(root_logger.handlers):
            if handler not in handlers_before:
                root_logger.removeHandler(handler)
                handler.close()
