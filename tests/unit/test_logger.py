"""
Unit tests for ecoaudio.core.logger.
"""

import logging

import pytest

from ecoaudio.core.logger import PACKAGE_NAME, configure_from_config, get_logger, set_level


@pytest.fixture
def package_logger():
    logger = logging.getLogger(PACKAGE_NAME)
    level = logger.level
    formatters = [h.formatter for h in logger.handlers]
    yield logger
    logger.setLevel(level)
    for handler, formatter in zip(logger.handlers, formatters):
        handler.setFormatter(formatter)


class TestLogger:
    def test_module_logger_under_package(self, package_logger):
        logger = get_logger("ecoaudio.core.spectrogram")
        assert logger.name == "ecoaudio.core.spectrogram"
        assert package_logger.handlers
        assert package_logger.propagate is False

    def test_set_level_by_name(self, package_logger):
        set_level("debug")
        assert package_logger.level == logging.DEBUG
        set_level(logging.ERROR)
        assert package_logger.level == logging.ERROR

    def test_unknown_level(self, package_logger):
        with pytest.raises(ValueError):
            set_level("chatty")

    def test_configure_from_config(self, package_logger):
        configure_from_config(level="INFO", fmt="%(message)s")
        assert package_logger.level == logging.INFO
        assert all(h.formatter._fmt == "%(message)s" for h in package_logger.handlers)
