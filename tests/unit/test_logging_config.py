"""Tests for the logging setup helper."""

import logging

import pytest

from chromatic_bnp.logging_config import setup_logging


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    root.handlers = handlers
    root.setLevel(level)


class TestSetupLogging:
    def test_single_stdout_handler(self, restore_root_logger):
        root = setup_logging("debug")
        assert root is restore_root_logger
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0], logging.StreamHandler)

    def test_repeated_setup_does_not_stack_handlers(self, restore_root_logger):
        setup_logging("INFO")
        root = setup_logging("WARNING")
        assert len(root.handlers) == 1
        assert root.level == logging.WARNING

    def test_invalid_level(self, restore_root_logger):
        with pytest.raises(ValueError, match="Invalid log level"):
            setup_logging("chatty")
