"""
Global pytest configuration and fixtures.
"""

import logging

import pytest


@pytest.fixture(autouse=True)
def restore_root_logger():
    """Undo the root-logger changes made by the CLI's `configure_logging()`.

    CliRunner swaps stderr for each invocation, so a handler left behind would
    write to a closed stream in later tests.
    """
    root_logger = logging.getLogger()
    handlers = root_logger.handlers[:]
    level = root_logger.level
    yield
    root_logger.handlers[:] = handlers
    root_logger.setLevel(level)
