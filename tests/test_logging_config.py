import logging

import pytest

from skirmish.logging_config import configure_logging


@pytest.fixture()
def root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


def test_single_stdout_handler(root_logger, monkeypatch):
    monkeypatch.delenv("SKIRMISH_LOG_LEVEL", raising=False)
    configure_logging(logging.INFO)
    configure_logging(logging.INFO)
    assert len(root_logger.handlers) == 1
    assert root_logger.level == logging.INFO
    assert "%(levelname)-8s" in root_logger.handlers[0].formatter._fmt


def test_env_var_overrides_level(root_logger, monkeypatch):
    monkeypatch.setenv("SKIRMISH_LOG_LEVEL", "debug")
    configure_logging(logging.WARNING)
    assert root_logger.level == logging.DEBUG
