"""Shared test configuration and fixtures."""

import logging

import pytest

from antfarm.cli import cleanup_logging
from antfarm.config import AntfarmConfig
from antfarm.storage.steps import StepStore


@pytest.fixture(scope="function", autouse=True)
def cleanup_logging_handlers():
    """Automatically cleanup logging handlers after each test to prevent ResourceWarnings."""
    yield
    cleanup_logging()


@pytest.fixture(scope="function", autouse=True)
def reset_logging():
    """Reset logging configuration after each test."""
    yield
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        handler.close()
        root_logger.removeHandler(handler)
    root_logger.setLevel(logging.WARNING)


@pytest.fixture
def config(tmp_path):
    """Configuration pointing every path into a temporary directory."""
    return AntfarmConfig(
        state_dir=tmp_path / "antfarm",
        gateway_config_path=tmp_path / "openclaw.json",
    )


@pytest.fixture
def store(config):
    """Empty step store."""
    return StepStore(config.db_path)
