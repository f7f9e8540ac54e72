"""Shared fixtures for the backend test suite."""
import pytest

from attention_backend.services.logger_service import initialize_logger


@pytest.fixture(autouse=True)
def quiet_logger():
    """Fresh, silent global logger for every test."""
    return initialize_logger(session_level="DEBUG", system_level="DEBUG", echo=False)
