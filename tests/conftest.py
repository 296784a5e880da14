"""
Pytest configuration file for the voicewire test suite.

This file contains fixtures that are shared across multiple test files.
"""

import logging
import os

# Keep test runs from writing rotating log files
os.environ.setdefault("LOG_TO_FILE", "false")

import pytest


@pytest.fixture(autouse=True)
def reset_logging():
    """Reset logging configuration before each test"""
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    logging.basicConfig(level=logging.NOTSET)
    yield


@pytest.fixture(autouse=True)
def skip_integration_when_no_api_key(request):
    if request.node.get_closest_marker("integration") and not os.environ.get("OPENAI_API_KEY"):
        pytest.skip("Skipping integration tests: OPENAI_API_KEY not set")
