"""
Pytest fixtures for shared module tests.

mock_redis_client and record_store come from the root conftest.
"""

import logging

import pytest


@pytest.fixture
def capture_logger():
    """A stdlib logger at DEBUG level for StructuredLogger assertions."""
    logger = logging.getLogger("tests.structured")
    logger.setLevel(logging.DEBUG)
    return logger
