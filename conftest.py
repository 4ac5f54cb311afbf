"""
Pytest configuration and shared fixtures.

This file contains pytest configuration and fixtures that are available
to all test modules in the project.
"""

import io
import logging

import pytest

# Import all fixtures from the fixtures module
from tests.fixtures import *


def pytest_configure(config):
    """Configure pytest settings."""
    # Register custom markers
    config.addinivalue_line(
        "markers", "unit: Unit tests that test individual components in isolation"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests that test component interactions"
    )
    config.addinivalue_line(
        "markers", "config: Configuration-related tests"
    )
    config.addinivalue_line(
        "markers", "gateway: Routing, templating and forwarding tests"
    )
    config.addinivalue_line(
        "markers", "auth: Authentication tests"
    )
    config.addinivalue_line(
        "markers", "health: Health check tests"
    )


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location and content."""
    for item in items:
        # Mark tests based on file location
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)

        # Mark tests based on function name patterns
        if "config" in item.name or "settings" in item.name:
            item.add_marker(pytest.mark.config)

        if "route" in item.name or "template" in item.name or "forward" in item.name:
            item.add_marker(pytest.mark.gateway)

        if "auth" in item.name or "apikey" in item.name or "whitelist" in item.name:
            item.add_marker(pytest.mark.auth)

        if "health" in item.name:
            item.add_marker(pytest.mark.health)


@pytest.fixture
def capture_logs():
    """Capture log output during tests."""
    log_buffer = io.StringIO()

    handler = logging.StreamHandler(log_buffer)
    handler.setLevel(logging.DEBUG)

    logger = logging.getLogger("eventgate")
    logger.addHandler(handler)
    original_level = logger.level
    logger.setLevel(logging.DEBUG)

    yield log_buffer

    logger.removeHandler(handler)
    logger.setLevel(original_level)
