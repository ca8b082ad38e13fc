"""
Pytest configuration and shared fixtures for relayauth tests.

Provides:
- Fake signer, connection and transport (see ``tests/fixtures/relay.py``)
- Logging configuration
- Custom pytest markers for test categorization
"""

import logging

import pytest


pytest_plugins = ["tests.fixtures.relay"]


# ============================================================================
# Logging Configuration
# ============================================================================


@pytest.fixture(scope="session", autouse=True)
def setup_logging() -> None:
    """Configure logging for tests."""
    logging.basicConfig(level=logging.DEBUG)


# ============================================================================
# Pytest Configuration
# ============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Mark every test under tests/unit as a unit test."""
    for item in items:
        if "/unit/" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
