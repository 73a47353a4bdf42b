"""Pytest configuration and shared fixtures for orca-server tests.

This module provides common fixtures used across all test modules,
including test app creation and async client setup.
"""

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from orca_server import create_app
from orca_server.config import OrcaServerSettings


@pytest.fixture
def test_settings(tmp_path):
    """Create test settings rooted at an isolated temporary directory.

    Args:
        tmp_path: Pytest fixture providing a temporary directory.

    Returns:
        OrcaServerSettings: Settings instance configured for testing.
    """
    return OrcaServerSettings(
        host="127.0.0.1",
        port=8000,
        ollama_host="http://localhost:11434",
        data_dir=str(tmp_path),
        sessions_dir=".opencode/sessions",
        question_timeout_seconds=5.0,
        log_level="DEBUG",
        cors_origins=["*"],
    )


@pytest.fixture
def test_app(test_settings):
    """Create a FastAPI test application instance."""
    return create_app(settings=test_settings)


@pytest_asyncio.fixture
async def async_client(test_app):
    """Create an async HTTP client for testing FastAPI endpoints.

    Args:
        test_app: Test application fixture.

    Yields:
        AsyncClient: Async HTTP client for making test requests.
    """
    # Trigger the lifespan startup manually for tests
    async with test_app.router.lifespan_context(test_app):
        transport = ASGITransport(app=test_app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            yield client
