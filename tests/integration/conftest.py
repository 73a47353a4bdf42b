"""Pytest configuration for integration tests.

The OllamaClient is patched before the app is created so the lifespan wires
the real runtime and services to a mock model backend. Tests script agent
replies through ``mock_ollama_client.chat``.
"""

from unittest.mock import AsyncMock, patch

import pytest


@pytest.fixture(autouse=True)
def mock_ollama_client():
    """Mock OllamaClient for all integration tests."""
    with patch("orca_server.app.OllamaClient") as mock_client_class:
        mock_instance = AsyncMock()
        mock_instance.host = "http://localhost:11434"
        mock_instance.check_connection.return_value = True
        mock_instance.chat.return_value = ""

        mock_client_class.return_value = mock_instance

        yield mock_instance


@pytest.fixture
def plan_body():
    """A complete plan with one step per specialist used in tests."""
    return {
        "session_id": "ses_0192f0c3a1b2AbCdEfGhIjKlMn",
        "goal": "Ship feature X",
        "steps": [
            {"description": "Write code", "agent": "coder"},
            {"description": "Test code", "agent": "tester"},
        ],
        "assumptions": ["Repo builds"],
        "verification": ["Tests pass"],
        "risks": ["Regression"],
    }
