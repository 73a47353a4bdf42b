"""Unit tests for the health check endpoint."""

from unittest.mock import AsyncMock

import pytest


@pytest.mark.asyncio
async def test_health_check_returns_ok(async_client):
    """Test that health check returns status ok."""
    response = await async_client.get("/api/v1/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["version"] == "0.1.0"
    assert data["ollama_host"] == "http://localhost:11434"


@pytest.mark.asyncio
async def test_health_check_reports_ollama_down(async_client, test_app):
    """Test that a failing connectivity check is reported, not raised."""
    test_app.state.ollama_client.check_connection = AsyncMock(
        side_effect=Exception("Connection refused")
    )

    response = await async_client.get("/api/v1/health")

    assert response.status_code == 200
    assert response.json()["ollama_connected"] is False


@pytest.mark.asyncio
async def test_health_check_reports_ollama_up(async_client, test_app):
    test_app.state.ollama_client.check_connection = AsyncMock(return_value=True)

    response = await async_client.get("/api/v1/health")

    assert response.json()["ollama_connected"] is True
