"""Unit tests for the FastAPI app factory and configuration."""

from fastapi import FastAPI

from orca_server import __version__, create_app
from orca_server.config import OrcaServerSettings


def test_create_app_returns_fastapi_instance():
    """Test that create_app returns a FastAPI instance."""
    app = create_app()
    assert isinstance(app, FastAPI)


def test_create_app_metadata(test_settings):
    """Test that app has correct metadata."""
    app = create_app(settings=test_settings)
    assert app.title == "orca-server"
    assert app.version == __version__


def test_create_app_registers_routers(test_settings):
    """Test that every resource router is registered."""
    app = create_app(settings=test_settings)

    routes = [route.path for route in app.routes]  # type: ignore[attr-defined]
    assert "/api/v1/health" in routes
    assert "/api/v1/agents" in routes
    assert "/api/v1/plans" in routes
    assert "/api/v1/plans/{plan_id}/executions" in routes
    assert "/api/v1/plans/{plan_id}/run" in routes
    assert "/api/v1/questions/events" in routes
    assert "/api/v1/orca/invoke" in routes
    assert "/api/v1/orca/dispatch" in routes


def test_create_app_has_cors_middleware(test_settings):
    """Test that CORS middleware is configured."""
    app = create_app(settings=test_settings)

    middleware_classes = [m.cls.__name__ for m in app.user_middleware]  # type: ignore[attr-defined]
    assert "CORSMiddleware" in middleware_classes


def test_settings_default_values():
    """Test that settings have correct default values."""
    settings = OrcaServerSettings()

    assert settings.host == "127.0.0.1"
    assert settings.port == 8000
    assert settings.ollama_host == "http://localhost:11434"
    assert settings.data_dir == "."
    assert settings.default_supervised is False
    assert settings.validation_max_retries == 2
    assert settings.validation_wrap_plain_text is False
    assert settings.question_timeout_seconds == 300.0


def test_settings_env_prefix(monkeypatch):
    """Test that settings respect the ORCA_ environment variable prefix."""
    monkeypatch.setenv("ORCA_PORT", "9000")
    monkeypatch.setenv("ORCA_DEFAULT_SUPERVISED", "true")
    monkeypatch.setenv("ORCA_VALIDATION_MAX_RETRIES", "4")

    settings = OrcaServerSettings()

    assert settings.port == 9000
    assert settings.default_supervised is True
    assert settings.validation_max_retries == 4


def test_settings_resolved_paths(tmp_path):
    """Test that resolved path properties are rooted at data_dir."""
    settings = OrcaServerSettings(data_dir=str(tmp_path))

    assert settings.working_dir == tmp_path
    assert settings.resolved_sessions_dir == tmp_path / ".opencode" / "sessions"
