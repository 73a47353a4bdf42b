"""Configuration module for orca-server using pydantic-settings."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class OrcaServerSettings(BaseSettings):
    """Main configuration settings for orca-server.

    All settings can be overridden via environment variables with the ORCA_ prefix.
    For example, ORCA_OLLAMA_HOST will override the ollama_host setting.
    """

    # Server
    host: str = "127.0.0.1"
    port: int = 8000

    # Ollama
    ollama_host: str = "http://localhost:11434"
    default_model: str = "llama3.2:latest"

    # Working directory (plans, executions and user config live below .opencode)
    data_dir: str = "."
    sessions_dir: str = ".opencode/sessions"

    # Orchestration
    default_supervised: bool = False
    validation_max_retries: int = Field(default=2, ge=0, le=10)
    validation_wrap_plain_text: bool = False
    question_timeout_seconds: float = 300.0

    # CORS
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])

    # Logging
    log_level: str = "INFO"

    model_config = SettingsConfigDict(env_prefix="ORCA_")

    # --- Resolved paths (computed from data_dir + relative dirs) ---

    @property
    def working_dir(self) -> Path:
        """Get the working directory all persisted state is rooted at."""
        return Path(self.data_dir)

    @property
    def resolved_sessions_dir(self) -> Path:
        """Get the full path to the agent sessions directory."""
        return Path(self.data_dir) / self.sessions_dir
