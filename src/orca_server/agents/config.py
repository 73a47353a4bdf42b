"""Agent and orchestration settings loaded from the user configuration file.

The user file lives at ``<workdir>/.opencode/orca.json`` and uses camelCase
keys (``maxSteps``, ``defaultSupervised``); snake_case is accepted as well.
"""

import json
import logging
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from orca_server.errors import ConfigError

logger = logging.getLogger(__name__)

USER_CONFIG_PATH = Path(".opencode") / "orca.json"

COLOR_PATTERN = r"^#[0-9A-Fa-f]{6}$"


class AgentConfig(BaseModel):
    """Configuration for one agent.

    Unknown keys are preserved so user files can carry runtime-specific
    options that orca-server passes through untouched.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    model: str | None = None
    temperature: float | None = Field(default=None, ge=0, le=2)
    top_p: float | None = Field(default=None, ge=0, le=1)
    prompt: str | None = None
    tools: dict[str, bool] | None = None
    disable: bool | None = Field(default=None, description="Whether to disable this agent")
    description: str | None = None
    mode: Literal["subagent", "primary", "all"] | None = None
    color: str | None = Field(default=None, pattern=COLOR_PATTERN)
    max_steps: int | None = Field(default=None, gt=0, alias="maxSteps")
    permission: dict[str, Any] | None = None
    supervised: bool | None = Field(
        default=None,
        description="Whether this agent requires approval before dispatch",
    )
    accepts: list[Literal["question", "task"]] | None = Field(
        default=None,
        description="Message types this agent accepts",
    )
    specialist: bool | None = Field(
        default=None,
        description="Whether this agent is offered to the planner as a specialist",
    )


class SafeAgentConfig(BaseModel):
    """Restricted overrides allowed for the protected orca and planner agents."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    model: str | None = None
    temperature: float | None = Field(default=None, ge=0, le=2)
    top_p: float | None = Field(default=None, ge=0, le=1)
    max_steps: int | None = Field(default=None, gt=0, alias="maxSteps")
    color: str | None = Field(default=None, pattern=COLOR_PATTERN)


class ValidationSettings(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    max_retries: int | None = Field(default=None, ge=0, le=10, alias="maxRetries")
    wrap_plain_text: bool | None = Field(default=None, alias="wrapPlainText")


class OrcaSettings(BaseModel):
    """Global orchestration settings."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    default_supervised: bool | None = Field(
        default=None,
        alias="defaultSupervised",
        description="Whether agents require approval by default",
    )
    default_model: str | None = Field(
        default=None,
        alias="defaultModel",
        description="Default model for agents that don't specify one",
    )
    validation: ValidationSettings | None = None


class OrcaUserConfig(BaseModel):
    """Top-level shape of the user configuration file."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    schema_ref: str | None = Field(default=None, alias="$schema")
    orca: SafeAgentConfig | None = None
    planner: SafeAgentConfig | None = None
    agents: dict[str, AgentConfig] = Field(default_factory=dict)
    settings: OrcaSettings = Field(default_factory=OrcaSettings)


def load_user_config(workdir: Path) -> OrcaUserConfig | None:
    """Load and validate the user configuration file.

    Args:
        workdir: Project working directory

    Returns:
        The parsed configuration, or None if the file does not exist

    Raises:
        ConfigError: If the file is not valid JSON or fails validation
    """
    config_path = workdir / USER_CONFIG_PATH
    if not config_path.exists():
        logger.debug(f"No user config at {config_path}")
        return None

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            raw = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Failed to parse {config_path}: {e}") from e

    try:
        config = OrcaUserConfig.model_validate(raw)
    except ValidationError as e:
        issues = "\n".join(
            f"  - {'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
            for err in e.errors()
        )
        raise ConfigError(f"Invalid {config_path}:\n{issues}") from e

    logger.info(f"Loaded user config from {config_path}")
    return config
