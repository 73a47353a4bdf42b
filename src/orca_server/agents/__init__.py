"""Agent configuration, built-in agents and response-format instructions."""

from orca_server.agents.config import (
    AgentConfig,
    OrcaSettings,
    OrcaUserConfig,
    SafeAgentConfig,
    ValidationSettings,
    load_user_config,
)
from orca_server.agents.registry import (
    DEFAULT_AGENTS,
    PROTECTED_AGENTS,
    build_orca_settings,
    is_agent_supervised,
    merge_agent_configs,
    resolve_agents,
)
from orca_server.agents.response_format import (
    build_response_format_instructions,
    response_types_for_agent,
)

__all__ = [
    "AgentConfig",
    "OrcaSettings",
    "OrcaUserConfig",
    "SafeAgentConfig",
    "ValidationSettings",
    "load_user_config",
    "DEFAULT_AGENTS",
    "PROTECTED_AGENTS",
    "build_orca_settings",
    "is_agent_supervised",
    "merge_agent_configs",
    "resolve_agents",
    "build_response_format_instructions",
    "response_types_for_agent",
]
