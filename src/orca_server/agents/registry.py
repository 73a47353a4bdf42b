"""Built-in agents and resolution of the final agent registry.

The registry is layered: built-in defaults, then restricted overrides for the
protected orchestration agents, then user overrides and additions.
"""

import logging
from textwrap import dedent
from typing import Any

from orca_server.agents.config import AgentConfig, OrcaSettings, OrcaUserConfig, ValidationSettings

logger = logging.getLogger(__name__)

PROTECTED_AGENTS = ("orca", "planner")

SPECIALIST_LIST_PLACEHOLDER = "{{SPECIALIST_LIST}}"

_SPECIALIST_ACCEPTS = ["task", "question"]

DEFAULT_AGENTS: dict[str, AgentConfig] = {
    "orca": AgentConfig(
        mode="primary",
        supervised=False,
        description="Orchestrator that routes messages to other agents",
        color="#6366F1",
        prompt=dedent(
            """\
            You are Orca, an orchestration agent that coordinates specialist agents.
            Send every user request to the planner. Only dispatch tasks to
            specialists after the user has approved a plan. When a supervised
            agent returns a checkpoint, present it to the user and re-dispatch
            with plan_context.approved_remaining set once they approve."""
        ),
    ),
    "planner": AgentConfig(
        mode="subagent",
        supervised=False,
        specialist=True,
        accepts=["task", "question"],
        description="Plans complex multi-step tasks with detailed execution steps",
        color="#8B5CF6",
        prompt=dedent(
            """\
            You are a strategic planning agent. Analyze complex requests and
            produce detailed, actionable plans.

            ## Available Specialists

            You may ONLY assign steps to the following specialists:
            {{SPECIALIST_LIST}}

            Guidelines:
            - Be specific: "modify function X in file Y", not "update the code"
            - Include verification steps in the plan
            - Flag anything requiring a human decision as a risk
            - Plans must be executable by other agents without ambiguity"""
        ),
    ),
    "coder": AgentConfig(
        mode="subagent",
        specialist=True,
        accepts=_SPECIALIST_ACCEPTS,
        description="Implements code changes, features, and bug fixes",
        color="#10B981",
        prompt=dedent(
            """\
            You are a coding agent specialized in implementing changes to codebases.
            Make minimal, focused changes that follow existing project conventions
            and preserve existing functionality unless explicitly changing it."""
        ),
    ),
    "tester": AgentConfig(
        mode="subagent",
        specialist=True,
        accepts=_SPECIALIST_ACCEPTS,
        description="Writes tests and validates code quality",
        color="#F59E0B",
        prompt=dedent(
            """\
            You are a testing agent focused on code quality and correctness.
            Write unit and integration tests, cover edge cases and failure modes,
            and report the results of running the test suite."""
        ),
    ),
    "reviewer": AgentConfig(
        mode="subagent",
        specialist=True,
        accepts=_SPECIALIST_ACCEPTS,
        description="Reviews code for bugs, improvements, and best practices",
        color="#EF4444",
        prompt=dedent(
            """\
            You are a code review agent. Look for bugs, security problems and
            maintainability issues, and explain each finding with a concrete fix."""
        ),
    ),
    "researcher": AgentConfig(
        mode="subagent",
        specialist=True,
        accepts=_SPECIALIST_ACCEPTS,
        description="Researches codebases, APIs, and documentation to answer questions",
        color="#3B82F6",
        prompt=dedent(
            """\
            You are a research agent. Investigate codebases, APIs and documentation
            and answer with cited sources."""
        ),
    ),
    "document-writer": AgentConfig(
        mode="subagent",
        specialist=True,
        accepts=_SPECIALIST_ACCEPTS,
        description="Creates technical documentation, READMEs, and guides",
        color="#EC4899",
        prompt=dedent(
            """\
            You are a technical writer. Produce clear, accurate documentation that
            matches the project's existing tone and structure."""
        ),
    ),
    "architect": AgentConfig(
        mode="subagent",
        specialist=True,
        accepts=_SPECIALIST_ACCEPTS,
        description="Advises on architecture, design patterns, and technical decisions",
        color="#06B6D4",
        prompt=dedent(
            """\
            You are a software architect. Evaluate design options, explain the
            trade-offs, and recommend one approach."""
        ),
    ),
}


def _merge_agent_config(base: AgentConfig, override: AgentConfig) -> AgentConfig:
    """Merge one override into a base config.

    Dict-valued fields are merged key by key; everything else is replaced.
    """
    result: dict[str, Any] = base.model_dump(exclude_none=True)

    for key, value in override.model_dump(exclude_none=True).items():
        base_value = result.get(key)
        if isinstance(value, dict) and isinstance(base_value, dict):
            result[key] = {**base_value, **value}
        else:
            result[key] = value

    return AgentConfig.model_validate(result)


def merge_agent_configs(
    defaults: dict[str, AgentConfig],
    user_agents: dict[str, AgentConfig] | None = None,
) -> dict[str, AgentConfig]:
    """Merge default agents with user overrides and additions.

    - An override for an existing agent is merged over the default
    - A new agent name is added as-is
    - ``disable: true`` removes the agent from the result

    Args:
        defaults: Default agent definitions
        user_agents: User agent configurations

    Returns:
        The merged agent configurations
    """
    user_agents = user_agents or {}
    result: dict[str, AgentConfig] = {}

    for agent_id, default_config in defaults.items():
        override = user_agents.get(agent_id)
        if override is None:
            result[agent_id] = default_config
            continue

        merged = _merge_agent_config(default_config, override)
        if merged.disable:
            logger.info(f"Agent {agent_id} disabled by user config")
            continue
        result[agent_id] = merged

    for agent_id, user_config in user_agents.items():
        if agent_id in defaults or user_config.disable:
            continue
        result[agent_id] = user_config

    return result


def format_specialist_list(agents: dict[str, AgentConfig]) -> str:
    """Render the specialists available to the planner as a markdown list."""
    lines = [
        f"- **{agent_id}**: {config.description or 'No description'}"
        for agent_id, config in agents.items()
        if config.specialist and agent_id not in PROTECTED_AGENTS
    ]
    return "\n".join(lines) if lines else "- (no specialists available)"


def resolve_agents(user_config: OrcaUserConfig | None = None) -> dict[str, AgentConfig]:
    """Build the final agent registry.

    Args:
        user_config: Parsed user configuration, if any

    Returns:
        Mapping of agent name to resolved configuration
    """
    defaults = {agent_id: config.model_copy(deep=True) for agent_id, config in DEFAULT_AGENTS.items()}
    user_agents: dict[str, AgentConfig] = {}

    if user_config is not None:
        for agent_id in PROTECTED_AGENTS:
            safe = getattr(user_config, agent_id)
            if safe is not None:
                defaults[agent_id] = _merge_agent_config(
                    defaults[agent_id],
                    AgentConfig.model_validate(safe.model_dump(exclude_none=True)),
                )

        for agent_id, config in user_config.agents.items():
            if agent_id in PROTECTED_AGENTS:
                logger.warning(
                    f"Ignoring agents.{agent_id} in user config; use the top-level '{agent_id}' key"
                )
                continue
            user_agents[agent_id] = config

    agents = merge_agent_configs(defaults, user_agents)

    planner = agents.get("planner")
    if planner is not None and planner.prompt:
        agents["planner"] = planner.model_copy(
            update={
                "prompt": planner.prompt.replace(
                    SPECIALIST_LIST_PLACEHOLDER, format_specialist_list(agents)
                )
            }
        )

    logger.debug(f"Resolved {len(agents)} agents: {', '.join(agents)}")
    return agents


def build_orca_settings(
    default_supervised: bool,
    default_model: str,
    max_retries: int,
    wrap_plain_text: bool,
    user_config: OrcaUserConfig | None = None,
) -> OrcaSettings:
    """Combine server-level defaults with the user file's settings block.

    Values set in the user file win over the server defaults.
    """
    settings = OrcaSettings(
        default_supervised=default_supervised,
        default_model=default_model,
        validation=ValidationSettings(max_retries=max_retries, wrap_plain_text=wrap_plain_text),
    )
    if user_config is None:
        return settings

    user = user_config.settings
    validation = settings.validation
    if user.validation is not None:
        validation = ValidationSettings(
            max_retries=(
                user.validation.max_retries
                if user.validation.max_retries is not None
                else validation.max_retries
            ),
            wrap_plain_text=(
                user.validation.wrap_plain_text
                if user.validation.wrap_plain_text is not None
                else validation.wrap_plain_text
            ),
        )

    return OrcaSettings(
        default_supervised=(
            user.default_supervised
            if user.default_supervised is not None
            else settings.default_supervised
        ),
        default_model=user.default_model or settings.default_model,
        validation=validation,
    )


def is_agent_supervised(agent: AgentConfig, settings: OrcaSettings | None = None) -> bool:
    """Resolve supervision: the agent's flag, then the global default, then False."""
    if agent.supervised is not None:
        return agent.supervised
    if settings is not None and settings.default_supervised is not None:
        return settings.default_supervised
    return False
