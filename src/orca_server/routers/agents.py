"""Agents router exposing the resolved agent registry."""

from typing import Annotated

from fastapi import APIRouter, Depends

from orca_server.agents import AgentConfig, OrcaSettings, is_agent_supervised
from orca_server.dependencies import get_agents, get_orca_settings
from orca_server.models.agents import AgentInfo, AgentListResponse

router = APIRouter(prefix="/api/v1", tags=["agents"])


@router.get("/agents", response_model=AgentListResponse)
async def list_agents(
    agents: Annotated[dict[str, AgentConfig], Depends(get_agents)],
    settings: Annotated[OrcaSettings, Depends(get_orca_settings)],
) -> AgentListResponse:
    """List the agents available for dispatch, with supervision resolved."""
    return AgentListResponse(
        agents=[
            AgentInfo(
                name=name,
                mode=agent.mode,
                description=agent.description,
                model=agent.model,
                supervised=is_agent_supervised(agent, settings),
                specialist=bool(agent.specialist),
                accepts=list(agent.accepts or []),
            )
            for name, agent in agents.items()
        ]
    )
