"""Pydantic models for the agent registry endpoint."""

from pydantic import BaseModel, Field


class AgentInfo(BaseModel):
    """One resolved agent."""

    name: str = Field(..., description="Agent name used for dispatch")
    mode: str | None = Field(default=None, description="primary, subagent or all")
    description: str | None = None
    model: str | None = Field(default=None, description="Model override, if any")
    supervised: bool = Field(..., description="Resolved supervision (agent flag or default)")
    specialist: bool = False
    accepts: list[str] = Field(default_factory=list, description="Request types accepted")


class AgentListResponse(BaseModel):
    agents: list[AgentInfo] = Field(default_factory=list)
