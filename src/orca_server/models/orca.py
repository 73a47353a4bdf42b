"""Pydantic models for the orchestrator endpoints."""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from orca_server.planning.types import Plan
from orca_server.protocol.messages import NonEmptyStr


class InvokeRequest(BaseModel):
    """Request body for POST /api/v1/orca/invoke."""

    message: NonEmptyStr = Field(..., description="The user's request")
    session_id: str | None = Field(
        default=None, description="Coordinator session to continue (created if omitted)"
    )

    model_config = ConfigDict(
        json_schema_extra={"examples": [{"message": "Add a --verbose flag to the CLI"}]}
    )


class InvokeResponse(BaseModel):
    type: Literal["plan_submitted", "answer", "checkpoint", "failure"]
    session_id: str
    planner_session_id: str | None = None
    result: dict[str, Any] = Field(..., description="Envelope returned by the planner")
    plan: Plan | None = Field(default=None, description="Stored proposal, for plan_submitted")


class DispatchResponse(BaseModel):
    """Envelope produced for a request envelope, plus the agent session used."""

    session_id: str | None = None
    result: dict[str, Any]


class AskAgentRequest(BaseModel):
    """Request body for POST /api/v1/orca/questions."""

    agent: NonEmptyStr = Field(..., description="Agent to ask")
    question: NonEmptyStr = Field(..., description="The question to ask")
    session_id: str | None = Field(
        default=None, description="Continue an existing conversation with the agent"
    )
    parent_session_id: str | None = Field(
        default=None, description="Session of the caller, if any"
    )
