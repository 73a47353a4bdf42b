"""Pydantic models for plan API requests and responses."""

from pydantic import BaseModel, ConfigDict, Field

from orca_server.planning.types import PlanContent, PlanSummary
from orca_server.protocol.messages import NonEmptyStr, PlanStep


class CreateDraftRequest(BaseModel):
    """Request body for creating an empty draft plan."""

    session_id: NonEmptyStr = Field(..., description="Planner session that owns the plan")
    goal: NonEmptyStr = Field(..., description="What the plan will achieve")

    model_config = ConfigDict(
        json_schema_extra={
            "examples": [{"session_id": "ses_0192f0c3a1b2AbCdEfGhIjKlMn", "goal": "Ship feature X"}]
        }
    )


class CreateProposalRequest(PlanContent):
    """Request body for storing a complete plan directly as a proposal."""

    session_id: NonEmptyStr = Field(..., description="Planner session that owns the plan")


class AddStepRequest(BaseModel):
    step: PlanStep
    position: int | None = Field(
        default=None, description="Insert position (appends when omitted or past the end)"
    )


class UpdateStepRequest(BaseModel):
    """Partial step update; only the fields that are set are applied."""

    model_config = ConfigDict(extra="forbid")

    description: NonEmptyStr | None = None
    agent: NonEmptyStr | None = None
    command: str | None = None
    assumptions: list[str] | None = None
    risks: list[str] | None = None
    verification: list[str] | None = None


class StringListRequest(BaseModel):
    """Replacement value for a plan's assumptions, risks or verification."""

    items: list[str] = Field(default_factory=list)


class SubmitPlanRequest(BaseModel):
    summary: str | None = Field(default=None, description="Optional plan summary")


class RejectPlanRequest(BaseModel):
    reason: str | None = Field(default=None, description="Why the plan was rejected")


class PlanListResponse(BaseModel):
    """Plans, newest first."""

    plans: list[PlanSummary] = Field(default_factory=list)
