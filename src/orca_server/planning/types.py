"""Data types for plans."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from orca_server.protocol.messages import NonEmptyStr, PlanMessage, PlanStep

PlanStage = Literal["draft", "proposal", "approved", "rejected"]

# Fields that must be non-empty once a plan leaves the draft stage
REQUIRED_PLAN_FIELDS = ("steps", "assumptions", "verification", "risks")


class Plan(BaseModel):
    """A plan persisted as one JSON document.

    Draft plans may have empty collections. Every later stage requires at
    least one step, assumption, verification item and risk.
    """

    model_config = ConfigDict(extra="forbid")

    plan_id: str
    planner_session_id: str
    created_at: str
    updated_at: str
    stage: PlanStage
    goal: NonEmptyStr
    summary: str | None = None
    steps: list[PlanStep] = Field(default_factory=list)
    assumptions: list[str] = Field(default_factory=list)
    files_touched: list[str] = Field(default_factory=list)
    verification: list[str] = Field(default_factory=list)
    risks: list[str] = Field(default_factory=list)
    rejection_reason: str | None = None

    @model_validator(mode="after")
    def _check_stage_fields(self) -> "Plan":
        if self.stage != "draft":
            missing = missing_plan_fields(self)
            if missing:
                raise ValueError(
                    f"Plan in stage {self.stage} requires non-empty: {', '.join(missing)}"
                )
        if self.rejection_reason is not None and self.stage != "rejected":
            raise ValueError("rejection_reason is only allowed on rejected plans")
        return self


class PlanContent(BaseModel):
    """Full plan content, as supplied by an agent or a revision."""

    model_config = ConfigDict(extra="forbid")

    goal: NonEmptyStr
    summary: str | None = None
    steps: list[PlanStep] = Field(..., min_length=1)
    assumptions: list[str] = Field(..., min_length=1)
    files_touched: list[str] = Field(default_factory=list)
    verification: list[str] = Field(..., min_length=1)
    risks: list[str] = Field(..., min_length=1)

    @classmethod
    def from_message(cls, message: PlanMessage) -> "PlanContent":
        """Build plan content from a plan envelope."""
        return cls(
            goal=message.goal,
            summary=message.summary,
            steps=message.steps,
            assumptions=message.assumptions,
            files_touched=message.files_touched or [],
            verification=message.verification,
            risks=message.risks,
        )


class PlanSummary(BaseModel):
    """Lightweight listing entry for a plan."""

    plan_id: str
    goal: str
    stage: PlanStage
    created_at: str
    step_count: int
    has_executions: bool


def missing_plan_fields(plan: Plan) -> list[str]:
    """Names of required collections that are still empty."""
    return [name for name in REQUIRED_PLAN_FIELDS if not getattr(plan, name)]
