"""Pydantic models for execution API requests and responses."""

from typing import Any

from pydantic import BaseModel, Field

from orca_server.execution.types import (
    ExecutionSummary,
    PlanExecution,
    TaskContext,
    TaskOutput,
    TaskWithDefinition,
)
from orca_server.protocol.messages import NonEmptyStr


class ExecutionListResponse(BaseModel):
    """Executions of one plan, newest first."""

    executions: list[ExecutionSummary] = Field(default_factory=list)


class FailExecutionRequest(BaseModel):
    error: NonEmptyStr
    failed_step: int = Field(..., ge=0)
    user_stop_reason: str | None = None


class StopExecutionRequest(BaseModel):
    reason: NonEmptyStr


class ClaimTaskRequest(BaseModel):
    context: TaskContext


class ClaimTaskResponse(BaseModel):
    """The claimed task, or null when nothing could be claimed."""

    task: TaskWithDefinition | None = None


class StartTaskRequest(BaseModel):
    context: TaskContext
    session_id: str | None = Field(default=None, description="Agent session running the task")


class CompleteTaskRequest(BaseModel):
    output: TaskOutput


class FailTaskRequest(BaseModel):
    error: NonEmptyStr


class RunExecutionRequest(BaseModel):
    approve_all: bool = Field(
        default=False, description="Pre-approve checkpoints for every step of the plan"
    )
    session_id: str | None = Field(
        default=None, description="Coordinator session to run under (created if omitted)"
    )


class StepResultResponse(BaseModel):
    step_index: int
    agent: str
    session_id: str | None = None
    result: dict[str, Any] = Field(..., description="Envelope returned for the step")


class RunExecutionResponse(BaseModel):
    execution: PlanExecution
    steps: list[StepResultResponse] = Field(default_factory=list)
