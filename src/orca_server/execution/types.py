"""Data types for plan executions.

Task records and execution statuses are tagged unions so that each state
carries exactly the fields that make sense for it.
"""

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from orca_server.protocol.messages import NonEmptyStr, PlanStep


class _Strict(BaseModel):
    model_config = ConfigDict(extra="forbid")


# --- Task context and output ---


class PreviousTaskSummary(_Strict):
    """What an earlier, completed step produced."""

    step_index: int = Field(..., ge=0)
    agent: str
    description: str
    summary: str = Field(..., description="Brief summary of what was accomplished")
    artifacts: list[str] = Field(default_factory=list, description="Files created/modified")
    key_findings: list[str] | None = None


class PreviousAttempt(_Strict):
    """A failed earlier attempt at the same step."""

    error: str
    cause: str | None = None
    user_guidance: str | None = None


class TaskContext(_Strict):
    """Everything handed to the agent running a step."""

    plan_id: str
    plan_goal: str
    step_index: int = Field(..., ge=0)
    total_steps: int = Field(..., gt=0)
    relevant_files: list[str] = Field(default_factory=list)
    previous_tasks: list[PreviousTaskSummary] = Field(default_factory=list)
    previous_attempts: list[PreviousAttempt] = Field(default_factory=list)


class TaskOutput(_Strict):
    """What a completed step produced."""

    summary: NonEmptyStr
    artifacts: list[str] = Field(default_factory=list)
    key_findings: list[str] | None = None
    verification: list[str] | None = None
    raw_response: str = ""


# --- Task records ---


class PendingTask(_Strict):
    step_index: int = Field(..., ge=0)
    status: Literal["pending"] = "pending"


class RunningTask(_Strict):
    step_index: int = Field(..., ge=0)
    status: Literal["running"] = "running"
    agent_session_id: str | None = None
    started_at: str
    context: TaskContext
    retry_count: int = Field(default=0, ge=0)


class CompletedTask(_Strict):
    step_index: int = Field(..., ge=0)
    status: Literal["completed"] = "completed"
    agent_session_id: str | None = None
    started_at: str
    completed_at: str
    context: TaskContext
    output: TaskOutput
    retry_count: int = Field(default=0, ge=0)


class FailedTask(_Strict):
    step_index: int = Field(..., ge=0)
    status: Literal["failed"] = "failed"
    agent_session_id: str | None = None
    started_at: str
    failed_at: str
    context: TaskContext
    error: str
    retry_count: int = Field(default=0, ge=0)


TaskRecord = Annotated[
    Union[PendingTask, RunningTask, CompletedTask, FailedTask],
    Field(discriminator="status"),
]

TaskStatus = Literal["pending", "running", "completed", "failed"]


# --- Execution status ---


class PendingExecution(_Strict):
    stage: Literal["pending"] = "pending"
    updated_at: str


class RunningExecution(_Strict):
    stage: Literal["running"] = "running"
    updated_at: str


class CompletedExecution(_Strict):
    stage: Literal["completed"] = "completed"
    updated_at: str


class FailedExecution(_Strict):
    stage: Literal["failed"] = "failed"
    error: str
    failed_step: int = Field(..., ge=0)
    user_stop_reason: str | None = Field(
        default=None, description="User context when they chose to stop"
    )
    updated_at: str


class StoppedExecution(_Strict):
    stage: Literal["stopped"] = "stopped"
    reason: str
    updated_at: str


ExecutionStatus = Annotated[
    Union[
        PendingExecution,
        RunningExecution,
        CompletedExecution,
        FailedExecution,
        StoppedExecution,
    ],
    Field(discriminator="stage"),
]

ExecutionStage = Literal["pending", "running", "completed", "failed", "stopped"]


class PlanExecution(_Strict):
    """One run of an approved plan.

    ``tasks[i]`` always tracks ``plan.steps[i]``.
    """

    execution_id: str
    plan_id: str
    created_at: str
    status: ExecutionStatus
    tasks: list[TaskRecord] = Field(
        default_factory=list, description="Execution state for each plan step"
    )


class ExecutionSummary(BaseModel):
    """Lightweight listing entry for an execution."""

    execution_id: str
    plan_id: str
    stage: ExecutionStage
    created_at: str
    tasks_completed: int
    tasks_total: int


class TaskWithDefinition(BaseModel):
    """A claimed task together with the plan step it runs."""

    record: RunningTask
    definition: PlanStep
