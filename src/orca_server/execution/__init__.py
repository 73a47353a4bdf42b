"""Plan executions and per-step task tracking."""

from orca_server.execution.service import ExecutionService
from orca_server.execution.storage import ExecutionStore
from orca_server.execution.types import (
    CompletedTask,
    ExecutionStage,
    ExecutionSummary,
    FailedTask,
    PendingTask,
    PlanExecution,
    PreviousAttempt,
    PreviousTaskSummary,
    RunningTask,
    TaskContext,
    TaskOutput,
    TaskRecord,
    TaskWithDefinition,
)

__all__ = [
    "ExecutionService",
    "ExecutionStore",
    "CompletedTask",
    "ExecutionStage",
    "ExecutionSummary",
    "FailedTask",
    "PendingTask",
    "PlanExecution",
    "PreviousAttempt",
    "PreviousTaskSummary",
    "RunningTask",
    "TaskContext",
    "TaskOutput",
    "TaskRecord",
    "TaskWithDefinition",
]
