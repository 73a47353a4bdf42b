"""Execution service: runs of an approved plan and their per-step tasks.

Execution stages::

    pending --start--> running --complete--> completed
                          |------fail------> failed
                          +------stop------> stopped

Task statuses::

    pending --claim/start--> running --complete_task--> completed
                               |  ^
                      fail_task|  |start_task (retry_count + 1)
                               v  |
                              failed

Every mutation reads the whole execution document, checks its guard and
writes a whole new document. Storage is single-writer: two concurrent claims
on the same execution may return the same task.
"""

import logging
from pathlib import Path

from orca_server.errors import ExecutionNotFoundError, StageError, StepIndexError
from orca_server.execution.storage import ExecutionStore
from orca_server.execution.types import (
    CompletedExecution,
    CompletedTask,
    ExecutionSummary,
    FailedExecution,
    FailedTask,
    PendingExecution,
    PendingTask,
    PlanExecution,
    RunningExecution,
    RunningTask,
    StoppedExecution,
    TaskContext,
    TaskOutput,
    TaskWithDefinition,
)
from orca_server.identifier import generate_id
from orca_server.planning.service import PlanningService
from orca_server.protocol.messages import utc_now

logger = logging.getLogger(__name__)


class ExecutionService:
    """Manages the executions of one plan."""

    def __init__(
        self,
        working_dir: Path,
        plan_id: str,
        planning_service: PlanningService | None = None,
    ):
        """Initialize the ExecutionService.

        Args:
            working_dir: Project working directory
            plan_id: The plan whose executions are managed
            planning_service: Optional shared PlanningService for the same directory
        """
        self.plan_id = plan_id
        self.planning_service = planning_service or PlanningService(working_dir)
        self.store = ExecutionStore(working_dir, plan_id)

    async def create(self) -> PlanExecution:
        """Create a pending execution with one pending task per plan step.

        Raises:
            PlanNotFoundError: If the plan does not exist
            StageError: If the plan is not approved
        """
        plan = self.planning_service.get_plan_or_raise(self.plan_id)
        if plan.stage != "approved":
            raise StageError(f"Cannot execute plan in stage: {plan.stage}")

        now = utc_now()
        execution = PlanExecution(
            execution_id=generate_id("exec"),
            plan_id=self.plan_id,
            created_at=now,
            status=PendingExecution(updated_at=now),
            tasks=[PendingTask(step_index=i) for i in range(len(plan.steps))],
        )
        self.store.write(execution)
        logger.info(
            f"Created execution {execution.execution_id} for plan {self.plan_id} "
            f"({len(execution.tasks)} tasks)"
        )
        return execution

    async def get_execution(self, execution_id: str) -> PlanExecution | None:
        return self.store.read(execution_id)

    async def get_latest_execution(self) -> PlanExecution | None:
        execution_id = self.store.latest_id()
        if execution_id is None:
            return None
        return self.store.read(execution_id)

    def get_execution_or_raise(self, execution_id: str) -> PlanExecution:
        execution = self.store.read(execution_id)
        if execution is None:
            raise ExecutionNotFoundError(execution_id)
        return execution

    async def start(self, execution_id: str) -> PlanExecution:
        execution = self.get_execution_or_raise(execution_id)
        if execution.status.stage != "pending":
            raise StageError(f"Cannot start execution in stage: {execution.status.stage}")

        updated = execution.model_copy(update={"status": RunningExecution(updated_at=utc_now())})
        self.store.write(updated)
        logger.info(f"Started execution {execution_id}")
        return updated

    async def claim_next_task(
        self, execution_id: str, context: TaskContext
    ) -> TaskWithDefinition | None:
        """Claim the lowest-index pending task and mark it running.

        Returns:
            The running task and its plan step, or None if the execution is
            not running or no task is pending
        """
        execution = self.get_execution_or_raise(execution_id)
        if execution.status.stage != "running":
            return None

        plan = self.planning_service.get_plan_or_raise(self.plan_id)

        pending_index = next(
            (i for i, task in enumerate(execution.tasks) if task.status == "pending"),
            None,
        )
        if pending_index is None:
            return None

        running = RunningTask(
            step_index=pending_index,
            started_at=utc_now(),
            context=context,
            retry_count=self._next_retry_count(execution.tasks[pending_index]),
        )
        self._replace_task(execution, pending_index, running)
        logger.debug(f"Claimed task {pending_index} of execution {execution_id}")

        return TaskWithDefinition(record=running, definition=plan.steps[pending_index])

    async def start_task(
        self,
        execution_id: str,
        step_index: int,
        context: TaskContext,
        session_id: str | None = None,
    ) -> PlanExecution:
        """Start (or restart) the task at step_index.

        Raises:
            StepIndexError: If step_index does not exist
            StageError: If the task is neither pending nor failed
        """
        execution = self.get_execution_or_raise(execution_id)
        task = self._task_at(execution, step_index)
        if task.status not in ("pending", "failed"):
            raise StageError(f"Cannot start task in status: {task.status}")

        running = RunningTask(
            step_index=step_index,
            agent_session_id=session_id,
            started_at=utc_now(),
            context=context,
            retry_count=self._next_retry_count(task),
        )
        updated = self._replace_task(execution, step_index, running)
        logger.debug(
            f"Started task {step_index} of execution {execution_id} "
            f"(retry_count={running.retry_count})"
        )
        return updated

    async def set_task_session(
        self, execution_id: str, step_index: int, session_id: str
    ) -> PlanExecution:
        """Record the agent session a running task is using."""
        execution = self.get_execution_or_raise(execution_id)
        task = self._running_task(execution, step_index)
        return self._replace_task(
            execution, step_index, task.model_copy(update={"agent_session_id": session_id})
        )

    async def complete_task(
        self, execution_id: str, step_index: int, output: TaskOutput
    ) -> PlanExecution:
        execution = self.get_execution_or_raise(execution_id)
        task = self._running_task(execution, step_index)

        completed = CompletedTask(
            step_index=step_index,
            agent_session_id=task.agent_session_id,
            started_at=task.started_at,
            completed_at=utc_now(),
            context=task.context,
            output=output,
            retry_count=task.retry_count,
        )
        updated = self._replace_task(execution, step_index, completed)
        logger.info(f"Completed task {step_index} of execution {execution_id}")
        return updated

    async def fail_task(self, execution_id: str, step_index: int, error: str) -> PlanExecution:
        execution = self.get_execution_or_raise(execution_id)
        task = self._running_task(execution, step_index)

        failed = FailedTask(
            step_index=step_index,
            agent_session_id=task.agent_session_id,
            started_at=task.started_at,
            failed_at=utc_now(),
            context=task.context,
            error=error,
            retry_count=task.retry_count,
        )
        updated = self._replace_task(execution, step_index, failed)
        logger.warning(f"Task {step_index} of execution {execution_id} failed: {error}")
        return updated

    async def complete(self, execution_id: str) -> PlanExecution:
        execution = self.get_execution_or_raise(execution_id)
        if execution.status.stage != "running":
            raise StageError(f"Cannot complete execution in stage: {execution.status.stage}")
        if not all(task.status == "completed" for task in execution.tasks):
            raise StageError("Cannot complete execution with incomplete tasks")

        updated = execution.model_copy(
            update={"status": CompletedExecution(updated_at=utc_now())}
        )
        self.store.write(updated)
        logger.info(f"Completed execution {execution_id}")
        return updated

    async def fail(
        self,
        execution_id: str,
        error: str,
        failed_step: int,
        user_stop_reason: str | None = None,
    ) -> PlanExecution:
        execution = self.get_execution_or_raise(execution_id)
        if execution.status.stage != "running":
            raise StageError(f"Cannot fail execution in stage: {execution.status.stage}")

        updated = execution.model_copy(
            update={
                "status": FailedExecution(
                    error=error,
                    failed_step=failed_step,
                    user_stop_reason=user_stop_reason,
                    updated_at=utc_now(),
                )
            }
        )
        self.store.write(updated)
        logger.warning(f"Execution {execution_id} failed at step {failed_step}: {error}")
        return updated

    async def stop(self, execution_id: str, reason: str) -> PlanExecution:
        execution = self.get_execution_or_raise(execution_id)
        if execution.status.stage != "running":
            raise StageError(f"Cannot stop execution in stage: {execution.status.stage}")

        updated = execution.model_copy(
            update={"status": StoppedExecution(reason=reason, updated_at=utc_now())}
        )
        self.store.write(updated)
        logger.info(f"Stopped execution {execution_id}: {reason}")
        return updated

    async def list_executions(self) -> list[ExecutionSummary]:
        """List execution summaries for the plan, newest first."""
        summaries: list[ExecutionSummary] = []

        for execution_id in self.store.list_ids():
            execution = self.store.read(execution_id)
            if execution is None:
                continue
            summaries.append(
                ExecutionSummary(
                    execution_id=execution.execution_id,
                    plan_id=execution.plan_id,
                    stage=execution.status.stage,
                    created_at=execution.created_at,
                    tasks_completed=sum(
                        1 for task in execution.tasks if task.status == "completed"
                    ),
                    tasks_total=len(execution.tasks),
                )
            )

        summaries.sort(key=lambda s: s.execution_id, reverse=True)
        return summaries

    # --- Helpers ---

    @staticmethod
    def _next_retry_count(task) -> int:
        return task.retry_count + 1 if task.status == "failed" else 0

    @staticmethod
    def _task_at(execution: PlanExecution, step_index: int):
        if step_index < 0 or step_index >= len(execution.tasks):
            raise StepIndexError(f"Invalid step index: {step_index}")
        return execution.tasks[step_index]

    def _running_task(self, execution: PlanExecution, step_index: int) -> RunningTask:
        task = self._task_at(execution, step_index)
        if task.status != "running":
            raise StageError(f"Task {step_index} is not running")
        return task

    def _replace_task(self, execution: PlanExecution, step_index: int, task) -> PlanExecution:
        tasks = list(execution.tasks)
        tasks[step_index] = task
        updated = execution.model_copy(update={"tasks": tasks})
        self.store.write(updated)
        return updated
