"""Orchestration of the plan lifecycle across agents.

OrcaService ties the pieces together: user messages go to the planner, plan
envelopes become stored proposals, and approved plans are executed one step
at a time by dispatching each step to its specialist agent.
"""

import asyncio
import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

from pydantic import BaseModel

from orca_server.dispatch.service import DispatchService
from orca_server.dispatch.types import DispatchContext, DispatchResult, TaskRequest
from orca_server.execution.service import ExecutionService
from orca_server.execution.types import (
    PlanExecution,
    PreviousTaskSummary,
    TaskContext,
    TaskOutput,
)
from orca_server.hitl.service import HITLService
from orca_server.hitl.types import HITLOption, HITLQuestion
from orca_server.planning.service import PlanningService
from orca_server.planning.types import Plan, PlanContent
from orca_server.protocol.messages import (
    AnswerMessage,
    CheckpointMessage,
    FailureMessage,
    InterruptMessage,
    PlanContext,
    PlanMessage,
    QuestionMessage,
    SuccessMessage,
    TaskMessage,
)
from orca_server.runtime.types import AgentRuntime

logger = logging.getLogger(__name__)

PLANNER_AGENT = "planner"
MAX_QUESTION_ROUNDS = 3
QUESTION_HEADER_LENGTH = 30
MAX_PLANNER_SESSIONS = 256

InvokeKind = Literal["plan_submitted", "answer", "checkpoint", "failure"]


@dataclass
class InvokeOutcome:
    """What came back from the planner for one user message."""

    kind: InvokeKind
    session_id: str
    planner_session_id: str | None
    envelope: BaseModel
    plan: Plan | None = None


@dataclass
class StepResult:
    step_index: int
    agent: str
    envelope: BaseModel
    session_id: str | None = None


@dataclass
class ExecutionOutcome:
    """Final state of an execution run plus every step's envelope."""

    execution: PlanExecution
    steps: list[StepResult] = field(default_factory=list)


class OrcaService:
    """Coordinates the planner, the specialists and the stored plans."""

    def __init__(
        self,
        runtime: AgentRuntime,
        dispatch: DispatchService,
        planning: PlanningService,
        working_dir: Path,
        hitl: HITLService | None = None,
        max_planner_sessions: int = MAX_PLANNER_SESSIONS,
    ):
        """Initialize the OrcaService.

        Args:
            runtime: Agent runtime, used to create coordinator sessions
            dispatch: Dispatch service for planner and specialist calls
            planning: Planning service for the same working directory
            working_dir: Project working directory
            hitl: Optional HITL service for questions raised during execution
            max_planner_sessions: How many coordinator sessions keep their planner session
        """
        self.runtime = runtime
        self.dispatch = dispatch
        self.planning = planning
        self.working_dir = Path(working_dir)
        self.hitl = hitl
        self._active: dict[str, asyncio.Event] = {}
        self._interrupt_reasons: dict[str, str] = {}
        self.max_planner_sessions = max_planner_sessions
        self._planner_sessions: OrderedDict[str, str] = OrderedDict()

    def executions(self, plan_id: str) -> ExecutionService:
        return ExecutionService(self.working_dir, plan_id, planning_service=self.planning)

    # --- Planner ---

    async def invoke(self, message: str, session_id: str | None = None) -> InvokeOutcome:
        """Send a user message to the planner.

        Args:
            message: The user's request
            session_id: Coordinator session to continue (created if omitted)

        Returns:
            InvokeOutcome; a plan envelope is stored as a proposal first
        """
        session_id = session_id or await self._coordinator_session()

        async with self._track(session_id) as ctx:
            result = await self.dispatch.dispatch_task(
                ctx,
                TaskRequest(
                    agent=PLANNER_AGENT,
                    description=message,
                    session_id=self._planner_sessions.get(session_id),
                ),
            )

        if result.session_id:
            self._remember_planner_session(session_id, result.session_id)

        envelope = result.result
        if isinstance(envelope, PlanMessage):
            plan = await self.planning.create_proposal(
                result.session_id or session_id, PlanContent.from_message(envelope)
            )
            logger.info(f"Planner proposed plan {plan.plan_id}")
            return InvokeOutcome(
                kind="plan_submitted",
                session_id=session_id,
                planner_session_id=result.session_id,
                envelope=envelope,
                plan=plan,
            )

        return InvokeOutcome(
            kind=self._invoke_kind(envelope),
            session_id=session_id,
            planner_session_id=result.session_id,
            envelope=envelope,
        )

    # --- Execution ---

    async def run_execution(
        self,
        plan_id: str,
        approve_all: bool = False,
        session_id: str | None = None,
    ) -> ExecutionOutcome:
        """Create and run an execution of an approved plan.

        Steps run strictly one after another. A failure fails the execution,
        a checkpoint stops it unless ``approve_all`` is set, and an interrupt
        stops it with the interrupt reason. Any other error fails the running
        task and the execution before it propagates.

        Raises:
            PlanNotFoundError: If the plan does not exist
            StageError: If the plan is not approved
        """
        service = self.executions(plan_id)
        plan = self.planning.get_plan_or_raise(plan_id)
        session_id = session_id or await self._coordinator_session()

        execution = await service.create()
        execution = await service.start(execution.execution_id)
        execution_id = execution.execution_id
        outcome = ExecutionOutcome(execution=execution)
        step_index = 0

        try:
            async with self._track(session_id) as ctx:
                while True:
                    execution = service.get_execution_or_raise(execution_id)
                    next_index = next(
                        (i for i, task in enumerate(execution.tasks) if task.status == "pending"),
                        None,
                    )
                    if next_index is None:
                        break

                    step_index = next_index
                    claimed = await service.claim_next_task(
                        execution_id, self._build_context(plan, execution, next_index)
                    )
                    if claimed is None:
                        break

                    step_index = claimed.record.step_index
                    step = claimed.definition
                    result = await self._run_step(ctx, plan, step_index, approve_all)
                    outcome.steps.append(
                        StepResult(
                            step_index=step_index,
                            agent=step.agent,
                            envelope=result.result,
                            session_id=result.session_id,
                        )
                    )
                    if result.session_id:
                        await service.set_task_session(execution_id, step_index, result.session_id)

                    finished = await self._record_step(
                        service, execution_id, step_index, result.result, session_id
                    )
                    if finished is not None:
                        outcome.execution = finished
                        return outcome

            outcome.execution = await service.complete(execution_id)
            return outcome
        except Exception as e:
            logger.error(f"Execution {execution_id} aborted at step {step_index}: {e}", exc_info=True)
            await self._abandon_run(service, execution_id, step_index, str(e))
            raise

    async def _abandon_run(
        self, service: ExecutionService, execution_id: str, step_index: int, error: str
    ) -> None:
        """Fail the running task and the execution after an unexpected error."""
        execution = await service.get_execution(execution_id)
        if execution is None or execution.status.stage != "running":
            return

        if execution.tasks[step_index].status == "running":
            await service.fail_task(execution_id, step_index, error)
        await service.fail(execution_id, error=error, failed_step=step_index)

    async def _run_step(
        self,
        ctx: DispatchContext,
        plan: Plan,
        step_index: int,
        approve_all: bool,
    ) -> DispatchResult:
        step = plan.steps[step_index]
        logger.info(f"Running step {step_index} of plan {plan.plan_id} with {step.agent}")

        request = TaskRequest(
            agent=step.agent,
            description=step.description,
            command=step.command,
            plan_context=PlanContext(
                goal=plan.goal, step_index=step_index, approved_remaining=approve_all
            ),
        )
        result = await self.dispatch.dispatch_task(ctx, request)

        rounds = 0
        while isinstance(result.result, QuestionMessage) and rounds < MAX_QUESTION_ROUNDS:
            reply = await self._ask_user(ctx, result.result)
            if reply is None:
                break
            rounds += 1
            # The gate was passed for this step when the question was raised
            result = await self.dispatch.dispatch_task(
                ctx,
                request.model_copy(
                    update={
                        "description": reply,
                        "command": None,
                        "session_id": result.session_id,
                        "plan_context": request.plan_context.model_copy(
                            update={"approved_remaining": True}
                        ),
                    }
                ),
            )

        return result

    async def _record_step(
        self,
        service: ExecutionService,
        execution_id: str,
        step_index: int,
        envelope: BaseModel,
        session_id: str,
    ) -> PlanExecution | None:
        """Write the step's outcome; returns the execution if the run is over."""
        if isinstance(envelope, SuccessMessage):
            await service.complete_task(
                execution_id,
                step_index,
                TaskOutput(
                    summary=envelope.summary,
                    artifacts=envelope.artifacts or [],
                    verification=envelope.verification,
                    key_findings=envelope.notes,
                    raw_response=envelope.model_dump_json(exclude_none=True),
                ),
            )
            return None

        if isinstance(envelope, AnswerMessage) and envelope.content:
            await service.complete_task(
                execution_id,
                step_index,
                TaskOutput(
                    summary=envelope.content,
                    raw_response=envelope.model_dump_json(exclude_none=True),
                ),
            )
            return None

        if isinstance(envelope, CheckpointMessage):
            await service.fail_task(execution_id, step_index, "Checkpoint not approved")
            return await service.stop(execution_id, f"Checkpoint: {envelope.prompt}")

        if session_id in self._interrupt_reasons:
            reason = self._interrupt_reasons[session_id]
            await service.fail_task(execution_id, step_index, f"Interrupted: {reason}")
            return await service.stop(execution_id, reason)

        if isinstance(envelope, FailureMessage):
            error = envelope.message if not envelope.cause else f"{envelope.message}: {envelope.cause}"
        elif isinstance(envelope, QuestionMessage):
            error = f"Unanswered question from agent: {envelope.question}"
        else:
            error = f"Unexpected response type: {envelope.type}"

        await service.fail_task(execution_id, step_index, error)
        return await service.fail(execution_id, error=error, failed_step=step_index)

    @staticmethod
    def _build_context(plan: Plan, execution: PlanExecution, step_index: int) -> TaskContext:
        previous = [
            PreviousTaskSummary(
                step_index=task.step_index,
                agent=plan.steps[task.step_index].agent,
                description=plan.steps[task.step_index].description,
                summary=task.output.summary,
                artifacts=task.output.artifacts,
                key_findings=task.output.key_findings,
            )
            for task in execution.tasks
            if task.status == "completed"
        ]
        return TaskContext(
            plan_id=plan.plan_id,
            plan_goal=plan.goal,
            step_index=step_index,
            total_steps=len(plan.steps),
            relevant_files=list(plan.files_touched),
            previous_tasks=previous,
        )

    async def _ask_user(self, ctx: DispatchContext, question: QuestionMessage) -> str | None:
        if self.hitl is None or ctx.parent_session_id is None:
            return None

        answer = await self.hitl.ask_user(
            ctx.parent_session_id,
            [
                HITLQuestion(
                    header=f"Question from {question.agent_id}"[:QUESTION_HEADER_LENGTH],
                    question=question.question,
                    options=[HITLOption(label=option) for option in question.options or []],
                    custom=True,
                )
            ],
        )
        if answer is None:
            return None

        selected = [label for labels in answer.answers for label in labels]
        if not selected:
            return None
        return "## Answer\n\n" + "\n".join(selected)

    # --- Envelopes and interrupts ---

    async def handle_request(self, envelope: TaskMessage | InterruptMessage) -> DispatchResult:
        """Handle a request envelope addressed to an agent.

        A task is dispatched with the envelope's session as parent; an
        interrupt aborts the active dispatch of that session.
        """
        if isinstance(envelope, InterruptMessage):
            interrupted = self.interrupt(envelope.session_id, envelope.reason)
            ack = AnswerMessage(
                agent_id=envelope.agent_id,
                content="Interrupted" if interrupted else "Nothing to interrupt",
            )
            return DispatchResult(result=ack, session_id=envelope.session_id)

        async with self._track(envelope.session_id) as ctx:
            return await self.dispatch.dispatch_task(ctx, TaskRequest.from_envelope(envelope))

    def interrupt(self, session_id: str, reason: str) -> bool:
        """Abort the dispatch running under a coordinator session.

        Returns:
            True if an active dispatch was signalled
        """
        event = self._active.get(session_id)
        if event is None:
            logger.warning(f"No active dispatch to interrupt for session {session_id}")
            return False

        self._interrupt_reasons[session_id] = reason
        event.set()
        logger.info(f"Interrupted session {session_id}: {reason}")
        return True

    def _remember_planner_session(self, session_id: str, planner_session_id: str) -> None:
        # Least recently used entries are dropped first
        self._planner_sessions[session_id] = planner_session_id
        self._planner_sessions.move_to_end(session_id)
        while len(self._planner_sessions) > self.max_planner_sessions:
            self._planner_sessions.popitem(last=False)

    def is_active(self, session_id: str) -> bool:
        return session_id in self._active

    def _track(self, session_id: str) -> "_ActiveDispatch":
        return _ActiveDispatch(self, session_id)

    async def _coordinator_session(self) -> str:
        session_id = await self.runtime.create_session(
            parent_id=None, directory=str(self.working_dir), title="Orca"
        )
        if not session_id:
            raise RuntimeError("Failed to create coordinator session")
        return session_id

    @staticmethod
    def _invoke_kind(envelope: BaseModel) -> InvokeKind:
        if isinstance(envelope, (AnswerMessage, QuestionMessage, SuccessMessage)):
            return "answer"
        if isinstance(envelope, CheckpointMessage):
            return "checkpoint"
        return "failure"


class _ActiveDispatch:
    """Registers an abort event for a session while work runs under it."""

    def __init__(self, service: OrcaService, session_id: str):
        self.service = service
        self.session_id = session_id

    async def __aenter__(self) -> DispatchContext:
        event = asyncio.Event()
        self.service._active[self.session_id] = event
        self.service._interrupt_reasons.pop(self.session_id, None)
        return DispatchContext(
            parent_session_id=self.session_id,
            directory=str(self.service.working_dir),
            abort=event,
        )

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.service._active.pop(self.session_id, None)
        self.service._interrupt_reasons.pop(self.session_id, None)
