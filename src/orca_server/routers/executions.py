"""Executions router for plan runs and per-step task state.

Endpoints operate on the executions of one plan. The low-level endpoints
(claim, start/complete/fail task) let an external orchestrator drive an
execution; ``POST /plans/{plan_id}/run`` runs the whole plan server-side.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from orca_server.dependencies import get_execution_service, get_orca_service
from orca_server.execution import ExecutionService, PlanExecution
from orca_server.models.executions import (
    ClaimTaskRequest,
    ClaimTaskResponse,
    CompleteTaskRequest,
    ExecutionListResponse,
    FailExecutionRequest,
    FailTaskRequest,
    RunExecutionRequest,
    RunExecutionResponse,
    StartTaskRequest,
    StepResultResponse,
    StopExecutionRequest,
)
from orca_server.protocol import envelope_to_dict
from orca_server.routers.errors import to_http_exception
from orca_server.services import OrcaService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/plans/{plan_id}", tags=["executions"])

ExecutionDep = Annotated[ExecutionService, Depends(get_execution_service)]


@router.get("/executions", response_model=ExecutionListResponse, summary="List executions")
async def list_executions(plan_id: str, executions: ExecutionDep) -> ExecutionListResponse:
    try:
        return ExecutionListResponse(executions=await executions.list_executions())
    except Exception as e:
        raise to_http_exception(e, f"list executions of plan {plan_id}") from e


@router.post(
    "/executions",
    response_model=PlanExecution,
    status_code=status.HTTP_201_CREATED,
    summary="Create an execution of an approved plan",
)
async def create_execution(plan_id: str, executions: ExecutionDep) -> PlanExecution:
    try:
        return await executions.create()
    except Exception as e:
        raise to_http_exception(e, f"create execution of plan {plan_id}") from e


@router.get(
    "/executions/latest",
    response_model=PlanExecution,
    summary="Get the most recent execution",
)
async def get_latest_execution(plan_id: str, executions: ExecutionDep) -> PlanExecution:
    try:
        execution = await executions.get_latest_execution()
    except Exception as e:
        raise to_http_exception(e, f"get latest execution of plan {plan_id}") from e

    if execution is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No executions for plan: {plan_id}",
        )
    return execution


@router.get("/executions/{execution_id}", response_model=PlanExecution, summary="Get an execution")
async def get_execution(execution_id: str, executions: ExecutionDep) -> PlanExecution:
    try:
        return executions.get_execution_or_raise(execution_id)
    except Exception as e:
        raise to_http_exception(e, f"get execution {execution_id}") from e


# --- Execution transitions ---


@router.post("/executions/{execution_id}/start", response_model=PlanExecution)
async def start_execution(execution_id: str, executions: ExecutionDep) -> PlanExecution:
    try:
        return await executions.start(execution_id)
    except Exception as e:
        raise to_http_exception(e, f"start execution {execution_id}") from e


@router.post("/executions/{execution_id}/complete", response_model=PlanExecution)
async def complete_execution(execution_id: str, executions: ExecutionDep) -> PlanExecution:
    try:
        return await executions.complete(execution_id)
    except Exception as e:
        raise to_http_exception(e, f"complete execution {execution_id}") from e


@router.post("/executions/{execution_id}/fail", response_model=PlanExecution)
async def fail_execution(
    execution_id: str, request: FailExecutionRequest, executions: ExecutionDep
) -> PlanExecution:
    try:
        return await executions.fail(
            execution_id,
            error=request.error,
            failed_step=request.failed_step,
            user_stop_reason=request.user_stop_reason,
        )
    except Exception as e:
        raise to_http_exception(e, f"fail execution {execution_id}") from e


@router.post("/executions/{execution_id}/stop", response_model=PlanExecution)
async def stop_execution(
    execution_id: str, request: StopExecutionRequest, executions: ExecutionDep
) -> PlanExecution:
    try:
        return await executions.stop(execution_id, request.reason)
    except Exception as e:
        raise to_http_exception(e, f"stop execution {execution_id}") from e


# --- Tasks ---


@router.post(
    "/executions/{execution_id}/claim",
    response_model=ClaimTaskResponse,
    summary="Claim the next pending task",
)
async def claim_next_task(
    execution_id: str, request: ClaimTaskRequest, executions: ExecutionDep
) -> ClaimTaskResponse:
    """Mark the lowest-index pending task running.

    Returns a null task when the execution is not running or nothing is pending.
    """
    try:
        return ClaimTaskResponse(
            task=await executions.claim_next_task(execution_id, request.context)
        )
    except Exception as e:
        raise to_http_exception(e, f"claim task of execution {execution_id}") from e


@router.post("/executions/{execution_id}/tasks/{index}/start", response_model=PlanExecution)
async def start_task(
    execution_id: str, index: int, request: StartTaskRequest, executions: ExecutionDep
) -> PlanExecution:
    try:
        return await executions.start_task(
            execution_id, index, request.context, session_id=request.session_id
        )
    except Exception as e:
        raise to_http_exception(e, f"start task {index} of execution {execution_id}") from e


@router.post("/executions/{execution_id}/tasks/{index}/complete", response_model=PlanExecution)
async def complete_task(
    execution_id: str, index: int, request: CompleteTaskRequest, executions: ExecutionDep
) -> PlanExecution:
    try:
        return await executions.complete_task(execution_id, index, request.output)
    except Exception as e:
        raise to_http_exception(e, f"complete task {index} of execution {execution_id}") from e


@router.post("/executions/{execution_id}/tasks/{index}/fail", response_model=PlanExecution)
async def fail_task(
    execution_id: str, index: int, request: FailTaskRequest, executions: ExecutionDep
) -> PlanExecution:
    try:
        return await executions.fail_task(execution_id, index, request.error)
    except Exception as e:
        raise to_http_exception(e, f"fail task {index} of execution {execution_id}") from e


# --- Server-side run ---


@router.post("/run", response_model=RunExecutionResponse, summary="Run an approved plan")
async def run_plan(
    plan_id: str,
    orca: Annotated[OrcaService, Depends(get_orca_service)],
    request: RunExecutionRequest | None = None,
) -> RunExecutionResponse:
    """Create an execution and dispatch every step to its agent in order.

    Args:
        plan_id: The approved plan to run
        orca: Injected OrcaService
        request: Optional run options

    Returns:
        Final execution state and the envelope returned for each step
    """
    request = request or RunExecutionRequest()
    try:
        outcome = await orca.run_execution(
            plan_id, approve_all=request.approve_all, session_id=request.session_id
        )
    except Exception as e:
        raise to_http_exception(e, f"run plan {plan_id}") from e

    return RunExecutionResponse(
        execution=outcome.execution,
        steps=[
            StepResultResponse(
                step_index=step.step_index,
                agent=step.agent,
                session_id=step.session_id,
                result=envelope_to_dict(step.envelope),
            )
            for step in outcome.steps
        ],
    )
