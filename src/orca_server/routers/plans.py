"""Plans router for plan CRUD and stage transitions.

This module provides REST API endpoints for:
- Creating drafts and complete proposals
- Listing, retrieving and deleting plans
- Editing draft steps, assumptions, risks and verification
- Submitting, revising, approving and rejecting plans
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, status

from orca_server.dependencies import get_planning_service
from orca_server.models.plans import (
    AddStepRequest,
    CreateDraftRequest,
    CreateProposalRequest,
    PlanListResponse,
    RejectPlanRequest,
    StringListRequest,
    SubmitPlanRequest,
    UpdateStepRequest,
)
from orca_server.planning import Plan, PlanContent, PlanningService
from orca_server.routers.errors import to_http_exception

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/plans", tags=["plans"])

PlanningDep = Annotated[PlanningService, Depends(get_planning_service)]


@router.get("", response_model=PlanListResponse, summary="List all plans")
async def list_plans(planning: PlanningDep) -> PlanListResponse:
    """List plan summaries, newest first."""
    try:
        return PlanListResponse(plans=await planning.list_plans())
    except Exception as e:
        raise to_http_exception(e, "list plans") from e


@router.post(
    "",
    response_model=Plan,
    status_code=status.HTTP_201_CREATED,
    summary="Create a draft plan",
)
async def create_draft(request: CreateDraftRequest, planning: PlanningDep) -> Plan:
    try:
        return await planning.create_draft(request.session_id, request.goal)
    except Exception as e:
        raise to_http_exception(e, "create draft") from e


@router.post(
    "/proposals",
    response_model=Plan,
    status_code=status.HTTP_201_CREATED,
    summary="Store a complete plan as a proposal",
)
async def create_proposal(request: CreateProposalRequest, planning: PlanningDep) -> Plan:
    """Store a fully formed plan directly in the proposal stage.

    Args:
        request: Owning session plus the complete plan content
        planning: Injected PlanningService

    Returns:
        The stored proposal
    """
    try:
        content = PlanContent.model_validate(request.model_dump(exclude={"session_id"}))
        return await planning.create_proposal(request.session_id, content)
    except Exception as e:
        raise to_http_exception(e, "create proposal") from e


@router.get("/{plan_id}", response_model=Plan, summary="Get a plan")
async def get_plan(plan_id: str, planning: PlanningDep) -> Plan:
    try:
        return planning.get_plan_or_raise(plan_id)
    except Exception as e:
        raise to_http_exception(e, f"get plan {plan_id}") from e


@router.delete(
    "/{plan_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a plan and its executions",
)
async def delete_plan(plan_id: str, planning: PlanningDep) -> None:
    try:
        await planning.remove_plan(plan_id)
    except Exception as e:
        raise to_http_exception(e, f"delete plan {plan_id}") from e


@router.put("/{plan_id}", response_model=Plan, summary="Revise a proposal")
async def revise_plan(plan_id: str, content: PlanContent, planning: PlanningDep) -> Plan:
    """Replace the full content of a plan in the proposal stage."""
    try:
        return await planning.revise(plan_id, content)
    except Exception as e:
        raise to_http_exception(e, f"revise plan {plan_id}") from e


# --- Draft editing ---


@router.post("/{plan_id}/steps", response_model=Plan, summary="Add a step to a draft")
async def add_step(plan_id: str, request: AddStepRequest, planning: PlanningDep) -> Plan:
    try:
        return await planning.add_step(plan_id, request.step, request.position)
    except Exception as e:
        raise to_http_exception(e, f"add step to plan {plan_id}") from e


@router.patch("/{plan_id}/steps/{index}", response_model=Plan, summary="Update a draft step")
async def update_step(
    plan_id: str, index: int, request: UpdateStepRequest, planning: PlanningDep
) -> Plan:
    try:
        return await planning.update_step(plan_id, index, request.model_dump(exclude_unset=True))
    except Exception as e:
        raise to_http_exception(e, f"update step {index} of plan {plan_id}") from e


@router.delete("/{plan_id}/steps/{index}", response_model=Plan, summary="Remove a draft step")
async def remove_step(plan_id: str, index: int, planning: PlanningDep) -> Plan:
    try:
        return await planning.remove_step(plan_id, index)
    except Exception as e:
        raise to_http_exception(e, f"remove step {index} of plan {plan_id}") from e


@router.put("/{plan_id}/assumptions", response_model=Plan, summary="Set draft assumptions")
async def set_assumptions(
    plan_id: str, request: StringListRequest, planning: PlanningDep
) -> Plan:
    try:
        return await planning.set_plan_assumptions(plan_id, request.items)
    except Exception as e:
        raise to_http_exception(e, f"set assumptions of plan {plan_id}") from e


@router.put("/{plan_id}/risks", response_model=Plan, summary="Set draft risks")
async def set_risks(plan_id: str, request: StringListRequest, planning: PlanningDep) -> Plan:
    try:
        return await planning.set_plan_risks(plan_id, request.items)
    except Exception as e:
        raise to_http_exception(e, f"set risks of plan {plan_id}") from e


@router.put("/{plan_id}/verification", response_model=Plan, summary="Set draft verification")
async def set_verification(
    plan_id: str, request: StringListRequest, planning: PlanningDep
) -> Plan:
    try:
        return await planning.set_plan_verification(plan_id, request.items)
    except Exception as e:
        raise to_http_exception(e, f"set verification of plan {plan_id}") from e


@router.put("/{plan_id}/files", response_model=Plan, summary="Set files touched by a draft")
async def set_files_touched(
    plan_id: str, request: StringListRequest, planning: PlanningDep
) -> Plan:
    try:
        return await planning.set_files_touched(plan_id, request.items)
    except Exception as e:
        raise to_http_exception(e, f"set files of plan {plan_id}") from e


# --- Stage transitions ---


@router.post("/{plan_id}/submit", response_model=Plan, summary="Submit a draft")
async def submit_plan(
    plan_id: str, planning: PlanningDep, request: SubmitPlanRequest | None = None
) -> Plan:
    """Move a complete draft to the proposal stage.

    Raises:
        HTTPException: 400 if required fields are empty, 409 if not a draft
    """
    try:
        return await planning.submit(plan_id, request.summary if request else None)
    except Exception as e:
        raise to_http_exception(e, f"submit plan {plan_id}") from e


@router.post("/{plan_id}/approve", response_model=Plan, summary="Approve a proposal")
async def approve_plan(plan_id: str, planning: PlanningDep) -> Plan:
    try:
        return await planning.approve(plan_id)
    except Exception as e:
        raise to_http_exception(e, f"approve plan {plan_id}") from e


@router.post("/{plan_id}/reject", response_model=Plan, summary="Reject a proposal")
async def reject_plan(
    plan_id: str, planning: PlanningDep, request: RejectPlanRequest | None = None
) -> Plan:
    try:
        return await planning.reject(plan_id, request.reason if request else None)
    except Exception as e:
        raise to_http_exception(e, f"reject plan {plan_id}") from e
