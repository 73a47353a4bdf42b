"""Orca router: user messages to the planner and envelopes to agents."""

import json
import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Request

from orca_server.dependencies import get_dispatch_service, get_orca_service
from orca_server.dispatch import AgentQuestionRequest, DispatchContext, DispatchService
from orca_server.models.orca import (
    AskAgentRequest,
    DispatchResponse,
    InvokeRequest,
    InvokeResponse,
)
from orca_server.protocol import ErrorCode, create_failure, envelope_to_dict
from orca_server.protocol.validation import INVALID_JSON_ERROR, validate_request
from orca_server.routers.errors import to_http_exception
from orca_server.services import OrcaService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/orca", tags=["orca"])

OrcaDep = Annotated[OrcaService, Depends(get_orca_service)]


@router.post("/invoke", response_model=InvokeResponse, summary="Send a message to the planner")
async def invoke(request: InvokeRequest, orca: OrcaDep) -> InvokeResponse:
    """Send a user message to the planner.

    A plan returned by the planner is stored as a proposal and returned
    alongside the envelope.

    Args:
        request: The user's message and optional coordinator session
        orca: Injected OrcaService

    Returns:
        The kind of result, the sessions used, the envelope and any stored plan
    """
    try:
        outcome = await orca.invoke(request.message, session_id=request.session_id)
    except Exception as e:
        raise to_http_exception(e, "invoke planner") from e

    return InvokeResponse(
        type=outcome.kind,
        session_id=outcome.session_id,
        planner_session_id=outcome.planner_session_id,
        result=envelope_to_dict(outcome.envelope),
        plan=outcome.plan,
    )


@router.post("/dispatch", response_model=DispatchResponse, summary="Handle a request envelope")
async def dispatch(request: Request, orca: OrcaDep) -> DispatchResponse:
    """Handle a task or interrupt envelope.

    Malformed envelopes are answered with a VALIDATION_ERROR failure
    envelope rather than an HTTP error.
    """
    try:
        data = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return DispatchResponse(
            result=envelope_to_dict(
                create_failure(ErrorCode.VALIDATION_ERROR, "Invalid request envelope", INVALID_JSON_ERROR)
            )
        )

    validated = validate_request(data)
    if not validated.success:
        logger.warning(f"Rejected malformed request envelope: {validated.error}")
        return DispatchResponse(
            result=envelope_to_dict(
                create_failure(ErrorCode.VALIDATION_ERROR, "Invalid request envelope", validated.error)
            )
        )

    try:
        result = await orca.handle_request(validated.envelope)
    except Exception as e:
        raise to_http_exception(e, "dispatch envelope") from e

    return DispatchResponse(session_id=result.session_id, result=envelope_to_dict(result.result))


@router.post("/questions", response_model=DispatchResponse, summary="Ask an agent a question")
async def ask_agent(
    request: AskAgentRequest,
    dispatch_service: Annotated[DispatchService, Depends(get_dispatch_service)],
) -> DispatchResponse:
    try:
        result = await dispatch_service.dispatch_question(
            DispatchContext(parent_session_id=request.parent_session_id),
            AgentQuestionRequest(
                agent=request.agent,
                question=request.question,
                session_id=request.session_id,
            ),
        )
    except Exception as e:
        raise to_http_exception(e, f"ask {request.agent}") from e

    return DispatchResponse(session_id=result.session_id, result=envelope_to_dict(result.result))
