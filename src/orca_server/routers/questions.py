"""Questions router for human-in-the-loop answers.

Agents' questions are posted to the question board. Clients list them, follow
new activity over Server-Sent Events, and reply or reject; the outcome is
forwarded to the HITL service waiting on the question.
"""

import asyncio
import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sse_starlette.sse import EventSourceResponse

from orca_server.dependencies import get_hitl_service, get_question_board
from orca_server.hitl import HITLService
from orca_server.models.questions import (
    QuestionEvent,
    QuestionItem,
    QuestionListResponse,
    QuestionResolvedResponse,
    ReplyRequest,
)
from orca_server.runtime import AskedQuestion, QuestionBoard

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/questions", tags=["questions"])

# How often an idle event stream checks for a client disconnect
DISCONNECT_POLL_SECONDS = 1.0


def _to_item(asked: AskedQuestion) -> QuestionItem:
    return QuestionItem(
        question_id=asked.question_id,
        session_id=asked.session_id,
        questions=asked.questions,
        asked_at=asked.asked_at,
    )


@router.get("", response_model=QuestionListResponse, summary="List open questions")
async def list_questions(
    board: Annotated[QuestionBoard, Depends(get_question_board)],
) -> QuestionListResponse:
    return QuestionListResponse(questions=[_to_item(q) for q in board.list_questions()])


@router.get("/events", summary="Stream question activity")
async def question_events(
    request: Request,
    board: Annotated[QuestionBoard, Depends(get_question_board)],
) -> EventSourceResponse:
    """Stream question events via Server-Sent Events (SSE).

    Open questions are replayed as ``question.asked`` events first, then
    ``question.asked``, ``question.replied``, ``question.rejected`` and
    ``question.timeout`` events are emitted as they happen.

    Args:
        request: FastAPI request object
        board: Injected QuestionBoard

    Returns:
        EventSourceResponse with SSE events
    """

    async def event_generator():
        """Generate SSE events from the question board."""
        queue = board.subscribe()
        try:
            for asked in board.list_questions():
                event = QuestionEvent(type="question.asked", **_to_item(asked).model_dump())
                yield {"event": event.type, "data": event.model_dump_json(exclude_none=True)}

            while True:
                if await request.is_disconnected():
                    logger.debug("Client disconnected from question events")
                    break

                try:
                    payload = await asyncio.wait_for(queue.get(), timeout=DISCONNECT_POLL_SECONDS)
                except asyncio.TimeoutError:
                    continue

                event = QuestionEvent.model_validate(payload)
                yield {"event": event.type, "data": event.model_dump_json(exclude_none=True)}
        finally:
            board.unsubscribe(queue)

    return EventSourceResponse(event_generator())


@router.post(
    "/{question_id}/reply",
    response_model=QuestionResolvedResponse,
    summary="Answer a question",
)
async def reply_to_question(
    question_id: str,
    request: ReplyRequest,
    board: Annotated[QuestionBoard, Depends(get_question_board)],
    hitl: Annotated[HITLService, Depends(get_hitl_service)],
) -> QuestionResolvedResponse:
    """Answer an open question.

    Raises:
        HTTPException: 404 if the question is not open
    """
    if board.resolve(question_id, "replied", answers=request.answers) is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Question not found: {question_id}",
        )

    resolved = hitl.handle_question_replied(question_id, request.answers)
    return QuestionResolvedResponse(question_id=question_id, resolved=resolved)


@router.post(
    "/{question_id}/reject",
    response_model=QuestionResolvedResponse,
    summary="Reject a question",
)
async def reject_question(
    question_id: str,
    board: Annotated[QuestionBoard, Depends(get_question_board)],
    hitl: Annotated[HITLService, Depends(get_hitl_service)],
) -> QuestionResolvedResponse:
    if board.resolve(question_id, "rejected") is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Question not found: {question_id}",
        )

    resolved = hitl.handle_question_rejected(question_id)
    return QuestionResolvedResponse(question_id=question_id, resolved=resolved)
