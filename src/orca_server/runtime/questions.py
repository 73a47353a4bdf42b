"""In-memory board of questions waiting for a human.

The board is the user-facing side of HITL: it hands out question IDs, lists
open questions, and pushes events to subscribers (the SSE stream). Resolving
a question here only updates the board; the caller forwards the outcome to
the HITL service.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

from orca_server.hitl.types import HITLQuestion
from orca_server.identifier import generate_id
from orca_server.protocol.messages import utc_now

logger = logging.getLogger(__name__)


@dataclass
class AskedQuestion:
    question_id: str
    session_id: str
    questions: list[HITLQuestion]
    asked_at: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "question_id": self.question_id,
            "session_id": self.session_id,
            "questions": [q.model_dump(exclude_none=True) for q in self.questions],
            "asked_at": self.asked_at,
        }


class QuestionBoard:
    """Open questions plus event fan-out to subscribers."""

    def __init__(self) -> None:
        self._questions: dict[str, AskedQuestion] = {}
        self._subscribers: set[asyncio.Queue] = set()

    async def ask_question(self, session_id: str, questions: list[HITLQuestion]) -> str:
        """Post questions and return their ID."""
        asked = AskedQuestion(
            question_id=generate_id("que"),
            session_id=session_id,
            questions=list(questions),
            asked_at=utc_now(),
        )
        self._questions[asked.question_id] = asked
        self._publish({"type": "question.asked", **asked.to_dict()})
        logger.debug(f"Posted question {asked.question_id} for session {session_id}")
        return asked.question_id

    def list_questions(self) -> list[AskedQuestion]:
        return sorted(self._questions.values(), key=lambda q: q.question_id)

    def get(self, question_id: str) -> AskedQuestion | None:
        return self._questions.get(question_id)

    def resolve(self, question_id: str, outcome: str, **details: Any) -> AskedQuestion | None:
        """Remove a question from the board and announce the outcome.

        Args:
            question_id: The question to close
            outcome: "replied", "rejected" or "timeout"
            **details: Extra event fields (e.g. answers)

        Returns:
            The closed question, or None if it was not on the board
        """
        asked = self._questions.pop(question_id, None)
        if asked is None:
            return None
        self._publish(
            {
                "type": f"question.{outcome}",
                "question_id": question_id,
                "session_id": asked.session_id,
                **details,
            }
        )
        return asked

    def subscribe(self) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue()
        self._subscribers.add(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue) -> None:
        self._subscribers.discard(queue)

    def _publish(self, event: dict[str, Any]) -> None:
        for queue in list(self._subscribers):
            queue.put_nowait(event)
