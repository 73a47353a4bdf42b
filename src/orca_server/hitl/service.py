"""Human-in-the-loop question correlation.

A question is sent to the user through the agent runtime, which returns a
question ID. The caller then waits on a future registered under that ID until
one of three things happens first: the user replies, the user rejects the
question, or the timeout fires. The entry is removed on the first outcome, so
later events for the same ID are ignored. A question that times out is
expired with the runtime so it is no longer offered to the user.
"""

import asyncio
import logging
from typing import Protocol

from orca_server.hitl.types import HITLQuestion, QuestionResult, UserAnswer

logger = logging.getLogger(__name__)

DEFAULT_QUESTION_TIMEOUT_SECONDS = 300.0


class QuestionAsker(Protocol):
    async def ask_question(self, session_id: str, questions: list[HITLQuestion]) -> str | None:
        ...

    async def expire_question(self, question_id: str) -> None:
        ...


class HITLService:
    """Asks the user questions and waits for the answer."""

    def __init__(
        self,
        asker: QuestionAsker,
        timeout_seconds: float = DEFAULT_QUESTION_TIMEOUT_SECONDS,
    ):
        """Initialize the HITLService.

        Args:
            asker: Runtime able to deliver questions to the user
            timeout_seconds: How long to wait for each question
        """
        self.asker = asker
        self.timeout_seconds = timeout_seconds
        self._pending: dict[str, asyncio.Future[QuestionResult]] = {}

    async def ask_user(self, session_id: str, questions: list[HITLQuestion]) -> UserAnswer | None:
        """Ask questions and return the answers, or None if not answered."""
        result = await self.ask_question(session_id, questions)

        if result.type != "answered":
            logger.warning(f"Question not answered ({result.type}) in session {session_id}")
            return None

        return UserAnswer(answers=result.answers)

    async def ask_question(self, session_id: str, questions: list[HITLQuestion]) -> QuestionResult:
        """Ask questions and wait for the first resolution.

        Args:
            session_id: Session the questions belong to
            questions: Questions to ask

        Returns:
            QuestionResult describing how the question was resolved

        Raises:
            RuntimeError: If the runtime did not return a question ID
        """
        question_id = await self.asker.ask_question(session_id, questions)
        if not question_id:
            raise RuntimeError("Failed to create question: no ID returned")

        future: asyncio.Future[QuestionResult] = asyncio.get_running_loop().create_future()
        self._pending[question_id] = future
        logger.info(f"Question asked: {question_id} (session {session_id})")

        try:
            return await asyncio.wait_for(asyncio.shield(future), timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            if self._pending.pop(question_id, None) is not None:
                logger.warning(
                    f"Question timed out: {question_id} after {self.timeout_seconds}s"
                )
                await self.asker.expire_question(question_id)
                return QuestionResult(type="timeout")
            # Resolved in the same tick the timeout fired
            return future.result()
        finally:
            self._pending.pop(question_id, None)

    def handle_question_replied(self, question_id: str, answers: list[list[str]]) -> bool:
        """Resolve a pending question with the user's answers.

        Returns:
            True if a pending question was resolved, False otherwise
        """
        return self._resolve(question_id, QuestionResult(type="answered", answers=answers))

    def handle_question_rejected(self, question_id: str) -> bool:
        """Resolve a pending question as rejected by the user."""
        return self._resolve(question_id, QuestionResult(type="rejected"))

    def has_pending_questions(self) -> bool:
        return len(self._pending) > 0

    def pending_count(self) -> int:
        return len(self._pending)

    def _resolve(self, question_id: str, result: QuestionResult) -> bool:
        future = self._pending.pop(question_id, None)
        if future is None or future.done():
            logger.warning(f"No pending question found: {question_id}")
            return False

        future.set_result(result)
        if result.type == "answered":
            logger.info(f"Resolved pending question: {question_id}")
        else:
            logger.info(f"Question rejected: {question_id}")
        return True
