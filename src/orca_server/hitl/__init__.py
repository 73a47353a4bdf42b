"""Human-in-the-loop questions."""

from orca_server.hitl.service import DEFAULT_QUESTION_TIMEOUT_SECONDS, HITLService
from orca_server.hitl.types import HITLOption, HITLQuestion, QuestionResult, UserAnswer

__all__ = [
    "DEFAULT_QUESTION_TIMEOUT_SECONDS",
    "HITLService",
    "HITLOption",
    "HITLQuestion",
    "QuestionResult",
    "UserAnswer",
]
