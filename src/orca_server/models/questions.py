"""Pydantic models for HITL question endpoints."""

from pydantic import BaseModel, Field

from orca_server.hitl.types import HITLQuestion


class QuestionItem(BaseModel):
    """An open question waiting for the user."""

    question_id: str
    session_id: str
    questions: list[HITLQuestion]
    asked_at: str


class QuestionListResponse(BaseModel):
    questions: list[QuestionItem] = Field(default_factory=list)


class ReplyRequest(BaseModel):
    """Selected labels, one list per question, in question order."""

    answers: list[list[str]] = Field(..., description="Answers for each question")


class QuestionResolvedResponse(BaseModel):
    question_id: str
    resolved: bool = Field(..., description="Whether a waiting caller received the outcome")


class QuestionEvent(BaseModel):
    """Server-sent event payload for question activity."""

    type: str = Field(..., description="question.asked, question.replied, question.rejected or question.timeout")
    question_id: str
    session_id: str | None = None
    questions: list[HITLQuestion] | None = None
    asked_at: str | None = None
    answers: list[list[str]] | None = None
