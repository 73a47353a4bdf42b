"""Data types for human-in-the-loop questions."""

from dataclasses import dataclass, field
from typing import Literal

from pydantic import BaseModel, Field

from orca_server.protocol.messages import NonEmptyStr


class HITLOption(BaseModel):
    label: NonEmptyStr = Field(..., description="Display text")
    description: str = Field(default="", description="Explanation of the choice")


class HITLQuestion(BaseModel):
    """One structured question shown to the user."""

    header: str = Field(..., min_length=1, max_length=30, description="Very short label")
    question: NonEmptyStr = Field(..., description="Complete question")
    options: list[HITLOption] = Field(default_factory=list)
    multiple: bool | None = Field(default=None, description="Allow selecting multiple choices")
    custom: bool | None = Field(default=None, description="Allow typing a custom answer")


class UserAnswer(BaseModel):
    """Selected labels, one list per question, in question order."""

    answers: list[list[str]]


@dataclass
class QuestionResult:
    """How a pending question was resolved."""

    type: Literal["answered", "rejected", "timeout"]
    answers: list[list[str]] = field(default_factory=list)
