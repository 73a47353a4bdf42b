"""Message envelopes exchanged between the coordinator and agents.

Every envelope is a closed object keyed by its ``type`` field. Request
envelopes (task, interrupt) carry the session they belong to; response
envelopes do not, and failure envelopes additionally carry no agent_id
because an error can occur before an agent has been resolved.
"""

from datetime import datetime, timezone
from typing import Annotated, Any, Literal, Union

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, StringConstraints, TypeAdapter

from orca_server.identifier import id_pattern
from orca_server.protocol.errors import ErrorCode

TIMESTAMP_PATTERN = r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(\.\d+)?Z$"


def _check_calendar_time(value: str) -> str:
    # The pattern fixes the layout; the date and time fields must also exist
    datetime.fromisoformat(value[:19])
    return value


Timestamp = Annotated[
    str, StringConstraints(pattern=TIMESTAMP_PATTERN), AfterValidator(_check_calendar_time)
]
SessionId = Annotated[str, StringConstraints(pattern=id_pattern("ses"))]
AgentId = Annotated[str, StringConstraints(min_length=1)]
NonEmptyStr = Annotated[str, StringConstraints(min_length=1)]


def utc_now() -> str:
    """Current UTC time as an ISO-8601 string with a Z suffix."""
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class StrictModel(BaseModel):
    """Base model rejecting unknown fields."""

    model_config = ConfigDict(extra="forbid")


class PlanStep(StrictModel):
    """A single step of a plan, assigned to one specialist agent."""

    description: NonEmptyStr = Field(..., description="What this step accomplishes")
    agent: AgentId = Field(..., description="Specialist agent that performs the step")
    command: str | None = Field(default=None, description="Suggested approach or command")
    assumptions: list[str] | None = None
    risks: list[str] | None = None
    verification: list[str] | None = None


class PlanContext(StrictModel):
    """Approval state of the plan a task belongs to."""

    goal: NonEmptyStr = Field(..., description="The overall plan objective")
    step_index: int = Field(..., ge=0, description="Current step number (0-based)")
    approved_remaining: bool = Field(
        ...,
        description="If true, skip checkpoints for remaining steps in this plan",
    )


class Source(StrictModel):
    type: Literal["file", "url", "artifact"]
    ref: str
    title: str | None = None
    excerpt: str | None = None


class Annotation(StrictModel):
    type: Literal["note", "warning", "assumption", "caveat"]
    content: str


# --- Request envelopes ---


class TaskMessage(StrictModel):
    """Request for an agent to carry out a piece of work."""

    type: Literal["task"] = "task"
    session_id: SessionId
    timestamp: Timestamp
    agent_id: AgentId
    prompt: NonEmptyStr
    command: str | None = None
    context: dict[str, Any] | None = None
    plan_context: PlanContext | None = None


class InterruptMessage(StrictModel):
    """Request to interrupt the work running in a session."""

    type: Literal["interrupt"] = "interrupt"
    session_id: SessionId
    timestamp: Timestamp
    agent_id: AgentId
    reason: NonEmptyStr


# --- Response envelopes ---


class AnswerMessage(StrictModel):
    """Response to a question."""

    type: Literal["answer"] = "answer"
    agent_id: AgentId
    timestamp: Timestamp | None = None
    content: str
    sources: list[Source] | None = None
    annotations: list[Annotation] | None = None


class QuestionMessage(StrictModel):
    """Clarifying question raised by an agent."""

    type: Literal["question"] = "question"
    agent_id: AgentId
    timestamp: Timestamp | None = None
    question: NonEmptyStr
    options: list[str] | None = None
    blocking: bool = True


class SuccessMessage(StrictModel):
    """Report of a completed task."""

    type: Literal["success"] = "success"
    agent_id: AgentId
    timestamp: Timestamp | None = None
    summary: NonEmptyStr = Field(..., description="Brief description of what was completed")
    artifacts: list[str] | None = Field(default=None, description="Files created or modified")
    verification: list[str] | None = Field(
        default=None, description="Verification steps performed"
    )
    notes: list[str] | None = Field(default=None, description="Additional context or caveats")


class PlanMessage(StrictModel):
    """A complete plan proposed by the planner."""

    type: Literal["plan"] = "plan"
    agent_id: AgentId
    timestamp: Timestamp | None = None
    goal: NonEmptyStr
    summary: str | None = None
    steps: list[PlanStep] = Field(..., min_length=1)
    assumptions: list[str] = Field(..., min_length=1)
    verification: list[str] = Field(..., min_length=1)
    risks: list[str] = Field(..., min_length=1)
    files_touched: list[str] | None = None


class CheckpointMessage(StrictModel):
    """Approval gate returned instead of dispatching to a supervised agent."""

    type: Literal["checkpoint"] = "checkpoint"
    agent_id: AgentId
    timestamp: Timestamp | None = None
    prompt: NonEmptyStr
    step_index: int | None = Field(default=None, ge=0)
    plan_goal: str | None = None


class FailureMessage(StrictModel):
    """Terminal error for a single dispatch."""

    type: Literal["failure"] = "failure"
    code: ErrorCode
    message: NonEmptyStr
    cause: str | None = None
    timestamp: Timestamp | None = None


RequestEnvelope = Annotated[
    Union[TaskMessage, InterruptMessage],
    Field(discriminator="type"),
]

ResponseEnvelope = Annotated[
    Union[
        AnswerMessage,
        QuestionMessage,
        SuccessMessage,
        PlanMessage,
        CheckpointMessage,
        FailureMessage,
    ],
    Field(discriminator="type"),
]

MessageEnvelope = Annotated[
    Union[
        TaskMessage,
        InterruptMessage,
        AnswerMessage,
        QuestionMessage,
        SuccessMessage,
        PlanMessage,
        CheckpointMessage,
        FailureMessage,
    ],
    Field(discriminator="type"),
]

MESSAGE_TYPES = [
    "task",
    "interrupt",
    "answer",
    "question",
    "success",
    "plan",
    "checkpoint",
    "failure",
]

envelope_adapter: TypeAdapter = TypeAdapter(MessageEnvelope)
request_adapter: TypeAdapter = TypeAdapter(RequestEnvelope)


def envelope_to_dict(envelope: BaseModel) -> dict[str, Any]:
    """Serialize an envelope to its JSON wire form, omitting unset optionals."""
    return envelope.model_dump(mode="json", exclude_none=True)


def parse_envelope(data: Any) -> BaseModel:
    """Decode any envelope, raising pydantic.ValidationError if invalid."""
    return envelope_adapter.validate_python(data)


def parse_request(data: Any) -> TaskMessage | InterruptMessage:
    """Decode a request envelope (task or interrupt)."""
    return request_adapter.validate_python(data)
