"""Request and result types for dispatching work to agents."""

import asyncio
from dataclasses import dataclass, field

from pydantic import BaseModel, ConfigDict, Field

from orca_server.protocol.messages import (
    AgentId,
    NonEmptyStr,
    PlanContext,
    SessionId,
    TaskMessage,
)


class TaskRequest(BaseModel):
    """A task addressed to one specialist agent."""

    model_config = ConfigDict(extra="forbid")

    agent: AgentId = Field(..., description="Target agent")
    description: NonEmptyStr = Field(..., description="What this step should accomplish")
    command: str | None = Field(default=None, description="Suggested approach")
    session_id: SessionId | None = Field(
        default=None, description="Continue existing conversation with target agent"
    )
    plan_context: PlanContext | None = None

    @classmethod
    def from_envelope(cls, message: TaskMessage) -> "TaskRequest":
        """Build a request from a task envelope.

        The envelope's session_id is the caller's session, not the target
        agent's, so it is not reused as the agent session.
        """
        return cls(
            agent=message.agent_id,
            description=message.prompt,
            command=message.command,
            plan_context=message.plan_context,
        )


class AgentQuestionRequest(BaseModel):
    """A question addressed to one agent."""

    model_config = ConfigDict(extra="forbid")

    agent: AgentId = Field(..., description="Target agent to ask")
    question: NonEmptyStr = Field(..., description="The question to ask")
    session_id: SessionId | None = Field(
        default=None, description="Continue existing conversation with target agent"
    )


@dataclass
class DispatchContext:
    """Where a dispatch comes from.

    Attributes:
        parent_session_id: Session of the caller; new agent sessions are its children
        directory: Project directory the agent works in (defaults to the service's)
        abort: Set to cancel the dispatch; the result becomes a TIMEOUT failure
    """

    parent_session_id: str | None = None
    directory: str | None = None
    abort: asyncio.Event = field(default_factory=asyncio.Event)


@dataclass
class DispatchResult:
    """Envelope returned by an agent plus the session it ran in."""

    result: BaseModel
    session_id: str | None = None
