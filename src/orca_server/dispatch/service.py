"""Dispatch of tasks and questions to agents.

A dispatch resolves the target agent, applies the supervision gate, resolves
or creates the agent's session, prompts it and validates the response. Every
agent-communication problem is returned as a failure envelope; guard errors
from the planning and execution services are not involved here.
"""

import asyncio
import logging
from typing import Awaitable, TypeVar

from pydantic import BaseModel

from orca_server.agents.config import AgentConfig, OrcaSettings
from orca_server.agents.registry import is_agent_supervised
from orca_server.dispatch.types import (
    AgentQuestionRequest,
    DispatchContext,
    DispatchResult,
    TaskRequest,
)
from orca_server.protocol.errors import ErrorCode
from orca_server.protocol.messages import CheckpointMessage
from orca_server.protocol.validation import (
    ValidationConfig,
    create_failure,
    validate_with_retry,
)
from orca_server.runtime.types import AgentRuntime, extract_text, text_part

logger = logging.getLogger(__name__)

T = TypeVar("T")

TASK_TITLE_LENGTH = 50


class DispatchAborted(Exception):
    """Raised when the caller's abort event fires while waiting on the agent."""


def build_task_prompt(request: TaskRequest) -> str:
    """Render a task as the markdown prompt sent to the agent."""
    lines = ["## Task", "", request.description]

    if request.command:
        lines.extend(["", "### Suggested Approach", "", request.command])

    return "\n".join(lines)


def build_checkpoint(request: TaskRequest) -> CheckpointMessage:
    plan_context = request.plan_context
    return CheckpointMessage(
        agent_id=request.agent,
        prompt=f"Approve dispatch to {request.agent}: {request.description}",
        step_index=plan_context.step_index if plan_context else None,
        plan_goal=plan_context.goal if plan_context else None,
    )


class DispatchService:
    """Sends tasks and questions to agents through the agent runtime."""

    def __init__(
        self,
        runtime: AgentRuntime,
        agents: dict[str, AgentConfig],
        settings: OrcaSettings,
        directory: str,
    ):
        """Initialize the DispatchService.

        Args:
            runtime: Agent session runtime
            agents: Resolved agent registry
            settings: Orchestration settings (supervision default, validation policy)
            directory: Default project directory for new sessions
        """
        self.runtime = runtime
        self.agents = agents
        self.settings = settings
        self.directory = directory

    @property
    def validation_config(self) -> ValidationConfig:
        validation = self.settings.validation
        if validation is None:
            return ValidationConfig()
        return ValidationConfig(
            max_retries=validation.max_retries if validation.max_retries is not None else 2,
            wrap_plain_text=bool(validation.wrap_plain_text),
        )

    async def dispatch_task(self, ctx: DispatchContext, request: TaskRequest) -> DispatchResult:
        """Dispatch a task to a specialist agent.

        Supervised agents are gated: unless the plan context pre-approves the
        remaining steps, a checkpoint envelope is returned and nothing is sent.

        Args:
            ctx: Caller context (parent session, directory, abort event)
            request: The task

        Returns:
            DispatchResult with the validated envelope and the agent session ID
        """
        agent = self.agents.get(request.agent)
        if agent is None:
            return DispatchResult(result=self._unknown_agent(request.agent))

        if is_agent_supervised(agent, self.settings):
            approved = request.plan_context is not None and request.plan_context.approved_remaining
            if not approved:
                logger.info(f"Checkpoint required before dispatching to {request.agent}")
                return DispatchResult(result=build_checkpoint(request), session_id=request.session_id)

        logger.info(f"Dispatching task to {request.agent}: {request.description[:TASK_TITLE_LENGTH]}")
        return await self._dispatch(
            ctx,
            agent_id=request.agent,
            session_id=request.session_id,
            title=f"Task: {request.description[:TASK_TITLE_LENGTH]}",
            prompt=build_task_prompt(request),
        )

    async def dispatch_question(
        self, ctx: DispatchContext, request: AgentQuestionRequest
    ) -> DispatchResult:
        """Ask an agent a question and return its validated answer."""
        if request.agent not in self.agents:
            return DispatchResult(result=self._unknown_agent(request.agent))

        logger.info(f"Asking {request.agent} a question")
        return await self._dispatch(
            ctx,
            agent_id=request.agent,
            session_id=request.session_id,
            title=f"Question to {request.agent}",
            prompt=request.question,
        )

    async def _dispatch(
        self,
        ctx: DispatchContext,
        agent_id: str,
        session_id: str | None,
        title: str,
        prompt: str,
    ) -> DispatchResult:
        directory = ctx.directory or self.directory
        target_session_id: str | None = None

        try:
            target_session_id = await self._resolve_session(ctx, session_id, directory, title)
            if target_session_id is None:
                return DispatchResult(
                    result=create_failure(
                        ErrorCode.SESSION_NOT_FOUND,
                        "Failed to create session",
                        cause="Session creation returned no ID",
                    )
                )

            result = await self._prompt_and_validate(ctx, agent_id, target_session_id, directory, prompt)
        except Exception as e:
            if ctx.abort.is_set():
                logger.warning(f"Dispatch to {agent_id} aborted")
                result = self._timeout()
            else:
                logger.error(f"Dispatch to {agent_id} failed: {e}", exc_info=True)
                result = create_failure(ErrorCode.AGENT_ERROR, "Agent execution failed", cause=str(e))

        if ctx.abort.is_set():
            result = self._timeout()

        return DispatchResult(result=result, session_id=target_session_id)

    async def _resolve_session(
        self,
        ctx: DispatchContext,
        session_id: str | None,
        directory: str,
        title: str,
    ) -> str | None:
        if session_id:
            existing = await self._until_aborted(ctx, self.runtime.get_session(session_id))
            if existing is not None:
                logger.debug(f"Reusing session {session_id}")
                return session_id
            logger.warning(f"Session {session_id} not found, creating a new one")

        return await self._until_aborted(
            ctx,
            self.runtime.create_session(
                parent_id=ctx.parent_session_id,
                directory=directory,
                title=title,
            ),
        )

    async def _prompt_and_validate(
        self,
        ctx: DispatchContext,
        agent_id: str,
        session_id: str,
        directory: str,
        prompt: str,
    ) -> BaseModel:
        async def send(text: str) -> str:
            parts = await self._until_aborted(
                ctx,
                self.runtime.prompt(
                    session_id=session_id,
                    directory=directory,
                    agent=agent_id,
                    parts=[text_part(text)],
                ),
            )
            return extract_text(parts)

        raw = await send(prompt)
        if not raw:
            return create_failure(
                ErrorCode.AGENT_ERROR,
                "Agent returned empty response",
                cause=f"Agent {agent_id} produced no text output",
            )

        return await validate_with_retry(
            raw,
            agent_id,
            config=self.validation_config,
            retry_sender=send,
        )

    @staticmethod
    async def _until_aborted(ctx: DispatchContext, awaitable: Awaitable[T]) -> T:
        """Await a runtime call, cancelling it if the abort event fires first."""
        if ctx.abort.is_set():
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            raise DispatchAborted("Request aborted before the agent call")

        call = asyncio.ensure_future(awaitable)
        aborted = asyncio.ensure_future(ctx.abort.wait())
        try:
            await asyncio.wait({call, aborted}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            aborted.cancel()
            if not call.done():
                call.cancel()

        if not call.done() or call.cancelled():
            raise DispatchAborted("Request aborted while waiting for the agent")
        return call.result()

    def _unknown_agent(self, agent_id: str) -> BaseModel:
        logger.warning(f"Dispatch to unknown agent: {agent_id}")
        return create_failure(
            ErrorCode.UNKNOWN_AGENT,
            f"Unknown agent: {agent_id}",
            cause=f"Available agents: {', '.join(self.agents)}",
        )

    @staticmethod
    def _timeout() -> BaseModel:
        return create_failure(ErrorCode.TIMEOUT, "Request timed out or was cancelled")
