"""Unit tests for DispatchService against an in-memory agent runtime."""

import asyncio

import pytest

from orca_server.agents import AgentConfig, OrcaSettings
from orca_server.dispatch import (
    AgentQuestionRequest,
    DispatchContext,
    DispatchService,
    TaskRequest,
    build_task_prompt,
)
from orca_server.protocol import (
    AnswerMessage,
    CheckpointMessage,
    ErrorCode,
    FailureMessage,
    PlanContext,
    SuccessMessage,
)

SUCCESS = '{"type": "success", "agent_id": "coder", "summary": "Done"}'
EXISTING_SESSION = "ses_0192f0c3a1b2AbCdEfGhIjKlMn"


class FakeRuntime:
    """Agent runtime that replays canned replies and records calls."""

    def __init__(self, replies=None, create_returns="ses_new"):
        self.replies = list(replies or [])
        self.create_returns = create_returns
        self.sessions = {EXISTING_SESSION}
        self.created: list[dict] = []
        self.prompts: list[dict] = []

    async def create_session(self, parent_id, directory, title):
        self.created.append({"parent_id": parent_id, "directory": directory, "title": title})
        if self.create_returns:
            self.sessions.add(self.create_returns)
        return self.create_returns

    async def get_session(self, session_id):
        return {"id": session_id} if session_id in self.sessions else None

    async def prompt(self, session_id, directory, agent, parts):
        self.prompts.append({"session_id": session_id, "agent": agent, "text": parts[0]["text"]})
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        if callable(reply):
            return await reply()
        return [{"type": "reasoning", "text": "thinking"}, {"type": "text", "text": reply}]

    async def ask_question(self, session_id, questions):
        return None

    async def expire_question(self, question_id):
        return None


AGENTS = {
    "coder": AgentConfig(specialist=True, description="Writes code"),
    "dba": AgentConfig(specialist=True, supervised=True),
}


def _service(runtime: FakeRuntime, settings: OrcaSettings | None = None) -> DispatchService:
    return DispatchService(runtime, AGENTS, settings or OrcaSettings(), directory="/work")


def test_build_task_prompt():
    assert build_task_prompt(TaskRequest(agent="coder", description="Fix bug")) == "## Task\n\nFix bug"
    assert build_task_prompt(
        TaskRequest(agent="coder", description="Fix bug", command="pytest -x")
    ) == "## Task\n\nFix bug\n\n### Suggested Approach\n\npytest -x"


@pytest.mark.asyncio
async def test_dispatch_task_creates_child_session():
    runtime = FakeRuntime([SUCCESS])
    service = _service(runtime)

    result = await service.dispatch_task(
        DispatchContext(parent_session_id="ses_parent"),
        TaskRequest(agent="coder", description="Implement the parser"),
    )

    assert isinstance(result.result, SuccessMessage)
    assert result.session_id == "ses_new"
    assert runtime.created == [
        {"parent_id": "ses_parent", "directory": "/work", "title": "Task: Implement the parser"}
    ]
    assert runtime.prompts[0]["agent"] == "coder"
    assert runtime.prompts[0]["text"] == "## Task\n\nImplement the parser"


@pytest.mark.asyncio
async def test_dispatch_reuses_existing_session():
    runtime = FakeRuntime([SUCCESS])

    result = await _service(runtime).dispatch_task(
        DispatchContext(),
        TaskRequest(agent="coder", description="Continue", session_id=EXISTING_SESSION),
    )

    assert result.session_id == EXISTING_SESSION
    assert runtime.created == []


@pytest.mark.asyncio
async def test_stale_session_is_replaced():
    runtime = FakeRuntime([SUCCESS])

    result = await _service(runtime).dispatch_task(
        DispatchContext(),
        TaskRequest(agent="coder", description="Continue", session_id="ses_0192f0c3a1b2ZZZZZZZZZZZZZZ"),
    )

    assert result.session_id == "ses_new"
    assert len(runtime.created) == 1


@pytest.mark.asyncio
async def test_unknown_agent():
    runtime = FakeRuntime()

    result = await _service(runtime).dispatch_task(
        DispatchContext(), TaskRequest(agent="ghost", description="Boo")
    )

    assert isinstance(result.result, FailureMessage)
    assert result.result.code is ErrorCode.UNKNOWN_AGENT
    assert result.result.message == "Unknown agent: ghost"
    assert result.result.cause == "Available agents: coder, dba"
    assert runtime.created == []


@pytest.mark.asyncio
async def test_supervised_agent_returns_checkpoint():
    runtime = FakeRuntime()
    plan_context = PlanContext(goal="Migrate DB", step_index=2, approved_remaining=False)

    result = await _service(runtime).dispatch_task(
        DispatchContext(),
        TaskRequest(agent="dba", description="Drop old tables", plan_context=plan_context),
    )

    assert isinstance(result.result, CheckpointMessage)
    assert result.result.prompt == "Approve dispatch to dba: Drop old tables"
    assert result.result.step_index == 2
    assert result.result.plan_goal == "Migrate DB"
    assert runtime.created == []
    assert runtime.prompts == []


@pytest.mark.asyncio
async def test_approved_remaining_skips_checkpoint():
    runtime = FakeRuntime(['{"type": "success", "agent_id": "dba", "summary": "Dropped"}'])
    plan_context = PlanContext(goal="Migrate DB", step_index=2, approved_remaining=True)

    result = await _service(runtime).dispatch_task(
        DispatchContext(),
        TaskRequest(agent="dba", description="Drop old tables", plan_context=plan_context),
    )

    assert isinstance(result.result, SuccessMessage)


@pytest.mark.asyncio
async def test_default_supervised_gates_unflagged_agents():
    result = await _service(FakeRuntime(), OrcaSettings(default_supervised=True)).dispatch_task(
        DispatchContext(), TaskRequest(agent="coder", description="Anything")
    )

    assert isinstance(result.result, CheckpointMessage)
    assert result.result.step_index is None


@pytest.mark.asyncio
async def test_empty_response_is_agent_error():
    runtime = FakeRuntime(["   "])

    result = await _service(runtime).dispatch_task(
        DispatchContext(), TaskRequest(agent="coder", description="Do it")
    )

    assert result.result.code is ErrorCode.AGENT_ERROR
    assert result.result.message == "Agent returned empty response"
    assert result.result.cause == "Agent coder produced no text output"
    assert result.session_id == "ses_new"


@pytest.mark.asyncio
async def test_runtime_exception_is_agent_error():
    runtime = FakeRuntime([ConnectionError("ollama down")])

    result = await _service(runtime).dispatch_task(
        DispatchContext(), TaskRequest(agent="coder", description="Do it")
    )

    assert result.result.code is ErrorCode.AGENT_ERROR
    assert result.result.message == "Agent execution failed"
    assert result.result.cause == "ollama down"


@pytest.mark.asyncio
async def test_session_creation_without_id():
    result = await _service(FakeRuntime(create_returns=None)).dispatch_task(
        DispatchContext(), TaskRequest(agent="coder", description="Do it")
    )

    assert result.result.code is ErrorCode.SESSION_NOT_FOUND
    assert result.result.message == "Failed to create session"
    assert result.session_id is None


@pytest.mark.asyncio
async def test_abort_while_waiting_is_timeout():
    ctx = DispatchContext()

    async def slow_reply():
        ctx.abort.set()
        await asyncio.sleep(10)

    runtime = FakeRuntime([slow_reply])

    result = await _service(runtime).dispatch_task(ctx, TaskRequest(agent="coder", description="Do it"))

    assert result.result.code is ErrorCode.TIMEOUT
    assert result.result.message == "Request timed out or was cancelled"


@pytest.mark.asyncio
async def test_abort_before_dispatch_is_timeout():
    ctx = DispatchContext()
    ctx.abort.set()
    runtime = FakeRuntime([SUCCESS])

    result = await _service(runtime).dispatch_task(ctx, TaskRequest(agent="coder", description="Do it"))

    assert result.result.code is ErrorCode.TIMEOUT
    assert runtime.created == []


@pytest.mark.asyncio
async def test_invalid_reply_is_corrected_in_same_session():
    runtime = FakeRuntime(['{"type": "success", "agent_id": "coder"}', SUCCESS])

    result = await _service(runtime).dispatch_task(
        DispatchContext(), TaskRequest(agent="coder", description="Do it")
    )

    assert isinstance(result.result, SuccessMessage)
    assert [p["session_id"] for p in runtime.prompts] == ["ses_new", "ses_new"]
    assert "Message validation failed" in runtime.prompts[1]["text"]


@pytest.mark.asyncio
async def test_dispatch_question_is_never_gated():
    runtime = FakeRuntime(['{"type": "answer", "agent_id": "dba", "content": "Postgres 16"}'])

    result = await _service(runtime).dispatch_question(
        DispatchContext(), AgentQuestionRequest(agent="dba", question="Which version?")
    )

    assert isinstance(result.result, AnswerMessage)
    assert result.result.content == "Postgres 16"
    assert runtime.created[0]["title"] == "Question to dba"
    assert runtime.prompts[0]["text"] == "Which version?"


@pytest.mark.asyncio
async def test_plain_text_wrapped_when_configured():
    runtime = FakeRuntime(["Postgres 16"])
    settings = OrcaSettings.model_validate({"validation": {"wrapPlainText": True}})

    result = await _service(runtime, settings).dispatch_question(
        DispatchContext(), AgentQuestionRequest(agent="coder", question="Which version?")
    )

    assert isinstance(result.result, AnswerMessage)
    assert result.result.agent_id == "coder"
