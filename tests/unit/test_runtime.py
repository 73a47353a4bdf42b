"""Unit tests for the Ollama-backed agent runtime, session store and question board."""

import asyncio
import json
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from orca_server.agents import AgentConfig
from orca_server.errors import StorageError
from orca_server.hitl import HITLQuestion
from orca_server.runtime import OllamaAgentRuntime, QuestionBoard, SessionStore, extract_text

QUESTIONS = [HITLQuestion(header="Approve", question="Proceed?")]


@pytest.fixture
def sessions_dir(tmp_path: Path) -> Path:
    return tmp_path / "sessions"


@pytest.fixture
def store(sessions_dir: Path) -> SessionStore:
    return SessionStore(sessions_dir)


@pytest.fixture
def mock_ollama_client():
    client = AsyncMock()
    client.chat.return_value = '{"type": "success", "agent_id": "coder", "summary": "Done"}'
    return client


@pytest.fixture
def runtime(mock_ollama_client, store: SessionStore) -> OllamaAgentRuntime:
    agents = {
        "coder": AgentConfig(specialist=True, prompt="You write code.", temperature=0.2),
        "orca": AgentConfig(mode="primary", model="big-model"),
    }
    return OllamaAgentRuntime(mock_ollama_client, store, agents, default_model="llama3.2:latest")


class TestSessionStore:
    def test_create_and_get(self, store: SessionStore, sessions_dir: Path):
        session = store.create(parent_id="ses_parent", directory="/work", title="Task: X")

        loaded = store.get(session.session_id)

        assert loaded.parent_id == "ses_parent"
        assert loaded.title == "Task: X"
        assert (sessions_dir / f"{session.session_id}.json").exists()

    def test_missing_session(self, store: SessionStore):
        assert store.get("ses_missing") is None

    def test_messages_persist(self, store: SessionStore):
        session = store.create(parent_id=None, directory="/work", title="T")
        session.add_message("user", "Hello")
        session.add_message("assistant", "Hi", agent="coder")
        store.save(session)

        loaded = store.get(session.session_id)

        assert [(m.role, m.content, m.agent) for m in loaded.messages] == [
            ("user", "Hello", None),
            ("assistant", "Hi", "coder"),
        ]
        assert loaded.messages[0].message_id.startswith("msg_")
        assert loaded.info()["message_count"] == 2

    def test_malformed_file_raises(self, store: SessionStore, sessions_dir: Path):
        sessions_dir.mkdir()
        (sessions_dir / "ses_bad.json").write_text("{oops", encoding="utf-8")

        with pytest.raises(StorageError):
            store.get("ses_bad")

    def test_list_sessions_skips_malformed(self, store: SessionStore, sessions_dir: Path):
        first = store.create(parent_id=None, directory="/w", title="first")
        second = store.create(parent_id=None, directory="/w", title="second")
        (sessions_dir / "ses_bad.json").write_text("[]", encoding="utf-8")

        sessions = store.list_sessions()

        assert [s.session_id for s in sessions] == [second.session_id, first.session_id]


class TestOllamaAgentRuntime:
    @pytest.mark.asyncio
    async def test_create_and_get_session(self, runtime: OllamaAgentRuntime):
        session_id = await runtime.create_session(parent_id=None, directory="/w", title="T")

        info = await runtime.get_session(session_id)

        assert info["id"] == session_id
        assert info["message_count"] == 0
        assert await runtime.get_session("ses_missing") is None

    @pytest.mark.asyncio
    async def test_prompt_sends_system_prompt_and_history(
        self, runtime: OllamaAgentRuntime, mock_ollama_client, store: SessionStore
    ):
        session_id = await runtime.create_session(parent_id=None, directory="/w", title="T")

        parts = await runtime.prompt(
            session_id, "/w", "coder", [{"type": "text", "text": "## Task\n\nWrite it"}]
        )

        assert extract_text(parts) == '{"type": "success", "agent_id": "coder", "summary": "Done"}'
        kwargs = mock_ollama_client.chat.call_args.kwargs
        assert kwargs["model"] == "llama3.2:latest"
        assert kwargs["options"] == {"temperature": 0.2}
        system = kwargs["messages"][0]
        assert system["role"] == "system"
        assert system["content"].startswith("You write code.\n\n## Response Format (REQUIRED)")
        assert kwargs["messages"][1] == {"role": "user", "content": "## Task\n\nWrite it"}

        saved = store.get(session_id)
        assert [m.role for m in saved.messages] == ["user", "assistant"]
        assert saved.messages[1].agent == "coder"

    @pytest.mark.asyncio
    async def test_prompt_uses_agent_model_without_options(
        self, runtime: OllamaAgentRuntime, mock_ollama_client
    ):
        session_id = await runtime.create_session(parent_id=None, directory="/w", title="T")

        await runtime.prompt(session_id, "/w", "orca", [{"type": "text", "text": "hi"}])

        kwargs = mock_ollama_client.chat.call_args.kwargs
        assert kwargs["model"] == "big-model"
        assert kwargs["options"] is None
        assert kwargs["messages"] == [{"role": "user", "content": "hi"}]

    @pytest.mark.asyncio
    async def test_prompt_unknown_session_or_agent(self, runtime: OllamaAgentRuntime):
        with pytest.raises(LookupError, match="Session ses_missing not found"):
            await runtime.prompt("ses_missing", "/w", "coder", [])

        session_id = await runtime.create_session(parent_id=None, directory="/w", title="T")
        with pytest.raises(LookupError, match="Unknown agent: ghost"):
            await runtime.prompt(session_id, "/w", "ghost", [])

    @pytest.mark.asyncio
    async def test_ask_question_posts_to_board(self, runtime: OllamaAgentRuntime):
        question_id = await runtime.ask_question("ses_1", QUESTIONS)

        assert runtime.question_board.get(question_id).session_id == "ses_1"

    @pytest.mark.asyncio
    async def test_expire_question_closes_board_entry(self, runtime: OllamaAgentRuntime):
        question_id = await runtime.ask_question("ses_1", QUESTIONS)
        queue = runtime.question_board.subscribe()

        await runtime.expire_question(question_id)
        await runtime.expire_question(question_id)

        assert runtime.question_board.list_questions() == []
        assert queue.get_nowait() == {
            "type": "question.timeout",
            "question_id": question_id,
            "session_id": "ses_1",
        }
        assert queue.empty()


class TestQuestionBoard:
    @pytest.mark.asyncio
    async def test_ask_list_and_resolve(self):
        board = QuestionBoard()
        queue = board.subscribe()

        first = await board.ask_question("ses_1", QUESTIONS)
        second = await board.ask_question("ses_2", QUESTIONS)

        assert [q.question_id for q in board.list_questions()] == [first, second]
        asked = queue.get_nowait()
        assert asked["type"] == "question.asked"
        assert asked["questions"] == [{"header": "Approve", "question": "Proceed?", "options": []}]

        closed = board.resolve(first, "replied", answers=[["Yes"]])

        assert closed.session_id == "ses_1"
        assert board.get(first) is None
        queue.get_nowait()
        assert queue.get_nowait() == {
            "type": "question.replied",
            "question_id": first,
            "session_id": "ses_1",
            "answers": [["Yes"]],
        }

    def test_resolve_unknown_question(self):
        assert QuestionBoard().resolve("que_missing", "rejected") is None

    @pytest.mark.asyncio
    async def test_unsubscribed_queue_gets_no_events(self):
        board = QuestionBoard()
        queue = board.subscribe()
        board.unsubscribe(queue)

        await board.ask_question("ses_1", QUESTIONS)

        with pytest.raises(asyncio.QueueEmpty):
            queue.get_nowait()


def test_extract_text_ignores_other_parts():
    parts = [
        {"type": "reasoning", "text": "hmm"},
        {"type": "text", "text": "line one"},
        {"type": "tool", "name": "bash"},
        {"type": "text", "text": "line two\n"},
    ]

    assert extract_text(parts) == "line one\nline two"


def test_session_file_is_json(store: SessionStore, sessions_dir: Path):
    session = store.create(parent_id=None, directory="/w", title="T")

    data = json.loads((sessions_dir / f"{session.session_id}.json").read_text(encoding="utf-8"))

    assert data["session_id"] == session.session_id
    assert data["messages"] == []
