"""Agent runtime backed by Ollama.

Sessions are stored on disk by SessionStore. Prompting a session replays its
history to the agent's model with a system prompt made of the agent prompt
and the response-format instructions, then records the reply.
"""

import logging
from typing import Any

from orca_server.agents.config import AgentConfig
from orca_server.agents.response_format import build_response_format_instructions
from orca_server.hitl.types import HITLQuestion
from orca_server.ollama import OllamaClient
from orca_server.runtime.questions import QuestionBoard
from orca_server.runtime.sessions import AgentSession, SessionStore
from orca_server.runtime.types import Part, extract_text, text_part

logger = logging.getLogger(__name__)


class OllamaAgentRuntime:
    """AgentRuntime implementation using a local session store and Ollama."""

    def __init__(
        self,
        ollama_client: OllamaClient,
        session_store: SessionStore,
        agents: dict[str, AgentConfig],
        default_model: str,
        question_board: QuestionBoard | None = None,
    ):
        """Initialize the runtime.

        Args:
            ollama_client: Shared Ollama client
            session_store: Where sessions are persisted
            agents: Resolved agent registry
            default_model: Model for agents that don't name one
            question_board: Board that receives HITL questions
        """
        self.ollama_client = ollama_client
        self.session_store = session_store
        self.agents = agents
        self.default_model = default_model
        self.question_board = question_board or QuestionBoard()

    async def create_session(
        self,
        parent_id: str | None,
        directory: str,
        title: str,
    ) -> str | None:
        session = self.session_store.create(parent_id=parent_id, directory=directory, title=title)
        return session.session_id

    async def get_session(self, session_id: str) -> dict[str, Any] | None:
        session = self.session_store.get(session_id)
        return session.info() if session is not None else None

    async def prompt(
        self,
        session_id: str,
        directory: str,
        agent: str,
        parts: list[Part],
    ) -> list[Part]:
        """Send the text parts to the agent and return its reply as one text part.

        Raises:
            LookupError: If the session or agent does not exist
        """
        session = self.session_store.get(session_id)
        if session is None:
            raise LookupError(f"Session {session_id} not found")

        agent_config = self.agents.get(agent)
        if agent_config is None:
            raise LookupError(f"Unknown agent: {agent}")

        session.add_message("user", extract_text(parts))

        model = agent_config.model or self.default_model
        logger.debug(f"Prompting agent {agent} in session {session_id} with model {model}")

        reply = await self.ollama_client.chat(
            model=model,
            messages=self._build_messages(agent, agent_config, session),
            options=self._model_options(agent_config),
        )

        session.add_message("assistant", reply, agent=agent)
        self.session_store.save(session)

        return [text_part(reply)]

    async def ask_question(self, session_id: str, questions: list[HITLQuestion]) -> str | None:
        return await self.question_board.ask_question(session_id, questions)

    async def expire_question(self, question_id: str) -> None:
        if self.question_board.resolve(question_id, "timeout") is not None:
            logger.info(f"Expired question {question_id}")

    @staticmethod
    def _build_messages(
        agent_id: str, agent: AgentConfig, session: AgentSession
    ) -> list[dict[str, Any]]:
        system_prompt = "\n\n".join(
            section
            for section in (agent.prompt or "", build_response_format_instructions(agent_id, agent))
            if section
        )

        messages: list[dict[str, Any]] = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.extend({"role": m.role, "content": m.content} for m in session.messages)
        return messages

    @staticmethod
    def _model_options(agent: AgentConfig) -> dict[str, Any] | None:
        options = {
            key: value
            for key, value in (("temperature", agent.temperature), ("top_p", agent.top_p))
            if value is not None
        }
        return options or None
