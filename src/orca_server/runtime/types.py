"""Interface of the agent session runtime.

The orchestration core only relies on this protocol. Message parts are plain
dicts such as ``{"type": "text", "text": "..."}``; other part types (tool
calls, reasoning) may appear and are ignored when extracting text.
"""

from typing import Any, Protocol

from orca_server.hitl.types import HITLQuestion

Part = dict[str, Any]


class AgentRuntime(Protocol):
    """Conversation sessions backed by an LLM."""

    async def create_session(
        self,
        parent_id: str | None,
        directory: str,
        title: str,
    ) -> str | None:
        """Create a session and return its ID (None if creation failed)."""
        ...

    async def get_session(self, session_id: str) -> dict[str, Any] | None:
        """Return session info if the session still exists."""
        ...

    async def prompt(
        self,
        session_id: str,
        directory: str,
        agent: str,
        parts: list[Part],
    ) -> list[Part]:
        """Send a message to a session and return the response parts."""
        ...

    async def ask_question(self, session_id: str, questions: list[HITLQuestion]) -> str | None:
        """Deliver questions to the user and return the question ID."""
        ...

    async def expire_question(self, question_id: str) -> None:
        """Withdraw a question nobody is waiting for anymore."""
        ...


def text_part(text: str) -> Part:
    return {"type": "text", "text": text}


def extract_text(parts: list[Part]) -> str:
    """Join the text of all text parts with newlines, ignoring other parts."""
    return "\n".join(
        part.get("text", "") for part in parts if part.get("type") == "text"
    ).strip()
