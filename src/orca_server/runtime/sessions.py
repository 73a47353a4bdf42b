"""Agent conversation sessions persisted as JSON files.

Each session is one file ``<sessions_dir>/<session_id>.json``::

    {
        "session_id": "ses_...",
        "parent_id": "ses_..." | null,
        "directory": "/path/to/project",
        "title": "Task: ...",
        "created_at": "...Z",
        "updated_at": "...Z",
        "messages": [{"role": ..., "content": ..., "agent": ..., ...}]
    }
"""

import json
import logging
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

from orca_server.errors import StorageError
from orca_server.identifier import generate_id
from orca_server.protocol.messages import utc_now

logger = logging.getLogger(__name__)


@dataclass
class SessionMessage:
    """One message in an agent session."""

    role: str
    content: str
    agent: str | None = None
    message_id: str = ""
    timestamp: str = ""


@dataclass
class AgentSession:
    """A conversation between the orchestrator and one agent."""

    session_id: str
    directory: str
    title: str
    parent_id: str | None = None
    created_at: str = ""
    updated_at: str = ""
    messages: list[SessionMessage] = field(default_factory=list)

    def add_message(self, role: str, content: str, agent: str | None = None) -> SessionMessage:
        """Append a message and bump updated_at."""
        now = utc_now()
        message = SessionMessage(
            role=role,
            content=content,
            agent=agent,
            message_id=generate_id("msg"),
            timestamp=now,
        )
        self.messages.append(message)
        self.updated_at = now
        return message

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    def info(self) -> dict[str, Any]:
        """Session metadata without the message history."""
        return {
            "id": self.session_id,
            "parent_id": self.parent_id,
            "directory": self.directory,
            "title": self.title,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "message_count": len(self.messages),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AgentSession":
        return cls(
            session_id=data["session_id"],
            directory=data.get("directory", ""),
            title=data.get("title", ""),
            parent_id=data.get("parent_id"),
            created_at=data.get("created_at", ""),
            updated_at=data.get("updated_at", ""),
            messages=[SessionMessage(**msg) for msg in data.get("messages", [])],
        )


class SessionStore:
    """CRUD operations over a directory of session files."""

    def __init__(self, sessions_dir: Path):
        """Initialize the SessionStore.

        Args:
            sessions_dir: Directory where session JSON files are stored
        """
        self.sessions_dir = sessions_dir

    def create(self, parent_id: str | None, directory: str, title: str) -> AgentSession:
        """Create and persist a new empty session."""
        now = utc_now()
        session = AgentSession(
            session_id=generate_id("ses"),
            directory=directory,
            title=title,
            parent_id=parent_id,
            created_at=now,
            updated_at=now,
        )
        self.save(session)
        logger.info(f"Created session {session.session_id}: {title}")
        return session

    def get(self, session_id: str) -> AgentSession | None:
        """Load a session.

        Returns:
            The session, or None if no file exists for it

        Raises:
            StorageError: If the session file is malformed
        """
        file_path = self.sessions_dir / f"{session_id}.json"
        if not file_path.exists():
            return None

        try:
            with open(file_path, "r", encoding="utf-8") as f:
                return AgentSession.from_dict(json.load(f))
        except (json.JSONDecodeError, KeyError, TypeError) as e:
            raise StorageError(file_path, str(e)) from e

    def save(self, session: AgentSession) -> None:
        self.sessions_dir.mkdir(parents=True, exist_ok=True)
        file_path = self.sessions_dir / f"{session.session_id}.json"

        with open(file_path, "w", encoding="utf-8") as f:
            json.dump(session.to_dict(), f, indent=2, ensure_ascii=False)
            f.write("\n")

        logger.debug(f"Saved session {session.session_id} to {file_path}")

    def list_sessions(self) -> list[AgentSession]:
        """List all sessions, newest first."""
        sessions: list[AgentSession] = []

        if not self.sessions_dir.exists():
            return sessions

        for file_path in self.sessions_dir.glob("*.json"):
            try:
                session = self.get(file_path.stem)
            except StorageError as e:
                logger.warning(f"Failed to load session {file_path.stem}: {e}")
                continue
            if session is not None:
                sessions.append(session)

        sessions.sort(key=lambda s: s.session_id, reverse=True)
        return sessions
