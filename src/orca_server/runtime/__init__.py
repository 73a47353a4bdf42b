"""Agent session runtime: the interface the core uses and an Ollama-backed implementation."""

from orca_server.runtime.ollama_runtime import OllamaAgentRuntime
from orca_server.runtime.questions import AskedQuestion, QuestionBoard
from orca_server.runtime.sessions import AgentSession, SessionMessage, SessionStore
from orca_server.runtime.types import AgentRuntime, Part, extract_text, text_part

__all__ = [
    "AgentRuntime",
    "Part",
    "extract_text",
    "text_part",
    "OllamaAgentRuntime",
    "AskedQuestion",
    "QuestionBoard",
    "AgentSession",
    "SessionMessage",
    "SessionStore",
]
