"""Async Ollama client wrapper.

Agents run on models served by Ollama. The client is created once at startup
and shared by every agent session; all completions are streamed and collected.
"""

import logging
from typing import Any, AsyncIterator

import ollama

logger = logging.getLogger(__name__)


class OllamaClient:
    """Async client for the Ollama chat API.

    Attributes:
        host: The Ollama server URL (e.g., "http://localhost:11434")
        _client: The underlying ollama.AsyncClient instance
    """

    def __init__(self, host: str) -> None:
        """Initialize the Ollama client.

        Args:
            host: The Ollama server URL
        """
        self.host = host
        self._client = ollama.AsyncClient(host=host)
        logger.info(f"OllamaClient initialized with host: {host}")

    async def check_connection(self) -> bool:
        """Check if the Ollama server is reachable.

        Returns:
            bool: True if connection is successful, False otherwise
        """
        try:
            await self._client.list()
            logger.debug("Ollama connection check: successful")
            return True
        except Exception as e:
            logger.warning(f"Ollama connection check failed: {e}")
            return False

    async def chat_stream(
        self,
        model: str,
        messages: list[dict[str, Any]],
        options: dict[str, Any] | None = None,
    ) -> AsyncIterator[dict[str, Any]]:
        """Stream chat response chunks from Ollama.

        Args:
            model: The model name to use
            messages: Messages in Ollama format: [{"role": "user", "content": "..."}, ...]
            options: Optional model parameters (temperature, top_p)

        Yields:
            dict: Response chunks; the final chunk has ``done`` set

        Raises:
            Exception: If the Ollama API request fails
        """
        logger.debug(f"Starting chat stream with model {model} ({len(messages)} messages)")

        try:
            async for chunk in await self._client.chat(
                model=model,
                messages=messages,
                stream=True,
                options=options,
            ):
                if hasattr(chunk, "model_dump"):
                    yield chunk.model_dump()
                else:
                    yield dict(chunk)
        except Exception as e:
            logger.error(f"Chat stream failed: {e}")
            raise

    async def chat(
        self,
        model: str,
        messages: list[dict[str, Any]],
        options: dict[str, Any] | None = None,
    ) -> str:
        """Run a chat completion and return the full assistant text."""
        content_parts: list[str] = []

        async for chunk in self.chat_stream(model=model, messages=messages, options=options):
            message = chunk.get("message") or {}
            content = message.get("content") or ""
            if content:
                content_parts.append(content)

        return "".join(content_parts)

    async def close(self) -> None:
        """Close the client.

        ollama.AsyncClient manages its own httpx connection pool.
        """
        logger.debug("OllamaClient closed")
