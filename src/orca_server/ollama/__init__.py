"""Ollama client used by the bundled agent runtime."""

from orca_server.ollama.client import OllamaClient

__all__ = ["OllamaClient"]
