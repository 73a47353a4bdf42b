"""orca-server: orchestration server routing planned tasks between LLM agents.

This package provides a REST API and SSE interface for planning work with a
planner agent, approving plans, executing them step by step on specialist
agents, and answering the agents' questions.
"""

from orca_server.app import create_app

__version__ = "0.1.0"

__all__ = ["create_app", "__version__"]
