"""Pydantic models for API request and response schemas.

This package contains all Pydantic models used for validating and
serializing API requests and responses across all endpoints.
"""

from orca_server.models.agents import AgentInfo, AgentListResponse
from orca_server.models.health import HealthResponse
from orca_server.models.orca import (
    AskAgentRequest,
    DispatchResponse,
    InvokeRequest,
    InvokeResponse,
)

__all__ = [
    "AgentInfo",
    "AgentListResponse",
    "HealthResponse",
    "AskAgentRequest",
    "DispatchResponse",
    "InvokeRequest",
    "InvokeResponse",
]
