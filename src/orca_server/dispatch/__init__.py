"""Dispatch of tasks and questions to agents."""

from orca_server.dispatch.service import (
    DispatchAborted,
    DispatchService,
    build_checkpoint,
    build_task_prompt,
)
from orca_server.dispatch.types import (
    AgentQuestionRequest,
    DispatchContext,
    DispatchResult,
    TaskRequest,
)

__all__ = [
    "DispatchAborted",
    "DispatchService",
    "build_checkpoint",
    "build_task_prompt",
    "AgentQuestionRequest",
    "DispatchContext",
    "DispatchResult",
    "TaskRequest",
]
