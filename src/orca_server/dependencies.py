"""Dependency injection providers for FastAPI endpoints.

This module provides FastAPI dependency functions that are used across
multiple routers to inject settings and the services created at startup.
"""

from functools import lru_cache

from fastapi import HTTPException, Request

from orca_server.agents.config import AgentConfig, OrcaSettings
from orca_server.config import OrcaServerSettings
from orca_server.dispatch import DispatchService
from orca_server.execution import ExecutionService
from orca_server.hitl import HITLService
from orca_server.planning import PlanningService
from orca_server.runtime import QuestionBoard
from orca_server.services import OrcaService


@lru_cache
def get_settings() -> OrcaServerSettings:
    """Get the application settings instance.

    This function is cached so that the same settings instance is reused
    across all requests. Settings are loaded from environment variables
    with the ORCA_ prefix.

    Returns:
        OrcaServerSettings: The application configuration settings.
    """
    return OrcaServerSettings()


def _state(request: Request, name: str):
    if not hasattr(request.app.state, name):
        raise HTTPException(
            status_code=503,
            detail=f"{name.replace('_', ' ').capitalize()} not initialized",
        )
    return getattr(request.app.state, name)


def get_agents(request: Request) -> dict[str, AgentConfig]:
    return _state(request, "agents")


def get_orca_settings(request: Request) -> OrcaSettings:
    return _state(request, "orca_settings")


def get_planning_service(request: Request) -> PlanningService:
    return _state(request, "planning_service")


def get_execution_service(plan_id: str, request: Request) -> ExecutionService:
    """Get an ExecutionService for the plan in the request path.

    Creates a new ExecutionService per request; it shares the planning
    service from app state so both see the same working directory.
    """
    settings = request.app.state.settings
    return ExecutionService(
        settings.working_dir,
        plan_id,
        planning_service=get_planning_service(request),
    )


def get_dispatch_service(request: Request) -> DispatchService:
    return _state(request, "dispatch_service")


def get_hitl_service(request: Request) -> HITLService:
    return _state(request, "hitl_service")


def get_question_board(request: Request) -> QuestionBoard:
    return _state(request, "question_board")


def get_orca_service(request: Request) -> OrcaService:
    return _state(request, "orca_service")
