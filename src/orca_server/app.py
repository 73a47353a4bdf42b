"""FastAPI application factory and lifespan management.

This module contains the create_app() factory function that creates and configures
the FastAPI application instance, including lifespan management for startup/shutdown
and router registration.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from orca_server.agents import build_orca_settings, load_user_config, resolve_agents
from orca_server.config import OrcaServerSettings
from orca_server.dispatch import DispatchService
from orca_server.hitl import HITLService
from orca_server.ollama import OllamaClient
from orca_server.planning import PlanningService
from orca_server.routers import agents, executions, health, orca, plans, questions
from orca_server.runtime import OllamaAgentRuntime, QuestionBoard, SessionStore
from orca_server.services import OrcaService

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Lifespan context manager for FastAPI application.

    Everything requests share is built once here and stored in app.state:
    the Ollama client, the resolved agent registry, the agent runtime and
    the HITL, planning, dispatch and orchestration services.

    Args:
        app: The FastAPI application instance.

    Yields:
        None: Control is yielded while the app is running.
    """
    settings: OrcaServerSettings = app.state.settings
    app.state.ollama_client = OllamaClient(host=settings.ollama_host)
    logger.info(f"Initialized Ollama client with host: {settings.ollama_host}")

    connected = await app.state.ollama_client.check_connection()
    if connected:
        logger.info("Successfully connected to Ollama")
    else:
        logger.warning("Could not connect to Ollama - check if server is running")

    # Agent registry: built-in defaults merged with .opencode/orca.json
    user_config = load_user_config(settings.working_dir)
    app.state.agents = resolve_agents(user_config)
    app.state.orca_settings = build_orca_settings(
        default_supervised=settings.default_supervised,
        default_model=settings.default_model,
        max_retries=settings.validation_max_retries,
        wrap_plain_text=settings.validation_wrap_plain_text,
        user_config=user_config,
    )

    app.state.question_board = QuestionBoard()
    runtime = OllamaAgentRuntime(
        ollama_client=app.state.ollama_client,
        session_store=SessionStore(settings.resolved_sessions_dir),
        agents=app.state.agents,
        default_model=app.state.orca_settings.default_model or settings.default_model,
        question_board=app.state.question_board,
    )
    app.state.runtime = runtime
    app.state.hitl_service = HITLService(runtime, timeout_seconds=settings.question_timeout_seconds)
    app.state.planning_service = PlanningService(settings.working_dir)
    app.state.dispatch_service = DispatchService(
        runtime=runtime,
        agents=app.state.agents,
        settings=app.state.orca_settings,
        directory=str(settings.working_dir.resolve()),
    )
    app.state.orca_service = OrcaService(
        runtime=runtime,
        dispatch=app.state.dispatch_service,
        planning=app.state.planning_service,
        working_dir=settings.working_dir,
        hitl=app.state.hitl_service,
    )
    logger.info(f"Orchestration ready with {len(app.state.agents)} agents in {settings.working_dir}")

    yield

    if app.state.hitl_service.has_pending_questions():
        logger.warning(
            f"Shutting down with {app.state.hitl_service.pending_count()} pending question(s)"
        )

    if hasattr(app.state, "ollama_client"):
        await app.state.ollama_client.close()
        logger.info("Ollama client closed")


def create_app(settings: OrcaServerSettings | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Optional OrcaServerSettings instance. If not provided,
                  settings will be loaded from environment variables.

    Returns:
        FastAPI: Configured FastAPI application instance.
    """
    if settings is None:
        from orca_server.dependencies import get_settings

        settings = get_settings()

    app = FastAPI(
        title="orca-server",
        description="Orchestration server routing planned tasks between LLM agents",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.state.settings = settings

    # Note: FastAPI's type hints for add_middleware are overly strict
    app.add_middleware(
        CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health.router)
    app.include_router(agents.router)
    app.include_router(plans.router)
    app.include_router(executions.router)
    app.include_router(questions.router)
    app.include_router(orca.router)

    return app
