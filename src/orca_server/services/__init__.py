"""Business logic services for orca-server."""

from orca_server.services.orchestrator import (
    ExecutionOutcome,
    InvokeOutcome,
    OrcaService,
    StepResult,
)

__all__ = ["ExecutionOutcome", "InvokeOutcome", "OrcaService", "StepResult"]
