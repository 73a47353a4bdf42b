"""Domain exceptions for orca-server.

State-machine guard violations are raised as these exceptions and propagate
to the caller. Only agent-communication problems are turned into failure
envelopes (see orca_server.protocol).
"""

from pathlib import Path


class OrcaError(Exception):
    """Base class for all orca-server domain errors."""


class PlanNotFoundError(OrcaError):
    """Raised when a plan ID does not resolve to a stored plan."""

    def __init__(self, plan_id: str):
        self.plan_id = plan_id
        super().__init__(f"Plan not found: {plan_id}")


class ExecutionNotFoundError(OrcaError):
    """Raised when an execution ID does not resolve to a stored execution."""

    def __init__(self, execution_id: str):
        self.execution_id = execution_id
        super().__init__(f"Execution not found: {execution_id}")


class StageError(OrcaError):
    """Raised when an operation is attempted from an illegal stage or status."""


class StepIndexError(OrcaError, IndexError):
    """Raised when a step index falls outside the valid range."""


class PlanValidationError(OrcaError, ValueError):
    """Raised when a plan is incomplete for the requested transition."""


class StorageError(OrcaError):
    """Raised when a persisted document exists but cannot be decoded."""

    def __init__(self, path: Path, reason: str):
        self.path = path
        super().__init__(f"Failed to read {path}: {reason}")


class ConfigError(OrcaError):
    """Raised when the user configuration file is malformed."""
