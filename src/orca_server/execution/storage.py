"""File storage for plan executions, one JSON document per execution."""

from pathlib import Path

from orca_server.execution.types import PlanExecution
from orca_server.planning.storage import PlanStore, read_document, write_document


class ExecutionStore:
    """Reads and writes the executions of a single plan."""

    def __init__(self, working_dir: Path, plan_id: str):
        self.plan_id = plan_id
        self.executions_dir = PlanStore(working_dir).executions_dir(plan_id)

    def execution_path(self, execution_id: str) -> Path:
        return self.executions_dir / f"{execution_id}.json"

    def read(self, execution_id: str) -> PlanExecution | None:
        return read_document(self.execution_path(execution_id), PlanExecution)

    def write(self, execution: PlanExecution) -> None:
        write_document(self.execution_path(execution.execution_id), execution)

    def list_ids(self) -> list[str]:
        if not self.executions_dir.exists():
            return []
        return [path.stem for path in self.executions_dir.glob("*.json") if path.is_file()]

    def latest_id(self) -> str | None:
        """The most recent execution ID (IDs sort chronologically)."""
        ids = self.list_ids()
        return max(ids) if ids else None
