"""File storage for plans.

Layout under the working directory::

    .opencode/plans/<plan_id>.json                 one plan document
    .opencode/plans/<plan_id>/<execution_id>.json  one document per execution

Documents are pretty-printed UTF-8 JSON. There is no locking; a single
writer per plan is assumed.
"""

import json
import logging
import shutil
from pathlib import Path
from typing import TypeVar

from pydantic import BaseModel, ValidationError

from orca_server.errors import StorageError
from orca_server.planning.types import Plan

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

PLANS_DIR = Path(".opencode") / "plans"


def read_document(path: Path, model: type[ModelT]) -> ModelT | None:
    """Read and validate a JSON document.

    Args:
        path: File to read
        model: Pydantic model to validate against

    Returns:
        The validated model, or None if the file does not exist

    Raises:
        StorageError: If the file exists but is not a valid document
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        return None
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise StorageError(path, str(e)) from e

    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise StorageError(path, str(e)) from e


def write_document(path: Path, document: BaseModel) -> None:
    """Write a model as a pretty-printed JSON document, creating parent dirs."""
    path.parent.mkdir(parents=True, exist_ok=True)
    data = document.model_dump(mode="json", exclude_none=True)

    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)
        f.write("\n")

    logger.debug(f"Wrote {path}")


class PlanStore:
    """Reads and writes plan documents below a working directory."""

    def __init__(self, working_dir: Path):
        self.working_dir = Path(working_dir)

    @property
    def plans_dir(self) -> Path:
        return self.working_dir / PLANS_DIR

    def plan_path(self, plan_id: str) -> Path:
        return self.plans_dir / f"{plan_id}.json"

    def executions_dir(self, plan_id: str) -> Path:
        return self.plans_dir / plan_id

    def read(self, plan_id: str) -> Plan | None:
        return read_document(self.plan_path(plan_id), Plan)

    def write(self, plan: Plan) -> None:
        write_document(self.plan_path(plan.plan_id), plan)

    def list_ids(self) -> list[str]:
        """IDs of all stored plans, in no particular order."""
        if not self.plans_dir.exists():
            return []
        return [path.stem for path in self.plans_dir.glob("*.json") if path.is_file()]

    def exists(self, plan_id: str) -> bool:
        return self.plan_path(plan_id).exists()

    def has_executions(self, plan_id: str) -> bool:
        return self.executions_dir(plan_id).is_dir()

    def delete(self, plan_id: str) -> None:
        """Delete a plan document and all of its executions."""
        self.plan_path(plan_id).unlink(missing_ok=True)
        executions_dir = self.executions_dir(plan_id)
        if executions_dir.exists():
            shutil.rmtree(executions_dir)
        logger.debug(f"Deleted plan files for {plan_id}")
