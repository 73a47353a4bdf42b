"""Planning service: CRUD and stage transitions for plans.

Stage machine::

    draft --submit--> proposal --approve--> approved
                         |  ^
                         |  +--revise
                         +--reject--> rejected

Every operation loads the current document, checks its guard, and writes a
complete new document. A failed guard leaves the stored plan untouched.
"""

import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from orca_server.errors import PlanNotFoundError, PlanValidationError, StageError, StepIndexError
from orca_server.identifier import generate_id
from orca_server.planning.storage import PlanStore
from orca_server.planning.types import Plan, PlanContent, PlanSummary, missing_plan_fields
from orca_server.protocol.messages import PlanStep, utc_now

logger = logging.getLogger(__name__)


class PlanningService:
    """Manages plans stored below a working directory."""

    def __init__(self, working_dir: Path):
        """Initialize the PlanningService.

        Args:
            working_dir: Project working directory; plans live in .opencode/plans
        """
        self.store = PlanStore(working_dir)

    # --- Creation ---

    async def create_draft(self, session_id: str, goal: str) -> Plan:
        """Create an empty draft plan.

        Args:
            session_id: Planner session that owns the plan
            goal: What the plan will achieve

        Returns:
            The new draft plan
        """
        now = utc_now()
        plan = Plan(
            plan_id=generate_id("plan"),
            planner_session_id=session_id,
            created_at=now,
            updated_at=now,
            stage="draft",
            goal=goal,
        )
        self.store.write(plan)
        logger.info(f"Created draft plan {plan.plan_id}: {goal}")
        return plan

    async def create_proposal(self, session_id: str, content: PlanContent) -> Plan:
        """Create a complete plan directly in the proposal stage.

        Used when an agent emits a whole plan in one message.
        """
        now = utc_now()
        plan = Plan(
            plan_id=generate_id("plan"),
            planner_session_id=session_id,
            created_at=now,
            updated_at=now,
            stage="proposal",
            **content.model_dump(),
        )
        self.store.write(plan)
        logger.info(f"Created plan proposal {plan.plan_id} with {len(plan.steps)} steps")
        return plan

    # --- Draft editing ---

    async def add_step(self, plan_id: str, step: PlanStep, position: int | None = None) -> Plan:
        """Add a step to a draft plan.

        Args:
            plan_id: The plan to modify
            step: The step to add
            position: Insert position (0-indexed); appends when omitted or past the end

        Returns:
            The updated plan

        Raises:
            PlanNotFoundError: If the plan does not exist
            StageError: If the plan is not a draft
            StepIndexError: If position is negative
        """
        plan = self._get_draft(plan_id)
        steps = list(plan.steps)

        if position is None or position >= len(steps):
            steps.append(step)
        elif position < 0:
            raise StepIndexError(f"Step position {position} must not be negative")
        else:
            steps.insert(position, step)

        return self._save(plan, steps=steps)

    async def update_step(self, plan_id: str, index: int, updates: dict[str, Any]) -> Plan:
        """Update fields of an existing step in a draft plan.

        Raises:
            PlanValidationError: If updates is empty or yields an invalid step
            StepIndexError: If index is out of range
        """
        if not updates:
            raise PlanValidationError("At least one field must be provided")

        plan = self._get_draft(plan_id)
        self._check_index(plan, index)

        steps = list(plan.steps)
        try:
            steps[index] = PlanStep.model_validate(
                {**steps[index].model_dump(exclude_none=True), **updates}
            )
        except ValidationError as e:
            raise PlanValidationError(f"Invalid step update: {e}") from e

        return self._save(plan, steps=steps)

    async def remove_step(self, plan_id: str, index: int) -> Plan:
        """Remove a step from a draft plan."""
        plan = self._get_draft(plan_id)
        self._check_index(plan, index)

        steps = list(plan.steps)
        del steps[index]
        return self._save(plan, steps=steps)

    async def set_plan_assumptions(self, plan_id: str, assumptions: list[str]) -> Plan:
        plan = self._get_draft(plan_id)
        return self._save(plan, assumptions=list(assumptions))

    async def set_plan_verification(self, plan_id: str, verification: list[str]) -> Plan:
        plan = self._get_draft(plan_id)
        return self._save(plan, verification=list(verification))

    async def set_plan_risks(self, plan_id: str, risks: list[str]) -> Plan:
        plan = self._get_draft(plan_id)
        return self._save(plan, risks=list(risks))

    async def set_files_touched(self, plan_id: str, files: list[str]) -> Plan:
        plan = self._get_draft(plan_id)
        return self._save(plan, files_touched=list(files))

    # --- Transitions ---

    async def submit(self, plan_id: str, summary: str | None = None) -> Plan:
        """Move a complete draft to the proposal stage.

        Raises:
            PlanValidationError: If steps, assumptions, verification or risks is empty
        """
        plan = self._get_draft(plan_id)

        missing = missing_plan_fields(plan)
        if missing:
            raise PlanValidationError(
                f"Cannot submit plan {plan_id}: {', '.join(missing)} must not be empty"
            )

        updates: dict[str, Any] = {"stage": "proposal"}
        if summary is not None:
            updates["summary"] = summary

        updated = self._save(plan, **updates)
        logger.info(f"Submitted plan {plan_id} with {len(plan.steps)} steps")
        return updated

    async def revise(self, plan_id: str, content: PlanContent) -> Plan:
        """Replace the full content of a proposal; the stage stays proposal."""
        plan = self.get_plan_or_raise(plan_id)
        if plan.stage != "proposal":
            raise StageError(f"Cannot revise plan in stage: {plan.stage}")

        updated = self._save(plan, **content.model_dump())
        logger.info(f"Revised plan {plan_id}")
        return updated

    async def approve(self, plan_id: str) -> Plan:
        plan = self.get_plan_or_raise(plan_id)
        if plan.stage != "proposal":
            raise StageError(f"Cannot approve plan in stage: {plan.stage}")

        updated = self._save(plan, stage="approved")
        logger.info(f"Approved plan {plan_id}")
        return updated

    async def reject(self, plan_id: str, reason: str | None = None) -> Plan:
        plan = self.get_plan_or_raise(plan_id)
        if plan.stage != "proposal":
            raise StageError(f"Cannot reject plan in stage: {plan.stage}")

        updated = self._save(plan, stage="rejected", rejection_reason=reason)
        logger.info(f"Rejected plan {plan_id}" + (f": {reason}" if reason else ""))
        return updated

    # --- Queries ---

    async def get_plan(self, plan_id: str) -> Plan | None:
        return self.store.read(plan_id)

    def get_plan_or_raise(self, plan_id: str) -> Plan:
        """Load a plan.

        Raises:
            PlanNotFoundError: If the plan does not exist
            StorageError: If the plan file is malformed
        """
        plan = self.store.read(plan_id)
        if plan is None:
            raise PlanNotFoundError(plan_id)
        return plan

    async def list_plans(self) -> list[PlanSummary]:
        """List plan summaries, newest first."""
        summaries: list[PlanSummary] = []

        for plan_id in self.store.list_ids():
            plan = self.store.read(plan_id)
            if plan is None:
                continue
            summaries.append(
                PlanSummary(
                    plan_id=plan.plan_id,
                    goal=plan.goal,
                    stage=plan.stage,
                    created_at=plan.created_at,
                    step_count=len(plan.steps),
                    has_executions=self.store.has_executions(plan_id),
                )
            )

        # IDs encode creation time
        summaries.sort(key=lambda s: s.plan_id, reverse=True)
        return summaries

    async def remove_plan(self, plan_id: str) -> None:
        """Delete a plan and all of its executions.

        Raises:
            PlanNotFoundError: If the plan does not exist
        """
        if not self.store.exists(plan_id):
            raise PlanNotFoundError(plan_id)
        self.store.delete(plan_id)
        logger.info(f"Removed plan {plan_id}")

    # --- Helpers ---

    def _get_draft(self, plan_id: str) -> Plan:
        plan = self.get_plan_or_raise(plan_id)
        if plan.stage != "draft":
            raise StageError(f"Plan {plan_id} is not a draft (current stage: {plan.stage})")
        return plan

    @staticmethod
    def _check_index(plan: Plan, index: int) -> None:
        if not plan.steps:
            raise StepIndexError(f"Step index {index} out of range (plan has no steps)")
        if index < 0 or index >= len(plan.steps):
            raise StepIndexError(
                f"Step index {index} out of range (0-{len(plan.steps) - 1})"
            )

    def _save(self, plan: Plan, **updates: Any) -> Plan:
        data = plan.model_dump()
        data.update(updates)
        data["updated_at"] = utc_now()
        updated = Plan.model_validate(data)
        self.store.write(updated)
        return updated
