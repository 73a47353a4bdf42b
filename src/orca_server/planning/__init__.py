"""Plan lifecycle: drafts, proposals, approval and rejection."""

from orca_server.planning.service import PlanningService
from orca_server.planning.storage import PlanStore
from orca_server.planning.types import Plan, PlanContent, PlanStage, PlanSummary

__all__ = [
    "PlanningService",
    "PlanStore",
    "Plan",
    "PlanContent",
    "PlanStage",
    "PlanSummary",
]
