"""FastAPI dependencies."""

from __future__ import annotations

from planner.service import PlannerService, WaylinePlannerService

_planner_service: PlannerService = WaylinePlannerService()


def get_planner_service() -> PlannerService:
    """Return planner service singleton."""
    return _planner_service
