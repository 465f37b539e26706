"""Request/response schemas for planner API."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class PlanRequest(BaseModel):
    """Plan request: drawn shape plus settings payload."""

    shape: dict[str, Any]
    settings: dict[str, Any] = Field(default_factory=dict)


class PlanResponse(BaseModel):
    """Plan response."""

    plan: dict[str, Any]
    logs: list[str]


class ExportRequest(BaseModel):
    """KMZ export request."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    waypoints: list[dict[str, Any]] = Field(..., min_length=1)
    settings: dict[str, Any] = Field(default_factory=dict)
    filename: str = Field("mission", min_length=1, max_length=255)
    shape: dict[str, Any] | None = None
    include_session: bool = True


class ImportResponse(BaseModel):
    """Imported mission response."""

    mission: dict[str, Any]
    logs: list[str]


class DroneItem(BaseModel):
    """Drone preset list item."""

    id: str
    name: str
    hfov: float | None
    photo_interval: float
    max_flight_time: float | None
    is_default: bool
