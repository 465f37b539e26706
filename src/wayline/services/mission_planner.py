"""Two-pass mission planning: generate, check photo timing, replan if needed."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from wayline.domain.metrics.estimates import EstimateResult, calculate_max_speed, estimate_mission
from wayline.domain.migrations import normalize_settings
from wayline.domain.models import MissionSettings, PathType, Shape, Waypoint, WaypointAction
from wayline.domain.routing.grid import grid_geometry, resolve_scan_angle
from wayline.domain.routing.orbit import orbit_center_radius
from wayline.domain.routing.paths import generate_path

# Replanned speed is floored to this step (m/s)
SPEED_STEP_MS = 0.1


def _log(log_fn: Optional[Callable[[str], None]], msg: str) -> None:
    if log_fn:
        log_fn(msg)


@dataclass
class PlanResult:
    """Planned mission.

    Attributes:
        waypoints: Final waypoints, empty when nothing intersects the shape.
        settings: Settings actually used (speed may be lowered).
        estimate: Metrics for the final waypoints.
        replanned: True when a second pass ran with a safe speed.
    """
    waypoints: List[Waypoint]
    settings: MissionSettings
    estimate: EstimateResult
    replanned: bool = False
    extras: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not self.waypoints

    def to_dict(self) -> Dict[str, Any]:
        return {
            "waypoints": [w.model_dump(mode="json", by_alias=True) for w in self.waypoints],
            "settings": self.settings.to_json_dict(),
            "metrics": self.estimate.to_dict(),
            "replanned": self.replanned,
            "extras": self.extras,
        }


def safe_speed(max_speed: float) -> float:
    """Floor a speed limit to 0.1 m/s, never below 0.1."""
    return max(SPEED_STEP_MS, math.floor(max_speed * 10.0) / 10.0)


def _path_extras(shape: Shape, settings: MissionSettings) -> Dict[str, Any]:
    """Geometry figures the UI shows next to the plan."""
    if settings.path_type == PathType.ORBIT:
        center, radius = orbit_center_radius(shape)
        return {"center": list(center), "radius_m": round(radius, 2)}
    geom = grid_geometry(settings)
    return {
        "line_spacing_m": round(geom.line_spacing_m, 2),
        "forward_spacing_m": round(geom.forward_spacing_m, 2),
        "scan_angle_deg": round(resolve_scan_angle(shape.ring(), settings), 2),
    }


def plan_mission(
    shape: Union[Shape, Mapping[str, Any]],
    settings: Union[MissionSettings, Mapping[str, Any]],
    *,
    log_fn: Optional[Callable[[str], None]] = None,
) -> PlanResult:
    """Plan a mission, lowering speed when photos cannot keep up.

    Args:
        shape: Drawn area as Shape or GeoJSON dict.
        settings: Settings object or client payload (legacy values accepted).
        log_fn: Optional progress callback.

    Returns:
        PlanResult. The caller's settings are never modified.

    Raises:
        InvalidInputError: On an invalid shape or settings.
    """
    shape = Shape.from_geojson(shape)
    settings = normalize_settings(settings)
    _log(log_fn, f"🟦 Planning {settings.path_type.value} path")

    waypoints = generate_path(shape, settings)
    if not waypoints:
        _log(log_fn, "⚠️ No waypoints: shape too small for the current spacing")
        return PlanResult(waypoints=[], settings=settings, estimate=estimate_mission([], settings))
    _log(log_fn, f"📍 Pass 1: {len(waypoints)} waypoints")

    replanned = False
    limit = calculate_max_speed(waypoints, settings.effective_photo_interval)
    _log(
        log_fn,
        f"📷 Shortest segment {limit.min_segment_distance:.1f} m, "
        f"photo interval {settings.effective_photo_interval:.1f} s, max speed {limit.max_speed:.2f} m/s",
    )
    if (
        settings.waypoint_action == WaypointAction.PHOTO
        and limit.max_speed > 0
        and settings.speed > limit.max_speed
    ):
        new_speed = safe_speed(limit.max_speed)
        _log(log_fn, f"🐢 Speed {settings.speed:.1f} → {new_speed:.1f} m/s, replanning")
        settings = settings.model_copy(update={"speed": new_speed})
        waypoints = generate_path(shape, settings)
        replanned = True
        _log(log_fn, f"📍 Pass 2: {len(waypoints)} waypoints")

    estimate = estimate_mission(waypoints, settings)
    _log(
        log_fn,
        f"✅ Done: {estimate.distance_m:.0f} m, ~{estimate.time_s / 60.0:.1f} min ({estimate.warning_level.value})",
    )
    extras = _path_extras(shape, settings)
    return PlanResult(
        waypoints=waypoints,
        settings=settings,
        estimate=estimate,
        replanned=replanned,
        extras=extras,
    )
