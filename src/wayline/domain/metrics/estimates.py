"""Mission metrics: safe photo speed, distance, flight time and endurance.

Assumptions:
    - Distances are great-circle meters between consecutive waypoints.
    - Flight time is distance over a constant speed plus a fixed overhead.
    - Endurance comes from the drone preset (minutes); no preset, no warning.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Sequence

from wayline.domain.geo.utils import path_distances_m
from wayline.domain.models import MissionSettings, Waypoint
from wayline.domain.presets import FLIGHT_WARNING_THRESHOLD, TAKEOFF_LANDING_OVERHEAD_S


# --------------------------- результаты --------------------------- #

@dataclass(frozen=True)
class SpeedLimit:
    """Fastest speed that still lets the camera fire between waypoints."""
    max_speed: float
    min_segment_distance: float


class WarningLevel(str, Enum):
    SAFE = "safe"
    WARNING = "warning"
    CRITICAL = "critical"


@dataclass
class EstimateResult:
    """Calculated mission metrics."""
    # расстояния
    distance_m: float
    min_segment_m: float

    # скорости
    max_safe_speed_ms: float
    effective_speed_ms: float

    # время
    time_s: float
    max_flight_time_min: Optional[float]
    warning_level: WarningLevel

    waypoint_count: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "distance_m": round(self.distance_m, 1),
            "min_segment_m": round(self.min_segment_m, 2),
            "max_safe_speed_ms": round(self.max_safe_speed_ms, 2),
            "effective_speed_ms": round(self.effective_speed_ms, 2),
            "time_s": round(self.time_s, 1),
            "time_min": round(self.time_s / 60.0, 1),
            "max_flight_time_min": self.max_flight_time_min,
            "warning_level": self.warning_level.value,
            "waypoint_count": self.waypoint_count,
        }


# ------------------------------ расчёты ------------------------------ #

def calculate_max_speed(waypoints: Sequence[Waypoint], photo_interval: float) -> SpeedLimit:
    """Max speed that leaves ``photo_interval`` seconds on the shortest segment.

    Returns ``SpeedLimit(0, 0)`` for fewer than two waypoints or a
    non-positive interval.
    """
    if len(waypoints) < 2 or photo_interval <= 0:
        return SpeedLimit(0.0, 0.0)
    min_dist = min(path_distances_m([w.position for w in waypoints]))
    return SpeedLimit(max_speed=min_dist / photo_interval, min_segment_distance=min_dist)


def total_distance_m(waypoints: Sequence[Waypoint]) -> float:
    if len(waypoints) < 2:
        return 0.0
    return float(sum(path_distances_m([w.position for w in waypoints])))


def mission_time_s(distance: float, speed: float, overhead_s: float = TAKEOFF_LANDING_OVERHEAD_S) -> float:
    """Flight time in seconds; 0 for a non-positive speed."""
    if speed <= 0:
        return 0.0
    return distance / speed + overhead_s


def flight_warning_level(time_s: float, max_flight_time_min: Optional[float]) -> WarningLevel:
    """Classify flight time against rated endurance."""
    if not max_flight_time_min or max_flight_time_min <= 0:
        return WarningLevel.SAFE
    ratio = time_s / (max_flight_time_min * 60.0)
    if ratio >= 1.0:
        return WarningLevel.CRITICAL
    if ratio >= FLIGHT_WARNING_THRESHOLD:
        return WarningLevel.WARNING
    return WarningLevel.SAFE


def estimate_mission(waypoints: Sequence[Waypoint], settings: MissionSettings) -> EstimateResult:
    """Compute metrics for a planned mission.

    Args:
        waypoints: Planned waypoints in flight order.
        settings: Settings that produced them.

    Returns:
        EstimateResult. The effective speed is the configured speed capped by
        the safe photo speed when one exists.
    """
    limit = calculate_max_speed(waypoints, settings.effective_photo_interval)
    distance = total_distance_m(waypoints)
    speed = settings.speed
    if limit.max_speed > 0:
        speed = min(speed, limit.max_speed)
    time_s = mission_time_s(distance, speed) if waypoints else 0.0
    endurance = settings.max_flight_time
    return EstimateResult(
        distance_m=distance,
        min_segment_m=limit.min_segment_distance,
        max_safe_speed_ms=limit.max_speed,
        effective_speed_ms=speed,
        time_s=time_s,
        max_flight_time_min=endurance,
        warning_level=flight_warning_level(time_s, endurance),
        waypoint_count=len(waypoints),
    )
