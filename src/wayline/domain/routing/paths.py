from __future__ import annotations

from typing import List

from wayline.domain.models import MissionSettings, PathType, Shape, Waypoint
from wayline.domain.routing.grid import generate_grid_path
from wayline.domain.routing.orbit import generate_orbit_path


def generate_path(shape: Shape, settings: MissionSettings) -> List[Waypoint]:
    """Generate waypoints for the path type selected in ``settings``."""
    if settings.path_type == PathType.ORBIT:
        return generate_orbit_path(shape, settings)
    return generate_grid_path(shape, settings)
