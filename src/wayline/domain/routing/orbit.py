"""Orbit path: evenly spaced points on a circle, camera facing the center."""

from __future__ import annotations

import math
from typing import List, Tuple

from wayline.domain.geo.utils import (
    bearing_deg,
    destination,
    distance_m,
    distinct_vertices,
    normalize_heading,
    round_half_up,
    vertex_centroid,
)
from wayline.domain.models import (
    LonLat,
    MissionSettings,
    OrbitDirection,
    Shape,
    Waypoint,
    new_waypoint_id,
)


def orbit_center_radius(shape: Shape) -> Tuple[LonLat, float]:
    """Center and radius of the orbit.

    A drawn circle carries its own center and radius. Any other polygon uses
    the vertex centroid and the mean vertex distance from it (an
    approximation, not an enclosing circle).
    """
    center = shape.circle_center
    radius = shape.circle_radius
    if center is not None and radius is not None:
        return center, radius
    ring = shape.ring()
    center = vertex_centroid(ring)
    radius = sum(distance_m(center, p) for p in ring) / len(ring)
    return center, radius


def orbit_point_count(radius_m: float, spacing_m: float, orbits: float) -> Tuple[int, int]:
    """Return ``(points_per_revolution, total)`` for the given sweep."""
    per_rev = max(3, round_half_up(2.0 * math.pi * radius_m / spacing_m))
    total = max(1, round_half_up(per_rev * orbits))
    return per_rev, total


def generate_orbit_path(shape: Shape, settings: MissionSettings) -> List[Waypoint]:
    """Plan an orbit around ``shape``.

    The first point sits at ``start_angle`` (0 = east, counter-clockwise).
    Whole-number orbit counts close the loop without repeating the first
    point; fractional counts end on the partial lap.

    Args:
        shape: Drawn circle or polygon.
        settings: Mission settings; orbit fields are used.

    Returns:
        Waypoints in flight order, empty for a zero-radius shape.
    """
    if not shape.is_circle and len(distinct_vertices(shape.ring())) < 3:
        return []
    center, radius = orbit_center_radius(shape)
    if radius <= 0:
        return []

    orbits = float(settings.number_of_orbits)
    _, total = orbit_point_count(radius, settings.spacing, orbits)
    closed = orbits.is_integer()
    count = total if closed else total + 1

    sign = 1.0 if settings.direction == OrbitDirection.CLOCKWISE else -1.0
    first_bearing = 90.0 - float(settings.start_angle)
    sweep = orbits * 360.0

    waypoints: List[Waypoint] = []
    for i in range(count):
        bearing = first_bearing + sign * sweep * i / total
        lng, lat = destination(center, radius, bearing)
        heading = normalize_heading(round_half_up(bearing_deg((lng, lat), center)))
        waypoints.append(
            Waypoint(
                id=new_waypoint_id(),
                lng=lng,
                lat=lat,
                altitude=settings.altitude,
                speed=settings.speed,
                gimbal_pitch=settings.gimbal_pitch,
                heading=heading,
                straighten_legs=settings.straighten_legs,
                action=settings.waypoint_action,
            )
        )
    return waypoints
