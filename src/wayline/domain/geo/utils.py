"""Geometry utilities for waypoint planning.

Geodesic measurements (distance, bearing, destination) use a spherical earth
through ``pyproj.Geod`` so results agree with the web map. Planar work
(rotation, line clipping) happens in a small equirectangular frame around a
pivot, measured in degrees of latitude.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

import shapely
from pyproj import Geod
from shapely import affinity
from shapely.geometry import LineString, MultiPoint, Point, Polygon
from shapely.ops import split

LonLat = Tuple[float, float]

# Mean earth radius used by the map client (meters)
EARTH_RADIUS_M = 6371008.8

# Flat-earth conversion for spacing: meters per degree of latitude
METERS_PER_DEGREE = 111111.0

_GEOD = Geod(a=EARTH_RADIUS_M, b=EARTH_RADIUS_M)


# ------------------------------ numeric helpers ------------------------------ #

def round_half_up(value: float) -> int:
    """Round to nearest integer with halves going up (JS ``Math.round``)."""
    return int(math.floor(value + 0.5))


def normalize_heading(heading: float) -> float:
    """Wrap an angle into ``[0, 360)``."""
    h = float(heading) % 360.0
    return 0.0 if h >= 360.0 else h


def to_dji_heading(heading: float) -> float:
    """Convert ``[0, 360)`` heading to the ``[-180, 180]`` range used in WPML."""
    h = normalize_heading(heading)
    return h - 360.0 if h > 180.0 else h


# ------------------------------ geodesic basics ------------------------------ #

def distance_m(a: LonLat, b: LonLat) -> float:
    """Great-circle distance in meters."""
    _, _, dist = _GEOD.inv(a[0], a[1], b[0], b[1])
    return float(dist)


def bearing_deg(a: LonLat, b: LonLat) -> float:
    """Initial bearing from ``a`` to ``b`` in ``[0, 360)``; 0 for identical points."""
    if a[0] == b[0] and a[1] == b[1]:
        return 0.0
    az, _, _ = _GEOD.inv(a[0], a[1], b[0], b[1])
    return normalize_heading(az)


def destination(origin: LonLat, dist_m: float, bearing: float) -> LonLat:
    """Point reached from ``origin`` after ``dist_m`` meters along ``bearing``."""
    lon, lat, _ = _GEOD.fwd(origin[0], origin[1], bearing, dist_m)
    return (float(lon), float(lat))


def path_distances_m(points: Sequence[LonLat]) -> List[float]:
    """Distances between consecutive points."""
    return [distance_m(points[i], points[i + 1]) for i in range(len(points) - 1)]


# ------------------------------- ring helpers -------------------------------- #

def distinct_vertices(ring: Iterable[LonLat]) -> List[LonLat]:
    seen: List[LonLat] = []
    for p in ring:
        if p not in seen:
            seen.append(p)
    return seen


def vertex_centroid(ring: Sequence[LonLat]) -> LonLat:
    """Mean of ring vertices (open ring, no closing position)."""
    if not ring:
        raise ValueError("vertex_centroid needs at least one vertex")
    c = MultiPoint(list(ring)).centroid
    return (float(c.x), float(c.y))


def longest_edge_bearing(ring: Sequence[LonLat]) -> float:
    """Bearing of the longest edge of a closed ring given as open vertex list."""
    best_len = -1.0
    best_bearing = 0.0
    n = len(ring)
    for i in range(n):
        a, b = ring[i], ring[(i + 1) % n]
        d = distance_m(a, b)
        if d > best_len:
            best_len = d
            best_bearing = bearing_deg(a, b)
    return best_bearing


def point_in_polygon(point: LonLat, ring: Sequence[LonLat]) -> bool:
    """True if the point lies inside or on the boundary of the ring."""
    return Polygon(ring).covers(Point(point))


def circle_polygon(center: LonLat, radius_m: float, steps: int = 64) -> Polygon:
    """Geodesic circle approximated by ``steps`` vertices, drawn counter-clockwise."""
    if radius_m <= 0:
        raise ValueError("circle radius must be positive")
    coords = [destination(center, radius_m, i * -360.0 / steps) for i in range(steps)]
    coords.append(coords[0])
    return Polygon(coords)


def camera_footprint(center: LonLat, altitude: float, heading: float, hfov: float) -> Optional[Polygon]:
    """Ground footprint of a nadir 4:3 camera, long side across ``heading``.

    Returns None when altitude or FOV is missing or zero.
    """
    if not altitude or not hfov:
        return None
    width = 2.0 * altitude * math.tan(math.radians(hfov / 2.0))
    hw, hh = width / 2.0, width * 0.75 / 2.0
    diag = math.hypot(hw, hh)
    corner = math.degrees(math.atan2(hw, hh))
    bearings = (corner, 180.0 - corner, 180.0 + corner, 360.0 - corner)
    coords = [destination(center, diag, heading + b) for b in bearings]
    coords.append(coords[0])
    return Polygon(coords)


# ------------------------------- local frame --------------------------------- #

@dataclass(frozen=True)
class LocalFrame:
    """Equirectangular frame centered on ``origin``.

    ``x = (lon - lon0) * cos(lat0)``, ``y = lat - lat0``; both in degrees of
    latitude, so ``METERS_PER_DEGREE`` converts lengths to meters.
    """
    origin: LonLat

    @property
    def kx(self) -> float:
        return math.cos(math.radians(self.origin[1]))

    def to_local(self, geom):
        lon0, lat0 = self.origin
        kx = self.kx

        def fn(coords):
            out = coords.copy()
            out[:, 0] = (coords[:, 0] - lon0) * kx
            out[:, 1] = coords[:, 1] - lat0
            return out

        return shapely.transform(geom, fn)

    def to_lonlat(self, geom):
        lon0, lat0 = self.origin
        kx = self.kx

        def fn(coords):
            out = coords.copy()
            out[:, 0] = coords[:, 0] / kx + lon0
            out[:, 1] = coords[:, 1] + lat0
            return out

        return shapely.transform(geom, fn)


def rotate_local(geom, angle_deg: float):
    """Rotate a local-frame geometry about the frame origin, clockwise-positive."""
    return affinity.rotate(geom, -angle_deg, origin=(0.0, 0.0))


def rotate_geometry(geom, angle_deg: float, pivot: LonLat):
    """Rotate a lon/lat geometry about ``pivot`` by ``angle_deg`` (clockwise)."""
    frame = LocalFrame(pivot)
    return frame.to_lonlat(rotate_local(frame.to_local(geom), angle_deg))


# ------------------------------- line clipping ------------------------------- #

def split_line_by_polygon(line: LineString, poly: Polygon) -> List[LineString]:
    """Pieces of ``line`` lying inside ``poly``, ordered by their minimum x.

    The line is split at polygon edges; a piece is kept when its midpoint is
    covered by the polygon. A line fully inside comes back whole.
    """
    if not line.intersects(poly):
        return []
    pieces = []
    for piece in split(line, poly).geoms:
        if piece.length <= 0:
            continue
        mid = piece.interpolate(0.5, normalized=True)
        if poly.covers(mid):
            pieces.append(piece)
    pieces.sort(key=lambda ls: ls.bounds[0])
    return pieces
