"""Grid ("lawnmower") survey path over a polygon.

Rows are swept in a local frame where they run horizontally, clipped to the
polygon, joined boustrophedon-style and rotated back to lon/lat. Spacing uses
the flat 111111 m/deg conversion; this is a known precision limit for large
areas, not a bug.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import List, Sequence, Tuple

from shapely.geometry import LineString, MultiPoint, Polygon

from wayline.domain.errors import InvalidInputError
from wayline.domain.geo.utils import (
    METERS_PER_DEGREE,
    LocalFrame,
    bearing_deg,
    distinct_vertices,
    longest_edge_bearing,
    normalize_heading,
    rotate_local,
    split_line_by_polygon,
    vertex_centroid,
)
from wayline.domain.models import MissionSettings, Shape, Waypoint, new_waypoint_id

XY = Tuple[float, float]


class RowRole(str, Enum):
    NONE = "none"
    START = "start"
    END = "end"


@dataclass(frozen=True)
class PlanningPoint:
    """Planning-only point; ``row_role`` never reaches a Waypoint."""
    x: float
    y: float
    row_role: RowRole = RowRole.NONE

    @property
    def xy(self) -> XY:
        return (self.x, self.y)


@dataclass(frozen=True)
class GridGeometry:
    """Camera-derived spacings.

    Attributes:
        image_width_m: Ground footprint width at altitude.
        line_spacing_m: Distance between rows.
        forward_spacing_m: Distance between photos along a row.
    """
    image_width_m: float
    line_spacing_m: float
    forward_spacing_m: float

    @property
    def line_spacing_deg(self) -> float:
        return self.line_spacing_m / METERS_PER_DEGREE

    @property
    def forward_spacing_deg(self) -> float:
        return self.forward_spacing_m / METERS_PER_DEGREE


def grid_geometry(settings: MissionSettings) -> GridGeometry:
    """Derive row and photo spacing from altitude, FOV and overlaps.

    Raises:
        InvalidInputError: If the resulting line spacing is not positive.
    """
    width = 2.0 * settings.altitude * math.tan(math.radians(settings.hfov / 2.0))
    line_spacing = width * (1.0 - settings.side_overlap / 100.0)
    if not line_spacing > 0:
        raise InvalidInputError(f"Line spacing must be positive, got {line_spacing:.3f} m")
    # footprint height for a 4:3 sensor is 0.75 of its width
    forward = max(1.0, width * 0.75 * (1.0 - settings.front_overlap / 100.0))
    return GridGeometry(image_width_m=width, line_spacing_m=line_spacing, forward_spacing_m=forward)


def resolve_scan_angle(ring: Sequence[Tuple[float, float]], settings: MissionSettings) -> float:
    """Scan angle in degrees; 0 means rows run east-west.

    With auto direction the scan angle is the bearing of the longest
    polygon edge.
    """
    if settings.auto_direction:
        return normalize_heading(longest_edge_bearing(ring))
    return float(settings.angle)


# ------------------------------- rows ------------------------------- #

def scan_rows(poly_local: Polygon, geom: GridGeometry) -> List[LineString]:
    """Horizontal rows clipped to an already rotated local polygon."""
    minx, miny, maxx, maxy = poly_local.bounds
    step = geom.line_spacing_deg
    margin = max(maxx - minx, step)
    rows: List[LineString] = []
    k = 0
    while True:
        y = miny + step * (k + 0.5)
        if y > maxy + step / 10.0:
            break
        line = LineString([(minx - margin, y), (maxx + margin, y)])
        for piece in split_line_by_polygon(line, poly_local):
            if piece.length * METERS_PER_DEGREE >= geom.forward_spacing_m:
                rows.append(piece)
        k += 1
    return rows


def _row_points(row: LineString, geom: GridGeometry, every_point: bool) -> List[PlanningPoint]:
    coords = list(row.coords)
    a, b = coords[0], coords[-1]
    xys: List[XY] = [a, b]
    if every_point:
        step = geom.forward_spacing_deg
        n = int(math.floor(row.length / step))
        if n >= 1:
            xys = []
            for i in range(n + 1):
                p = row.interpolate(i * step)
                xys.append((p.x, p.y))
    last = len(xys) - 1
    out: List[PlanningPoint] = []
    for i, (x, y) in enumerate(xys):
        role = RowRole.START if i == 0 else RowRole.END if i == last else RowRole.NONE
        out.append(PlanningPoint(x, y, role))
    return out


def connect_rows(rows: List[LineString], geom: GridGeometry, every_point: bool) -> List[PlanningPoint]:
    """Join rows boustrophedon-style into one planning sequence.

    A row's trailing point is dropped when the next row starts closer than
    the forward spacing.
    """
    ordered: List[List[PlanningPoint]] = []
    for i, row in enumerate(rows):
        if i % 2 == 1:
            row = LineString(list(row.coords)[::-1])
        ordered.append(_row_points(row, geom, every_point))

    out: List[PlanningPoint] = []
    for i, pts in enumerate(ordered):
        if i + 1 < len(ordered) and len(pts) > 1:
            nxt = ordered[i + 1][0]
            gap_m = math.hypot(pts[-1].x - nxt.x, pts[-1].y - nxt.y) * METERS_PER_DEGREE
            if gap_m < geom.forward_spacing_m:
                pts = pts[:-1]
                if len(pts) > 1:
                    p = pts[-1]
                    pts[-1] = PlanningPoint(p.x, p.y, RowRole.END)
        out.extend(pts)
    return out


def assign_headings(
    points: Sequence[PlanningPoint],
    *,
    reversed_path: bool = False,
    lock_heading: bool = False,
) -> List[float]:
    """Heading per point: toward the next point, row ends keep the row heading.

    Args:
        points: Sequence in lon/lat, already in flight order.
        reversed_path: Row starts act as row ends when the path was reversed.
        lock_heading: Every point takes the first heading.

    Returns:
        Headings in ``[0, 360)``.
    """
    n = len(points)
    terminal = RowRole.START if reversed_path else RowRole.END
    headings: List[float] = []
    for i, p in enumerate(points):
        if i == n - 1:
            headings.append(headings[i - 1] if i > 0 else 0.0)
        elif p.row_role == terminal and i > 0:
            headings.append(bearing_deg(points[i - 1].xy, p.xy))
        else:
            headings.append(bearing_deg(p.xy, points[i + 1].xy))
    if lock_heading and headings:
        headings = [headings[0]] * n
    return headings


# ------------------------------ generator ------------------------------ #

def generate_grid_path(shape: Shape, settings: MissionSettings) -> List[Waypoint]:
    """Plan a grid survey over ``shape``.

    Args:
        shape: Area to cover.
        settings: Mission settings; grid fields are used.

    Returns:
        Waypoints in flight order. Empty when the polygon is degenerate or no
        row survives clipping.

    Raises:
        InvalidInputError: If the line spacing is not positive.
    """
    ring = shape.ring()
    if len(distinct_vertices(ring)) < 3:
        return []
    poly = Polygon(ring)
    if poly.area <= 0:
        return []

    geom = grid_geometry(settings)
    angle = resolve_scan_angle(ring, settings)
    frame = LocalFrame(vertex_centroid(ring))

    poly_local = rotate_local(frame.to_local(poly), -angle)
    rows = scan_rows(poly_local, geom)
    if not rows:
        return []

    planned = connect_rows(rows, geom, settings.generate_every_point)
    restored = frame.to_lonlat(rotate_local(MultiPoint([p.xy for p in planned]), angle))
    points = [
        PlanningPoint(float(g.x), float(g.y), p.row_role)
        for g, p in zip(restored.geoms, planned)
    ]
    if settings.reverse_path:
        points.reverse()

    headings = assign_headings(
        points,
        reversed_path=settings.reverse_path,
        lock_heading=settings.eliminate_extra_yaw,
    )
    return [_stamp(p, h, settings) for p, h in zip(points, headings)]


def _stamp(p: PlanningPoint, heading: float, settings: MissionSettings) -> Waypoint:
    return Waypoint(
        id=new_waypoint_id(),
        lng=p.x,
        lat=p.y,
        altitude=settings.altitude,
        speed=settings.speed,
        gimbal_pitch=settings.gimbal_pitch,
        heading=heading,
        straighten_legs=settings.straighten_legs,
        action=settings.waypoint_action,
    )
