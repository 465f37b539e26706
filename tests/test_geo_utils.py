from __future__ import annotations

import math

import pytest
from shapely.geometry import LineString, Point, Polygon

from wayline.domain.geo.utils import (
    EARTH_RADIUS_M,
    bearing_deg,
    camera_footprint,
    circle_polygon,
    destination,
    distance_m,
    longest_edge_bearing,
    normalize_heading,
    point_in_polygon,
    rotate_geometry,
    rotate_local,
    round_half_up,
    split_line_by_polygon,
    to_dji_heading,
    vertex_centroid,
)


def test_distance_one_degree_of_latitude() -> None:
    expected = EARTH_RADIUS_M * math.pi / 180.0
    assert distance_m((10.0, 45.0), (10.0, 46.0)) == pytest.approx(expected, rel=1e-9)


def test_bearing_cardinal_directions() -> None:
    north = bearing_deg((0.0, 0.0), (0.0, 1.0))
    assert min(north, 360.0 - north) < 1e-9
    assert bearing_deg((0.0, 0.0), (1.0, 0.0)) == pytest.approx(90.0)
    assert bearing_deg((0.0, 0.0), (-1.0, 0.0)) == pytest.approx(270.0)
    assert bearing_deg((5.0, 5.0), (5.0, 5.0)) == 0.0


def test_destination_matches_distance_and_bearing() -> None:
    origin = (30.3, 59.9)
    target = destination(origin, 250.0, 37.0)
    assert distance_m(origin, target) == pytest.approx(250.0, abs=1e-6)
    assert bearing_deg(origin, target) == pytest.approx(37.0, abs=1e-6)


def test_heading_ranges() -> None:
    assert normalize_heading(-90.0) == pytest.approx(270.0)
    assert normalize_heading(360.0) == 0.0
    assert normalize_heading(725.0) == pytest.approx(5.0)
    assert to_dji_heading(270.0) == pytest.approx(-90.0)
    assert to_dji_heading(180.0) == pytest.approx(180.0)
    assert to_dji_heading(-10.0) == pytest.approx(-10.0)


def test_round_half_up() -> None:
    assert round_half_up(2.5) == 3
    assert round_half_up(31.4159) == 31
    assert round_half_up(-0.5) == 0


def test_vertex_centroid_is_mean_of_vertices() -> None:
    ring = [(0.0, 0.0), (2.0, 0.0), (2.0, 2.0), (0.0, 2.0)]
    assert vertex_centroid(ring) == pytest.approx((1.0, 1.0))


def test_longest_edge_bearing() -> None:
    ring = [(0.0, 0.0), (0.003, 0.0), (0.003, 0.001), (0.0, 0.001)]
    # the southern edge is the longest and runs east
    assert longest_edge_bearing(ring) == pytest.approx(90.0, abs=0.01)


def test_rotate_local_is_clockwise() -> None:
    p = rotate_local(Point(1.0, 0.0), 90.0)
    assert p.x == pytest.approx(0.0, abs=1e-12)
    assert p.y == pytest.approx(-1.0)


def test_rotation_round_trip_about_same_pivot() -> None:
    poly = Polygon([(10.0, 50.0), (10.004, 50.0), (10.005, 50.003), (10.001, 50.002)])
    pivot = vertex_centroid(list(poly.exterior.coords)[:-1])
    back = rotate_geometry(rotate_geometry(poly, 33.0, pivot), -33.0, pivot)
    for (x0, y0), (x1, y1) in zip(poly.exterior.coords, back.exterior.coords):
        assert x1 == pytest.approx(x0, abs=1e-12)
        assert y1 == pytest.approx(y0, abs=1e-12)


def test_split_line_by_concave_polygon() -> None:
    u_shape = Polygon([(0, 0), (3, 0), (3, 3), (2, 3), (2, 1), (1, 1), (1, 3), (0, 3)])
    pieces = split_line_by_polygon(LineString([(-1, 2), (4, 2)]), u_shape)
    assert len(pieces) == 2
    assert pieces[0].bounds[0] == pytest.approx(0.0)
    assert pieces[0].length == pytest.approx(1.0)
    assert pieces[1].bounds[0] == pytest.approx(2.0)


def test_split_line_fully_inside_returns_whole_line() -> None:
    square = Polygon([(0, 0), (10, 0), (10, 10), (0, 10)])
    pieces = split_line_by_polygon(LineString([(2, 5), (8, 5)]), square)
    assert len(pieces) == 1
    assert pieces[0].length == pytest.approx(6.0)


def test_split_line_outside_returns_nothing() -> None:
    square = Polygon([(0, 0), (1, 0), (1, 1), (0, 1)])
    assert split_line_by_polygon(LineString([(-1, 5), (4, 5)]), square) == []


def test_point_in_polygon() -> None:
    ring = [(0.0, 0.0), (1.0, 0.0), (1.0, 1.0), (0.0, 1.0)]
    assert point_in_polygon((0.5, 0.5), ring)
    assert point_in_polygon((1.0, 0.5), ring)
    assert not point_in_polygon((1.5, 0.5), ring)


def test_circle_polygon_vertices_on_radius() -> None:
    center = (24.0, 60.0)
    circle = circle_polygon(center, 50.0, steps=16)
    coords = list(circle.exterior.coords)
    assert len(coords) == 17
    assert coords[0] == coords[-1]
    for c in coords[:-1]:
        assert distance_m(center, c) == pytest.approx(50.0, abs=1e-6)


def test_circle_polygon_rejects_non_positive_radius() -> None:
    with pytest.raises(ValueError):
        circle_polygon((0.0, 0.0), 0.0)


def test_camera_footprint_size_and_orientation() -> None:
    center = (30.0, 0.0)
    width = 2 * 60 * math.tan(math.radians(41.05))
    fp = camera_footprint(center, 60.0, 0.0, 82.1)
    tr, br, bl, tl = list(fp.exterior.coords)[:4]
    assert distance_m(tl, tr) == pytest.approx(width, rel=1e-3)
    assert distance_m(tr, br) == pytest.approx(width * 0.75, rel=1e-3)
    assert tr[0] > center[0] and tr[1] > center[1]

    turned = camera_footprint(center, 60.0, 90.0, 82.1)
    first = list(turned.exterior.coords)[0]
    # heading east puts the first corner south-east of the center
    assert first[0] > center[0] and first[1] < center[1]


def test_camera_footprint_needs_altitude_and_fov() -> None:
    assert camera_footprint((0.0, 0.0), 0.0, 0.0, 82.1) is None
    assert camera_footprint((0.0, 0.0), 60.0, 0.0, 0.0) is None
