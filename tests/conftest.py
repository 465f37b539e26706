from __future__ import annotations

import pytest

from wayline.domain.geo.utils import destination
from wayline.domain.models import MissionSettings, Shape


def _rect(width_m: float, height_m: float, origin=(0.0, 0.0)) -> Shape:
    sw = origin
    se = destination(sw, width_m, 90.0)
    ne = destination(se, height_m, 0.0)
    nw = destination(sw, height_m, 0.0)
    ring = [list(sw), list(se), list(ne), list(nw), list(sw)]
    return Shape.from_geojson({"type": "Polygon", "coordinates": [ring]})


@pytest.fixture
def make_rect():
    """Factory for an axis-aligned rectangle (meters) with its SW corner at ``origin``."""
    return _rect


@pytest.fixture
def survey_rect() -> Shape:
    """100 m x 60 m rectangle at the equator."""
    return _rect(100.0, 60.0)


@pytest.fixture
def survey_settings() -> MissionSettings:
    return MissionSettings(
        custom_fov=82.1,
        altitude=60.0,
        side_overlap=80.0,
        front_overlap=80.0,
        angle=0.0,
        speed=10.0,
    )
