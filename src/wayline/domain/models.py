"""Mission data model: waypoints, drawn shapes and mission settings.

All models are pydantic v2. JSON interchange uses the camelCase names of the
web client (``gimbalPitch``, ``sideOverlap``, ``customFOV`` ...); Python code
uses the snake_case field names.
"""

from __future__ import annotations

import math
import uuid
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from wayline.domain.errors import InvalidInputError
from wayline.domain.geo.utils import circle_polygon
from wayline.domain.presets import (
    DEFAULT_HFOV,
    DEFAULT_PHOTO_INTERVAL,
    DronePreset,
    get_default_drone_id,
    get_drone_preset,
)

LonLat = Tuple[float, float]


# --------------------------------- enums --------------------------------- #

class PathType(str, Enum):
    GRID = "grid"
    ORBIT = "orbit"


class WaypointAction(str, Enum):
    """Camera command at a waypoint. ``record`` is the legacy global toggle."""
    NONE = "none"
    PHOTO = "photo"
    RECORD_START = "record_start"
    RECORD_STOP = "record_stop"
    RECORD = "record"


class OrbitDirection(str, Enum):
    CLOCKWISE = "clockwise"
    COUNTER_CLOCKWISE = "counter-clockwise"


class MissionEndAction(str, Enum):
    RETURN_HOME = "return-home"
    HOVER = "hover"


class RCLostAction(str, Enum):
    HOVER = "hover"
    RETURN_HOME = "return-home"


class HeadingMode(str, Enum):
    SMOOTH_TRANSITION = "smooth_transition"
    FOLLOW_WAYLINE = "follow_wayline"


def new_waypoint_id() -> str:
    """Return a fresh opaque waypoint id."""
    return str(uuid.uuid4())


# -------------------------------- waypoint -------------------------------- #

class Waypoint(BaseModel):
    """One vehicle stop. List position is flight order.

    ``straighten_legs`` and ``action`` are per-point overrides; ``None`` means
    "use the mission-wide setting".
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str = Field(default_factory=new_waypoint_id)
    lng: float = Field(..., ge=-180.0, le=180.0)
    lat: float = Field(..., ge=-90.0, le=90.0)
    altitude: float
    speed: float = Field(..., gt=0.0)
    gimbal_pitch: float = Field(-90.0, ge=-90.0, le=0.0)
    heading: float = 0.0
    straighten_legs: Optional[bool] = None
    action: Optional[WaypointAction] = None

    @field_validator("heading")
    @classmethod
    def _wrap_heading(cls, v: float) -> float:
        h = float(v) % 360.0
        return 0.0 if h >= 360.0 else h

    @property
    def position(self) -> LonLat:
        return (self.lng, self.lat)


# --------------------------------- shape --------------------------------- #

class PolygonGeometry(BaseModel):
    """GeoJSON Polygon; only the outer ring is used."""

    type: Literal["Polygon"] = "Polygon"
    coordinates: List[List[List[float]]]

    @field_validator("coordinates")
    @classmethod
    def _check_ring(cls, rings: List[List[List[float]]]) -> List[List[List[float]]]:
        if not rings:
            raise ValueError("polygon has no rings")
        ring = rings[0]
        if len(ring) < 4:
            raise ValueError(f"outer ring needs at least 4 positions, got {len(ring)}")
        for pos in ring:
            if len(pos) < 2:
                raise ValueError("ring position must have lng and lat")
            lng, lat = pos[0], pos[1]
            if not (math.isfinite(lng) and math.isfinite(lat)):
                raise ValueError("ring contains non-finite coordinates")
            if not (-180.0 <= lng <= 180.0) or not (-90.0 <= lat <= 90.0):
                raise ValueError(f"position out of WGS84 range: {lng}, {lat}")
        if tuple(ring[0][:2]) != tuple(ring[-1][:2]):
            raise ValueError("outer ring is not closed")
        return rings


class Shape(BaseModel):
    """Drawn input area as a GeoJSON Polygon Feature.

    Drawing-layer flags (``isCircle``, ``center``, ``radius`` in meters,
    ``isRectangle``) travel in ``properties``. Only a circle's center/radius
    matter to the planner.
    """

    type: Literal["Feature"] = "Feature"
    geometry: PolygonGeometry
    properties: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_geojson(cls, obj: Any) -> "Shape":
        """Build a Shape from a Feature or a bare Polygon geometry.

        Raises:
            InvalidInputError: If the object is not a usable single polygon.
        """
        if isinstance(obj, Shape):
            return obj
        if not isinstance(obj, dict):
            raise InvalidInputError("Shape must be a GeoJSON Feature or Polygon object")
        if obj.get("type") == "Polygon":
            obj = {"type": "Feature", "geometry": obj, "properties": {}}
        elif obj.get("type") == "Feature":
            geom = obj.get("geometry")
            if not isinstance(geom, dict) or geom.get("type") != "Polygon":
                gtype = geom.get("type") if isinstance(geom, dict) else None
                raise InvalidInputError(f"Shape geometry must be a Polygon, got {gtype!r}")
            obj = {**obj, "properties": obj.get("properties") or {}}
        else:
            raise InvalidInputError(f"Unsupported GeoJSON type: {obj.get('type')!r}")
        try:
            return cls.model_validate(obj)
        except ValidationError as exc:
            raise InvalidInputError(f"Invalid polygon: {exc.errors()[0]['msg']}") from exc

    @classmethod
    def circle(cls, center: LonLat, radius_m: float, steps: int = 64) -> "Shape":
        """Circle shape as the drawing layer produces it."""
        poly = circle_polygon(center, radius_m, steps=steps)
        ring = [[x, y] for x, y in poly.exterior.coords]
        return cls(
            geometry=PolygonGeometry(coordinates=[ring]),
            properties={"isCircle": True, "center": [center[0], center[1]], "radius": radius_m},
        )

    def ring(self) -> List[LonLat]:
        """Outer ring without the closing position."""
        coords = [(float(p[0]), float(p[1])) for p in self.geometry.coordinates[0]]
        return coords[:-1]

    @property
    def is_circle(self) -> bool:
        flag = self.properties.get("isCircle")
        return flag is True or flag == "true"

    @property
    def circle_center(self) -> Optional[LonLat]:
        center = self.properties.get("center")
        if not self.is_circle or not center or len(center) < 2:
            return None
        return (float(center[0]), float(center[1]))

    @property
    def circle_radius(self) -> Optional[float]:
        if not self.is_circle:
            return None
        radius = self.properties.get("radius")
        if radius is None and self.properties.get("radiusInKm") is not None:
            radius = float(self.properties["radiusInKm"]) * 1000.0
        return float(radius) if radius is not None else None


# ------------------------------- settings ------------------------------- #

class MissionSettings(BaseModel):
    """Flat, immutable configuration for one generation call."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )

    # shared
    custom_fov: Optional[float] = Field(None, gt=0.0, lt=180.0, alias="customFOV")
    altitude: float = Field(60.0, gt=0.0)
    speed: float = Field(10.0, gt=0.0)
    path_type: PathType = PathType.GRID
    gimbal_pitch: float = Field(-90.0, ge=-90.0, le=0.0)
    waypoint_action: WaypointAction = WaypointAction.NONE
    photo_interval: Optional[float] = Field(None, gt=0.0)
    straighten_legs: bool = False
    mission_end_action: MissionEndAction = MissionEndAction.RETURN_HOME
    rc_lost_action: RCLostAction = RCLostAction.HOVER
    selected_drone: str = Field(default_factory=get_default_drone_id)
    global_speed: float = Field(5.0, gt=0.0, alias="globalTransitionalSpeed")
    heading_mode: HeadingMode = HeadingMode.SMOOTH_TRANSITION

    # grid
    side_overlap: float = Field(80.0, ge=0.0, lt=100.0)
    front_overlap: float = Field(80.0, ge=0.0, lt=100.0)
    angle: float = 0.0
    auto_direction: bool = False
    reverse_path: bool = False
    generate_every_point: bool = False
    eliminate_extra_yaw: bool = False

    # orbit
    spacing: float = Field(10.0, gt=0.0)
    start_angle: float = 0.0
    direction: OrbitDirection = OrbitDirection.COUNTER_CLOCKWISE
    number_of_orbits: float = Field(1.0, gt=0.0)

    @property
    def drone_preset(self) -> Optional[DronePreset]:
        return get_drone_preset(self.selected_drone)

    @property
    def hfov(self) -> float:
        """Explicit FOV, else the drone preset's, else 82.1 degrees."""
        if self.custom_fov:
            return float(self.custom_fov)
        preset = self.drone_preset
        if preset is not None and preset.hfov:
            return float(preset.hfov)
        return DEFAULT_HFOV

    @property
    def effective_photo_interval(self) -> float:
        if self.photo_interval:
            return float(self.photo_interval)
        preset = self.drone_preset
        if preset is not None and preset.photo_interval:
            return float(preset.photo_interval)
        return DEFAULT_PHOTO_INTERVAL

    @property
    def max_flight_time(self) -> Optional[float]:
        preset = self.drone_preset
        return preset.max_flight_time if preset is not None else None

    def to_json_dict(self) -> Dict[str, Any]:
        """Client-facing camelCase representation."""
        return self.model_dump(mode="json", by_alias=True)


class SessionSnapshot(BaseModel):
    """Side document that lets an exported mission be re-edited."""

    version: int = 1
    settings: MissionSettings
    shape: Optional[Shape] = None
