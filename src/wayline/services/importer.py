"""Import KMZ/KML mission files back into waypoints.

Placemarks are first converted generically to GeoJSON features. DJI fields
the generic conversion drops (heading, speed, height, gimbal, camera action)
are then re-attached from the raw placemark records through a matcher chain:

1. ``IndexMatcher``: used only when feature and record counts agree.
2. ``CoordinateMatcher``: nearest record within ``epsilon`` degrees.

A point no matcher resolves keeps its position and takes default values.
"""

from __future__ import annotations

import io
import os
import xml.etree.ElementTree as ET
import zipfile
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from pydantic import ValidationError
from shapely.geometry import LineString, Point, Polygon, mapping

from wayline.domain.errors import ArchiveFormatError
from wayline.domain.geo.utils import normalize_heading
from wayline.domain.models import MissionSettings, SessionSnapshot, Waypoint, WaypointAction

_CAMERA_ACTIONS = {
    "takePhoto": WaypointAction.PHOTO,
    "startRecord": WaypointAction.RECORD_START,
    "stopRecord": WaypointAction.RECORD_STOP,
}


def _log(log_fn: Optional[Callable[[str], None]], msg: str) -> None:
    if log_fn:
        log_fn(msg)


# ------------------------------ xml helpers ------------------------------ #

def _local(tag: str) -> str:
    return tag.rsplit("}", 1)[-1] if isinstance(tag, str) else ""


def _iter_local(elem: ET.Element, name: str):
    for e in elem.iter():
        if _local(e.tag) == name:
            yield e


def _first(elem: ET.Element, name: str) -> Optional[ET.Element]:
    return next(_iter_local(elem, name), None)


def _text(elem: ET.Element, name: str) -> Optional[str]:
    e = _first(elem, name)
    if e is None or e.text is None:
        return None
    t = e.text.strip()
    return t or None


def _float(elem: ET.Element, *names: str) -> Optional[float]:
    for name in names:
        t = _text(elem, name)
        if t is None:
            continue
        try:
            return float(t)
        except ValueError:
            continue
    return None


def _parse_coords(text: Optional[str]) -> List[Tuple[float, float]]:
    out: List[Tuple[float, float]] = []
    for chunk in (text or "").split():
        parts = chunk.split(",")
        if len(parts) < 2:
            continue
        try:
            out.append((float(parts[0]), float(parts[1])))
        except ValueError:
            continue
    return out


# ------------------------------ generic geojson ------------------------------ #

def placemarks_to_features(root: ET.Element) -> List[Dict[str, Any]]:
    """Convert Placemarks with Point/LineString/Polygon to GeoJSON features."""
    features: List[Dict[str, Any]] = []
    for pm in _iter_local(root, "Placemark"):
        geom = None
        point = _first(pm, "Point")
        line = _first(pm, "LineString")
        poly = _first(pm, "Polygon")
        if point is not None:
            coords = _parse_coords(_text(point, "coordinates"))
            if coords:
                geom = Point(coords[0])
        elif line is not None:
            coords = _parse_coords(_text(line, "coordinates"))
            if len(coords) >= 2:
                geom = LineString(coords)
        elif poly is not None:
            outer = _first(poly, "outerBoundaryIs")
            coords = _parse_coords(_text(outer if outer is not None else poly, "coordinates"))
            if len(coords) >= 3:
                geom = Polygon(coords)
        if geom is None:
            continue
        props: Dict[str, Any] = {}
        name = next((e.text for e in pm if _local(e.tag) == "name" and e.text), None)
        if name:
            props["name"] = name.strip()
        features.append({"type": "Feature", "geometry": mapping(geom), "properties": props})
    return features


# ------------------------------ raw records ------------------------------ #

@dataclass
class PlacemarkRecord:
    """DJI per-waypoint fields read straight from a Placemark."""
    lng: Optional[float] = None
    lat: Optional[float] = None
    heading: Optional[float] = None
    speed: Optional[float] = None
    altitude: Optional[float] = None
    gimbal_pitch: Optional[float] = None
    action: Optional[WaypointAction] = None
    straighten_legs: Optional[bool] = None


def _gimbal_action_pitch(pm: ET.Element) -> Optional[float]:
    for act in _iter_local(pm, "action"):
        if _text(act, "actionActuatorFunc") in ("gimbalRotate", "gimbalEvenlyRotate"):
            return _float(act, "gimbalPitchRotateAngle")
    return None


def _camera_action(pm: ET.Element) -> Optional[WaypointAction]:
    for act in _iter_local(pm, "action"):
        found = _CAMERA_ACTIONS.get(_text(act, "actionActuatorFunc") or "")
        if found is not None:
            return found
    return None


def read_placemark_records(root: ET.Element) -> List[PlacemarkRecord]:
    """One record per Placemark, in document order.

    Gimbal pitch falls back to the gimbal rotate action, then to the
    previous record's pitch.
    """
    records: List[PlacemarkRecord] = []
    last_pitch: Optional[float] = None
    for pm in _iter_local(root, "Placemark"):
        rec = PlacemarkRecord()
        point = _first(pm, "Point")
        if point is not None:
            coords = _parse_coords(_text(point, "coordinates"))
            if coords:
                rec.lng, rec.lat = coords[0]
        heading = _float(pm, "waypointHeadingAngle", "waypointHeading")
        rec.heading = normalize_heading(heading) if heading is not None else None
        rec.speed = _float(pm, "waypointSpeed")
        rec.altitude = _float(pm, "executeHeight", "ellipsoidHeight", "height")

        pitch = _float(pm, "gimbalPitchAngle")
        if pitch is None:
            pitch = _gimbal_action_pitch(pm)
        if pitch is None:
            pitch = last_pitch
        rec.gimbal_pitch = pitch
        last_pitch = pitch

        rec.action = _camera_action(pm)
        straight = _text(pm, "useStraightLine")
        if straight is not None:
            rec.straighten_legs = straight == "1"
        records.append(rec)
    return records


# ------------------------------ matchers ------------------------------ #

class IndexMatcher:
    """Feature ``i`` is record ``i``; only valid when counts agree."""

    name = "index"

    def applies(self, features: Sequence[Dict[str, Any]], records: Sequence[PlacemarkRecord]) -> bool:
        return len(features) == len(records)

    def match(self, index: int, lng: float, lat: float, records: Sequence[PlacemarkRecord]) -> Optional[PlacemarkRecord]:
        return records[index] if 0 <= index < len(records) else None


class CoordinateMatcher:
    """Nearest record within ``epsilon`` degrees on both axes.

    Distance is the larger of the two axis offsets; ties go to the earlier
    record.
    """

    name = "coordinate"

    def __init__(self, epsilon: float = 1e-4):
        self.epsilon = epsilon

    def applies(self, features: Sequence[Dict[str, Any]], records: Sequence[PlacemarkRecord]) -> bool:
        return bool(records)

    def match(self, index: int, lng: float, lat: float, records: Sequence[PlacemarkRecord]) -> Optional[PlacemarkRecord]:
        best: Optional[PlacemarkRecord] = None
        best_d = self.epsilon
        for rec in records:
            if rec.lng is None or rec.lat is None:
                continue
            d = max(abs(rec.lng - lng), abs(rec.lat - lat))
            if d < best_d:
                best, best_d = rec, d
        return best


DEFAULT_MATCHERS = (IndexMatcher(), CoordinateMatcher())


# ------------------------------ result ------------------------------ #

@dataclass
class ImportResult:
    """Imported mission.

    Attributes:
        waypoints: Point features as waypoints, in document order.
        session: Embedded session snapshot, if the archive has one.
        features: All converted GeoJSON features.
        unmatched: Waypoint indices that fell back to defaults.
        source: Archive member (or file name) the points came from.
    """
    waypoints: List[Waypoint]
    session: Optional[SessionSnapshot] = None
    features: List[Dict[str, Any]] = field(default_factory=list)
    unmatched: List[int] = field(default_factory=list)
    source: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "waypoints": [w.model_dump(mode="json", by_alias=True) for w in self.waypoints],
            "session": self.session.model_dump(mode="json", by_alias=True) if self.session else None,
            "features": {"type": "FeatureCollection", "features": self.features},
            "unmatched": list(self.unmatched),
            "source": self.source,
        }


# ------------------------------ archive ------------------------------ #

def _has_placemarks(data: bytes) -> bool:
    return b"Placemark" in data


def _read_archive(data: bytes, filename: str) -> Tuple[str, bytes, Optional[bytes]]:
    """Return ``(member, document, session_json)`` from a KMZ or bare document."""
    if not zipfile.is_zipfile(io.BytesIO(data)):
        return filename, data, None
    try:
        with zipfile.ZipFile(io.BytesIO(data)) as zf:
            names = [n for n in zf.namelist() if not n.endswith("/")]
            target = next((n for n in names if n.lower().endswith("waylines.wpml")), None)
            if target is None:
                for n in names:
                    if n.lower().endswith((".kml", ".wpml")) and _has_placemarks(zf.read(n)):
                        target = n
                        break
            if target is None:
                raise ArchiveFormatError(f"No KML or WPML document with waypoints in {filename}")
            session_name = next((n for n in names if n.lower().endswith("session.json")), None)
            session = zf.read(session_name) if session_name else None
            return target, zf.read(target), session
    except zipfile.BadZipFile as exc:
        raise ArchiveFormatError(f"Corrupted KMZ archive: {filename}") from exc


def _waypoint(
    lng: float,
    lat: float,
    rec: Optional[PlacemarkRecord],
    defaults: MissionSettings,
) -> Waypoint:
    rec = rec or PlacemarkRecord()
    return Waypoint(
        lng=lng,
        lat=lat,
        altitude=rec.altitude if rec.altitude is not None else defaults.altitude,
        speed=rec.speed if rec.speed is not None and rec.speed > 0 else defaults.speed,
        gimbal_pitch=max(-90.0, min(0.0, rec.gimbal_pitch)) if rec.gimbal_pitch is not None else defaults.gimbal_pitch,
        heading=rec.heading if rec.heading is not None else 0.0,
        straighten_legs=rec.straighten_legs,
        action=rec.action or WaypointAction.NONE,
    )


def parse_mission_archive(
    data: bytes,
    filename: str = "mission.kmz",
    *,
    defaults: Optional[MissionSettings] = None,
    matchers: Sequence[Any] = DEFAULT_MATCHERS,
    log_fn: Optional[Callable[[str], None]] = None,
) -> ImportResult:
    """Parse KMZ or KML bytes into waypoints and an optional session.

    Args:
        data: File contents.
        filename: Original name, used in messages.
        defaults: Settings supplying values for unmatched points.
        matchers: Enrichment strategies in precedence order.
        log_fn: Optional progress callback.

    Returns:
        ImportResult.

    Raises:
        ArchiveFormatError: If the file holds no recognizable waypoint data,
            the XML does not parse, a waypoint has out-of-range values or the
            session document is invalid.
    """
    defaults = defaults or MissionSettings()
    member, doc, session_raw = _read_archive(data, filename)
    _log(log_fn, f"📥 Reading {member}")

    try:
        root = ET.fromstring(doc)
    except ET.ParseError as exc:
        raise ArchiveFormatError(f"{member} is not valid XML: {exc}") from exc

    features = placemarks_to_features(root)
    records = read_placemark_records(root)
    points = [
        (i, f["geometry"]["coordinates"]) for i, f in enumerate(features) if f["geometry"]["type"] == "Point"
    ]
    if not points:
        raise ArchiveFormatError(f"No waypoints found in {member}")

    active = [m for m in matchers if m.applies(features, records)]
    _log(log_fn, f"🔗 Matching {len(points)} points to {len(records)} records ({', '.join(m.name for m in active)})")

    waypoints: List[Waypoint] = []
    unmatched: List[int] = []
    for feature_index, (lng, lat) in points:
        rec = None
        for m in active:
            rec = m.match(feature_index, lng, lat, records)
            if rec is not None:
                break
        if rec is None:
            unmatched.append(len(waypoints))
        try:
            waypoints.append(_waypoint(float(lng), float(lat), rec, defaults))
        except ValidationError as exc:
            err = exc.errors()[0]
            raise ArchiveFormatError(
                f"Invalid waypoint {len(waypoints)} in {member}: {err.get('loc', ('?',))[0]} {err['msg']}"
            ) from exc
    if unmatched:
        _log(log_fn, f"⚠️ {len(unmatched)} point(s) without DJI fields, defaults used")

    session = None
    if session_raw is not None:
        try:
            session = SessionSnapshot.model_validate_json(session_raw)
        except ValidationError as exc:
            raise ArchiveFormatError(f"Invalid session document in {filename}") from exc
        _log(log_fn, "🧩 Session snapshot restored")

    _log(log_fn, f"✅ Imported {len(waypoints)} waypoints")
    return ImportResult(
        waypoints=waypoints,
        session=session,
        features=features,
        unmatched=unmatched,
        source=member,
    )


def import_mission_file(
    path: str,
    *,
    defaults: Optional[MissionSettings] = None,
    log_fn: Optional[Callable[[str], None]] = None,
) -> ImportResult:
    """Read a KMZ/KML file from disk.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
        ArchiveFormatError: See ``parse_mission_archive``.
    """
    if not os.path.exists(path):
        raise FileNotFoundError(f"File not found: {path}")
    with open(path, "rb") as f:
        data = f.read()
    return parse_mission_archive(data, os.path.basename(path), defaults=defaults, log_fn=log_fn)
