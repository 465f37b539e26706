"""Export waypoints to a DJI KMZ (WPML 1.0.2) mission archive.

Archive layout::

    wpmz/template.kml      mission config (finish action, RC lost, drone)
    wpmz/waylines.wpml     placemarks with heading, speed and action groups
    wpmz/res/session.json  optional {settings, shape} for re-editing
"""

from __future__ import annotations

import io
import os
import re
import time
import xml.etree.ElementTree as ET
import zipfile
from typing import Dict, List, Optional, Sequence

from wayline.domain.errors import InvalidInputError
from wayline.domain.geo.utils import to_dji_heading
from wayline.domain.migrations import CameraCommand, resolve_waypoint_actions
from wayline.domain.models import (
    HeadingMode,
    MissionEndAction,
    MissionSettings,
    RCLostAction,
    SessionSnapshot,
    Waypoint,
)

NS = {
    "kml": "http://www.opengis.net/kml/2.2",
    "wpml": "http://www.dji.com/wpmz/1.0.2",
}

for _prefix, _uri in NS.items():
    ET.register_namespace(_prefix if _prefix != "kml" else "", _uri)

TEMPLATE_PATH = "wpmz/template.kml"
WAYLINES_PATH = "wpmz/waylines.wpml"
SESSION_PATH = "wpmz/res/session.json"

MAX_FILENAME_LEN = 100

_FINISH_ACTIONS = {MissionEndAction.RETURN_HOME: "goHome", MissionEndAction.HOVER: "noAction"}
_RC_LOST_ACTIONS = {RCLostAction.HOVER: "hover", RCLostAction.RETURN_HOME: "goBack"}


# ------------------------------ xml helpers ------------------------------ #

def _fmt(value) -> str:
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, float):
        if value.is_integer():
            return str(int(value))
        return ("%.6f" % value).rstrip("0").rstrip(".")
    return str(value)


def el(tag: str, text=None, ns: str = "wpml") -> ET.Element:
    e = ET.Element(f"{{{NS[ns]}}}{tag}")
    if text is not None:
        e.text = _fmt(text)
    return e


def sub(parent: ET.Element, tag: str, text=None, ns: str = "wpml") -> ET.Element:
    e = el(tag, text, ns)
    parent.append(e)
    return e


def _new_kml_doc():
    kml = ET.Element(f"{{{NS['kml']}}}kml")
    doc = ET.SubElement(kml, f"{{{NS['kml']}}}Document")
    return kml, doc


def _to_bytes(root: ET.Element) -> bytes:
    return ET.tostring(root, encoding="utf-8", xml_declaration=True)


# ---------------------------- mission config ---------------------------- #

def make_mission_config(settings: MissionSettings) -> ET.Element:
    mc = el("missionConfig")
    sub(mc, "flyToWaylineMode", "safely")
    sub(mc, "finishAction", _FINISH_ACTIONS[settings.mission_end_action])
    sub(mc, "exitOnRCLost", "executeLostAction")
    sub(mc, "executeRCLostAction", _RC_LOST_ACTIONS[settings.rc_lost_action])
    sub(mc, "globalTransitionalSpeed", float(settings.global_speed))
    preset = settings.drone_preset
    drone = sub(mc, "droneInfo")
    sub(drone, "droneEnumValue", preset.drone_enum if preset else 68)
    sub(drone, "droneSubEnumValue", preset.drone_sub_enum if preset else 0)
    return mc


def build_template_kml(settings: MissionSettings, created_at: int) -> bytes:
    kml, doc = _new_kml_doc()
    doc.append(el("createTime", created_at))
    doc.append(el("updateTime", created_at))
    doc.append(make_mission_config(settings))
    return _to_bytes(kml)


# ------------------------------ actions ------------------------------ #

def _gimbal_rotate(action_id: int, pitch: float) -> ET.Element:
    act = el("action")
    sub(act, "actionId", action_id)
    sub(act, "actionActuatorFunc", "gimbalRotate")
    p = sub(act, "actionActuatorFuncParam")
    sub(p, "gimbalHeadingYawBase", "aircraft")
    sub(p, "gimbalRotateMode", "absoluteAngle")
    sub(p, "gimbalPitchRotateEnable", 1)
    sub(p, "gimbalPitchRotateAngle", float(pitch))
    sub(p, "gimbalRollRotateEnable", 0)
    sub(p, "gimbalRollRotateAngle", 0)
    sub(p, "gimbalYawRotateEnable", 0)
    sub(p, "gimbalYawRotateAngle", 0)
    sub(p, "gimbalRotateTimeEnable", 0)
    sub(p, "gimbalRotateTime", 0)
    sub(p, "payloadPositionIndex", 0)
    return act


def _camera_action(action_id: int, cmd: CameraCommand) -> ET.Element:
    act = el("action")
    sub(act, "actionId", action_id)
    sub(act, "actionActuatorFunc", cmd.value)
    p = sub(act, "actionActuatorFuncParam")
    sub(p, "payloadPositionIndex", 0)
    if cmd != CameraCommand.STOP_RECORD:
        sub(p, "useGlobalPayloadLensIndex", 0)
    return act


def build_action_group(group_id: int, index: int, actions: List[ET.Element]) -> ET.Element:
    ag = el("actionGroup")
    sub(ag, "actionGroupId", group_id)
    sub(ag, "actionGroupStartIndex", index)
    sub(ag, "actionGroupEndIndex", index)
    sub(ag, "actionGroupMode", "sequence")
    trg = sub(ag, "actionTrigger")
    sub(trg, "actionTriggerType", "reachPoint")
    for act in actions:
        ag.append(act)
    return ag


# ------------------------------ placemarks ------------------------------ #

def build_waylines_wpml(waypoints: Sequence[Waypoint], settings: MissionSettings) -> bytes:
    """Render the wayline document: one Placemark per waypoint, in order."""
    kml, doc = _new_kml_doc()
    doc.append(make_mission_config(settings))
    folder = ET.SubElement(doc, f"{{{NS['kml']}}}Folder")
    sub(folder, "templateId", 0)
    sub(folder, "executeHeightMode", "relativeToStartPoint")
    sub(folder, "waylineId", 0)
    sub(folder, "autoFlightSpeed", float(settings.speed))

    follow = settings.heading_mode == HeadingMode.FOLLOW_WAYLINE
    commands = resolve_waypoint_actions(waypoints, settings)
    group_id = 0
    prev_pitch: Optional[float] = None

    for i, wp in enumerate(waypoints):
        pm = ET.SubElement(folder, f"{{{NS['kml']}}}Placemark")
        pt = ET.SubElement(pm, f"{{{NS['kml']}}}Point")
        coord = ET.SubElement(pt, f"{{{NS['kml']}}}coordinates")
        coord.text = f"{wp.lng:.8f},{wp.lat:.8f}"
        sub(pm, "index", i)
        sub(pm, "executeHeight", float(wp.altitude))
        sub(pm, "waypointSpeed", float(wp.speed))

        wh = sub(pm, "waypointHeadingParam")
        sub(wh, "waypointHeadingMode", "followWayline" if follow else "smoothTransition")
        sub(wh, "waypointHeadingAngle", round(to_dji_heading(wp.heading), 2))
        sub(wh, "waypointHeadingAngleEnable", 0 if follow else 1)
        sub(wh, "waypointHeadingPathMode", "followBadArc")

        wt = sub(pm, "waypointTurnParam")
        sub(wt, "waypointTurnMode", "toPointAndPassWithContinuityCurvature")
        sub(wt, "waypointTurnDampingDist", 0)

        straight = wp.straighten_legs if wp.straighten_legs is not None else settings.straighten_legs
        sub(pm, "useStraightLine", bool(straight))

        actions: List[ET.Element] = []
        if prev_pitch is None or wp.gimbal_pitch != prev_pitch:
            actions.append(_gimbal_rotate(len(actions), wp.gimbal_pitch))
        prev_pitch = wp.gimbal_pitch
        for cmd in commands[i]:
            actions.append(_camera_action(len(actions), cmd))
        if actions:
            pm.append(build_action_group(group_id, i, actions))
            group_id += 1

    return _to_bytes(kml)


# ------------------------------ packaging ------------------------------ #

def sanitize_filename(name: str) -> str:
    """Keep ``[A-Za-z0-9_-]``, replace the rest with ``_``, cap at 100 chars.

    Raises:
        InvalidInputError: If nothing usable is left.
    """
    base = (name or "").strip()
    if base.lower().endswith(".kmz"):
        base = base[:-4]
    clean = re.sub(r"[^A-Za-z0-9_-]", "_", base)[:MAX_FILENAME_LEN]
    if not clean.strip("_"):
        raise InvalidInputError("Mission file name is empty")
    return clean


def build_kmz(
    waypoints: Sequence[Waypoint],
    settings: MissionSettings,
    *,
    snapshot: Optional[SessionSnapshot] = None,
    created_at: Optional[int] = None,
) -> bytes:
    """Pack a mission into KMZ bytes.

    Args:
        waypoints: Waypoints in flight order.
        settings: Mission settings (finish action, RC lost, drone, heading mode).
        snapshot: Optional session snapshot stored as ``wpmz/res/session.json``.
        created_at: Creation time in ms since epoch (defaults to now).

    Returns:
        KMZ archive bytes.

    Raises:
        InvalidInputError: If there are no waypoints.
    """
    if not waypoints:
        raise InvalidInputError("No waypoints to export")
    ts = int(created_at if created_at is not None else time.time() * 1000)

    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        zf.writestr("wpmz/", "")
        zf.writestr(TEMPLATE_PATH, build_template_kml(settings, ts))
        zf.writestr(WAYLINES_PATH, build_waylines_wpml(waypoints, settings))
        if snapshot is not None:
            zf.writestr("wpmz/res/", "")
            zf.writestr(SESSION_PATH, snapshot.model_dump_json(by_alias=True, indent=2))
    return buf.getvalue()


def export_mission_kmz(
    *,
    waypoints: Sequence[Waypoint],
    settings: MissionSettings,
    filename: str,
    snapshot: Optional[SessionSnapshot] = None,
    export_dir: str = "data/exports",
) -> Dict[str, str]:
    """Write a mission KMZ to ``export_dir``.

    Returns:
        Dict with ``kmz_path``.
    """
    name = sanitize_filename(filename)
    data = build_kmz(waypoints, settings, snapshot=snapshot)
    os.makedirs(export_dir, exist_ok=True)
    path = os.path.join(export_dir, f"{name}.kmz")
    with open(path, "wb") as f:
        f.write(data)
    return {"kmz_path": path}
