"""Boundary normalisation of legacy settings and waypoint actions.

Old clients send drone ids like ``dji_mini_4_pro``, finish actions like
``goHome`` and a single global ``record`` toggle. Everything is mapped here
once so the generators and the exporter only see current values.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Mapping, Sequence, Union

from pydantic import ValidationError

from wayline.domain.errors import InvalidInputError
from wayline.domain.models import MissionSettings, Waypoint, WaypointAction
from wayline.domain.presets import DRONE_PRESETS, map_legacy_drone_id

_MISSION_END_ALIASES = {"goHome": "return-home", "autoLand": "hover", "noAction": "hover"}
_RC_LOST_ALIASES = {"goHome": "return-home", "goBack": "return-home"}
_ACTION_ALIASES = {"take_photo": "photo", "takePhoto": "photo", "startRecord": "record_start", "stopRecord": "record_stop"}


class CameraCommand(str, Enum):
    TAKE_PHOTO = "takePhoto"
    START_RECORD = "startRecord"
    STOP_RECORD = "stopRecord"


def _pick(data: Dict[str, Any], *keys: str) -> str:
    for key in keys:
        if key in data:
            return key
    return keys[0]


def normalize_settings(raw: Union[Mapping[str, Any], MissionSettings, None]) -> MissionSettings:
    """Build MissionSettings from a client payload, mapping legacy values.

    Args:
        raw: camelCase or snake_case mapping, or ready settings.

    Returns:
        Validated, immutable MissionSettings.

    Raises:
        InvalidInputError: On unknown drone ids or invalid field values.
    """
    if isinstance(raw, MissionSettings):
        return raw
    data: Dict[str, Any] = dict(raw or {})

    key = _pick(data, "selectedDrone", "selected_drone")
    if data.get(key):
        drone_id = map_legacy_drone_id(str(data[key]))
        if drone_id not in DRONE_PRESETS:
            raise InvalidInputError(f"Unknown drone preset: {data[key]!r}")
        data[key] = drone_id

    for aliases, keys in (
        (_MISSION_END_ALIASES, ("missionEndAction", "mission_end_action")),
        (_RC_LOST_ALIASES, ("rcLostAction", "rc_lost_action")),
        (_ACTION_ALIASES, ("waypointAction", "waypoint_action")),
    ):
        key = _pick(data, *keys)
        value = data.get(key)
        if isinstance(value, str) and value in aliases:
            data[key] = aliases[value]

    # "auto" scan angle is the old way of asking for auto direction
    key = _pick(data, "angle")
    if isinstance(data.get(key), str) and data[key].strip().lower() == "auto":
        data[key] = 0.0
        data["autoDirection"] = True
        data.pop("auto_direction", None)

    try:
        return MissionSettings.model_validate(data)
    except ValidationError as exc:
        err = exc.errors()[0]
        where = ".".join(str(p) for p in err.get("loc", ()))
        raise InvalidInputError(f"Invalid settings {where}: {err['msg']}") from exc


def resolve_waypoint_actions(
    waypoints: Sequence[Waypoint], settings: MissionSettings
) -> List[List[CameraCommand]]:
    """Explicit camera commands per waypoint.

    A per-point ``action`` overrides the mission action. The legacy ``record``
    toggle starts recording on the first point and stops on the last.
    """
    last = len(waypoints) - 1
    out: List[List[CameraCommand]] = []
    for i, wp in enumerate(waypoints):
        action = wp.action if wp.action is not None else settings.waypoint_action
        cmds: List[CameraCommand] = []
        if action == WaypointAction.PHOTO:
            cmds.append(CameraCommand.TAKE_PHOTO)
        elif action == WaypointAction.RECORD_START:
            cmds.append(CameraCommand.START_RECORD)
        elif action == WaypointAction.RECORD_STOP:
            cmds.append(CameraCommand.STOP_RECORD)
        elif action == WaypointAction.RECORD:
            if i == 0:
                cmds.append(CameraCommand.START_RECORD)
            if i == last:
                cmds.append(CameraCommand.STOP_RECORD)
        out.append(cmds)
    return out
