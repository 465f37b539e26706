from __future__ import annotations

import pytest
from pydantic import ValidationError

from wayline.domain.errors import InvalidInputError
from wayline.domain.migrations import CameraCommand, normalize_settings, resolve_waypoint_actions
from wayline.domain.models import (
    MissionEndAction,
    MissionSettings,
    RCLostAction,
    Waypoint,
    WaypointAction,
)
from wayline.domain.presets import get_default_drone_id, get_drone_preset


def _wps(n: int, **kw):
    return [Waypoint(lng=0.0001 * i, lat=0.0, altitude=50.0, speed=5.0, **kw) for i in range(n)]


def test_legacy_values_are_mapped() -> None:
    s = normalize_settings(
        {
            "selectedDrone": "dji_mini_4_pro",
            "missionEndAction": "goHome",
            "rcLostAction": "goHome",
            "waypointAction": "takePhoto",
            "sideOverlap": "70",
        }
    )
    assert s.selected_drone == "mini-4-pro"
    assert s.mission_end_action == MissionEndAction.RETURN_HOME
    assert s.rc_lost_action == RCLostAction.RETURN_HOME
    assert s.waypoint_action == WaypointAction.PHOTO
    assert s.side_overlap == 70.0
    assert s.hfov == pytest.approx(82.1)


def test_auto_land_becomes_hover() -> None:
    assert normalize_settings({"missionEndAction": "autoLand"}).mission_end_action == MissionEndAction.HOVER


def test_auto_angle_enables_auto_direction() -> None:
    s = normalize_settings({"angle": "auto"})
    assert s.auto_direction is True
    assert s.angle == 0.0


def test_snake_case_keys_accepted() -> None:
    s = normalize_settings({"side_overlap": 60, "generate_every_point": True})
    assert s.side_overlap == 60.0
    assert s.generate_every_point is True


def test_unknown_drone_rejected() -> None:
    with pytest.raises(InvalidInputError):
        normalize_settings({"selectedDrone": "phantom-2"})


def test_invalid_values_rejected() -> None:
    with pytest.raises(InvalidInputError):
        normalize_settings({"altitude": -5})
    with pytest.raises(InvalidInputError):
        normalize_settings({"sideOverlap": 100})
    with pytest.raises(InvalidInputError):
        normalize_settings({"photoInterval": 0})


def test_settings_pass_through_and_are_immutable() -> None:
    s = MissionSettings()
    assert normalize_settings(s) is s
    with pytest.raises(ValidationError):
        s.speed = 3.0


def test_defaults_resolve_through_drone_preset() -> None:
    s = MissionSettings()
    assert s.selected_drone == get_default_drone_id() == "mini-5-pro"
    assert s.hfov == pytest.approx(84.0)
    assert s.effective_photo_interval == pytest.approx(5.5)
    assert MissionSettings(selected_drone="custom").hfov == pytest.approx(82.1)
    assert MissionSettings(custom_fov=70.0).hfov == pytest.approx(70.0)
    assert get_drone_preset("dji_mavic_4_pro").hfov == pytest.approx(72.0)
    assert get_drone_preset("nope") is None


def test_custom_fov_alias() -> None:
    assert normalize_settings({"customFOV": 65}).hfov == pytest.approx(65.0)


def test_legacy_record_starts_and_stops() -> None:
    cmds = resolve_waypoint_actions(_wps(3), MissionSettings(waypoint_action=WaypointAction.RECORD))
    assert cmds == [[CameraCommand.START_RECORD], [], [CameraCommand.STOP_RECORD]]


def test_legacy_record_single_point() -> None:
    cmds = resolve_waypoint_actions(_wps(1), MissionSettings(waypoint_action=WaypointAction.RECORD))
    assert cmds == [[CameraCommand.START_RECORD, CameraCommand.STOP_RECORD]]


def test_point_override_beats_global_action() -> None:
    wps = _wps(3)
    wps[1] = wps[1].model_copy(update={"action": WaypointAction.PHOTO})
    wps[2] = wps[2].model_copy(update={"action": WaypointAction.RECORD_STOP})
    cmds = resolve_waypoint_actions(wps, MissionSettings(waypoint_action=WaypointAction.NONE))
    assert cmds == [[], [CameraCommand.TAKE_PHOTO], [CameraCommand.STOP_RECORD]]


def test_global_photo_applies_everywhere() -> None:
    cmds = resolve_waypoint_actions(_wps(2), MissionSettings(waypoint_action=WaypointAction.PHOTO))
    assert cmds == [[CameraCommand.TAKE_PHOTO], [CameraCommand.TAKE_PHOTO]]
