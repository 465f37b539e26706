from __future__ import annotations

import pytest

from wayline.domain.errors import InvalidInputError
from wayline.domain.metrics.estimates import calculate_max_speed
from wayline.domain.models import PathType, Shape, WaypointAction
from wayline.services.mission_planner import plan_mission, safe_speed


def _photo_settings(survey_settings, **kw):
    update = {"waypoint_action": WaypointAction.PHOTO, "photo_interval": 2.0, "generate_every_point": True}
    update.update(kw)
    return survey_settings.model_copy(update=update)


def test_safe_speed_floors_to_tenths() -> None:
    assert safe_speed(7.849) == pytest.approx(7.8)
    assert safe_speed(5.0) == pytest.approx(5.0)
    assert safe_speed(0.05) == pytest.approx(0.1)


def test_no_replan_without_photos(survey_rect, survey_settings) -> None:
    settings = _photo_settings(survey_settings, waypoint_action=WaypointAction.NONE)
    result = plan_mission(survey_rect, settings)
    assert result.replanned is False
    assert result.settings.speed == 10.0
    assert all(w.speed == 10.0 for w in result.waypoints)


def test_photo_mission_replans_at_safe_speed(survey_rect, survey_settings) -> None:
    settings = _photo_settings(survey_settings)
    logs = []
    result = plan_mission(survey_rect, settings, log_fn=logs.append)

    limit = calculate_max_speed(result.waypoints, 2.0)
    assert 0 < limit.max_speed < 10.0
    assert result.replanned is True
    assert result.settings.speed == pytest.approx(safe_speed(limit.max_speed))
    assert result.settings.speed <= limit.max_speed
    assert all(w.speed == result.settings.speed for w in result.waypoints)
    # caller's settings are untouched
    assert settings.speed == 10.0
    assert result.estimate.effective_speed_ms == pytest.approx(result.settings.speed)
    assert any(m.startswith("🐢") for m in logs)
    assert any(m.startswith("📍 Pass 2") for m in logs)


def test_slow_photo_mission_keeps_speed(survey_rect, survey_settings) -> None:
    result = plan_mission(survey_rect, _photo_settings(survey_settings, speed=3.0))
    assert result.replanned is False
    assert result.settings.speed == 3.0


def test_tiny_polygon_gives_empty_plan(make_rect, survey_settings) -> None:
    logs = []
    result = plan_mission(make_rect(5.0, 5.0), survey_settings, log_fn=logs.append)
    assert result.is_empty
    assert result.estimate.distance_m == 0.0
    assert result.to_dict()["waypoints"] == []
    assert any("No waypoints" in m for m in logs)


def test_accepts_client_payloads(survey_rect) -> None:
    result = plan_mission(
        survey_rect.model_dump(),
        {"selectedDrone": "dji_mini_4_pro", "missionEndAction": "goHome", "customFOV": 82.1, "altitude": 60},
    )
    assert not result.is_empty
    payload = result.to_dict()
    assert payload["settings"]["selectedDrone"] == "mini-4-pro"
    assert payload["metrics"]["waypoint_count"] == len(result.waypoints)
    assert set(payload["extras"]) == {"line_spacing_m", "forward_spacing_m", "scan_angle_deg"}
    assert "gimbalPitch" in payload["waypoints"][0]


def test_orbit_extras_report_radius(survey_settings) -> None:
    shape = Shape.circle((37.6, 55.75), 50.0)
    result = plan_mission(shape, survey_settings.model_copy(update={"path_type": PathType.ORBIT}))
    assert result.extras["radius_m"] == pytest.approx(50.0)
    assert result.extras["center"] == [37.6, 55.75]
    assert len(result.waypoints) == 31


def test_invalid_inputs_raise(survey_rect) -> None:
    with pytest.raises(InvalidInputError):
        plan_mission({"type": "Point", "coordinates": [0, 0]}, {})
    with pytest.raises(InvalidInputError):
        plan_mission(survey_rect, {"speed": -1})
