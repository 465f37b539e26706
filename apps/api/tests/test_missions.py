from __future__ import annotations

from fastapi.testclient import TestClient

from app.deps import get_planner_service
from app.main import app

WAYPOINTS = [
    {"lng": 0.0, "lat": 0.0, "altitude": 60, "speed": 5, "gimbalPitch": -90, "heading": 90},
    {"lng": 0.0005, "lat": 0.0, "altitude": 60, "speed": 5, "gimbalPitch": -90, "heading": 90},
    {"lng": 0.001, "lat": 0.0, "altitude": 60, "speed": 5, "gimbalPitch": -45, "heading": 180},
]


class _FakeMissions:
    def __init__(self) -> None:
        self.exported = None

    def export_kmz(self, waypoints, settings, shape=None, include_session=True):  # noqa: ANN001
        self.exported = (waypoints, settings, shape, include_session)
        return b"PK-fake"

    def import_mission(self, data, filename, log_fn=None):  # noqa: ANN001
        if log_fn:
            log_fn(f"import {filename}")
        if data == b"bad":
            raise ValueError("No waypoints found in mission.kml")
        return {"waypoints": [{"lng": 1.0, "lat": 2.0}], "session": None, "unmatched": []}


client = TestClient(app)


def test_export_returns_kmz_attachment() -> None:
    fake = _FakeMissions()
    app.dependency_overrides[get_planner_service] = lambda: fake
    try:
        response = client.post(
            "/missions/export",
            json={"waypoints": WAYPOINTS, "settings": {"speed": 5}, "filename": "Field #1", "includeSession": False},
        )
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 200
    assert response.content == b"PK-fake"
    assert response.headers["content-type"] == "application/vnd.google-earth.kmz"
    assert 'filename="Field__1.kmz"' in response.headers["content-disposition"]
    assert fake.exported[3] is False


def test_export_empty_filename_is_rejected() -> None:
    app.dependency_overrides[get_planner_service] = lambda: _FakeMissions()
    try:
        response = client.post("/missions/export", json={"waypoints": WAYPOINTS, "filename": "   "})
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 400


def test_export_requires_waypoints() -> None:
    response = client.post("/missions/export", json={"waypoints": [], "filename": "m"})
    assert response.status_code == 422


def test_import_ok_and_bad_file() -> None:
    app.dependency_overrides[get_planner_service] = lambda: _FakeMissions()
    try:
        ok = client.post("/missions/import", files={"file": ("mission.kmz", b"PK..", "application/zip")})
        bad = client.post("/missions/import", files={"file": ("mission.kml", b"bad", "text/xml")})
    finally:
        app.dependency_overrides.clear()

    assert ok.status_code == 200
    assert ok.json()["mission"]["waypoints"][0]["lat"] == 2.0
    assert ok.json()["logs"] == ["import mission.kmz"]
    assert bad.status_code == 400
    assert "No waypoints" in bad.json()["detail"]


def test_export_then_import_with_real_service() -> None:
    shape = {
        "type": "Feature",
        "geometry": {
            "type": "Polygon",
            "coordinates": [[[0.0, 0.0], [0.001, 0.0], [0.001, 0.0005], [0.0, 0.0005], [0.0, 0.0]]],
        },
        "properties": {},
    }
    exported = client.post(
        "/missions/export",
        json={"waypoints": WAYPOINTS, "settings": {"speed": 5, "waypointAction": "photo"}, "filename": "demo", "shape": shape},
    )
    assert exported.status_code == 200

    imported = client.post(
        "/missions/import",
        files={"file": ("demo.kmz", exported.content, "application/vnd.google-earth.kmz")},
    )

    assert imported.status_code == 200
    mission = imported.json()["mission"]
    assert len(mission["waypoints"]) == 3
    assert mission["waypoints"][2]["gimbalPitch"] == -45
    assert mission["session"]["settings"]["waypointAction"] == "photo"
    assert mission["session"]["shape"]["geometry"] == shape["geometry"]
