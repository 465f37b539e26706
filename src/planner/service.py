"""Planner service interface and adapter implementation."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional


class PlannerService(ABC):
    """Abstract planner interface used by the HTTP layer."""

    @abstractmethod
    def plan(
        self,
        shape: Dict[str, Any],
        settings: Dict[str, Any],
        log_fn: Optional[Callable[[str], None]] = None,
    ) -> Dict[str, Any]:
        """Plan waypoints for a drawn shape.

        Args:
            shape: GeoJSON Polygon Feature.
            settings: Mission settings payload (camelCase).
            log_fn: Optional callback used for progress logging.

        Returns:
            Plan payload with waypoints, settings, metrics and extras.
        """

    @abstractmethod
    def export_kmz(
        self,
        waypoints: list[Dict[str, Any]],
        settings: Dict[str, Any],
        shape: Optional[Dict[str, Any]] = None,
        include_session: bool = True,
    ) -> bytes:
        """Build KMZ bytes for a waypoint list."""

    @abstractmethod
    def import_mission(
        self,
        data: bytes,
        filename: str,
        log_fn: Optional[Callable[[str], None]] = None,
    ) -> Dict[str, Any]:
        """Parse an uploaded KMZ/KML file."""


class WaylinePlannerService(PlannerService):
    """Adapter over the wayline planning, export and import services."""

    def plan(
        self,
        shape: Dict[str, Any],
        settings: Dict[str, Any],
        log_fn: Optional[Callable[[str], None]] = None,
    ) -> Dict[str, Any]:
        # Lazy import keeps pyproj/shapely out of API startup and tests.
        from wayline.services.mission_planner import plan_mission

        return plan_mission(shape, settings, log_fn=log_fn).to_dict()

    def export_kmz(
        self,
        waypoints: list[Dict[str, Any]],
        settings: Dict[str, Any],
        shape: Optional[Dict[str, Any]] = None,
        include_session: bool = True,
    ) -> bytes:
        from wayline.domain.migrations import normalize_settings
        from wayline.domain.models import SessionSnapshot, Shape, Waypoint
        from wayline.services.exporter import build_kmz

        mission_settings = normalize_settings(settings)
        wps = [Waypoint.model_validate(w) for w in waypoints]
        snapshot = None
        if include_session:
            snapshot = SessionSnapshot(
                settings=mission_settings,
                shape=Shape.from_geojson(shape) if shape else None,
            )
        return build_kmz(wps, mission_settings, snapshot=snapshot)

    def import_mission(
        self,
        data: bytes,
        filename: str,
        log_fn: Optional[Callable[[str], None]] = None,
    ) -> Dict[str, Any]:
        from wayline.services.importer import parse_mission_archive

        return parse_mission_archive(data, filename, log_fn=log_fn).to_dict()
