"""Drone presets: camera FOV, photo interval limits and rated endurance."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional

# Warning threshold for flight duration (share of max flight time)
FLIGHT_WARNING_THRESHOLD = 0.85

# Conservative photo interval when nothing better is known (seconds)
DEFAULT_PHOTO_INTERVAL = 5.5

# Fallback horizontal FOV (Mini 4 Pro wide camera)
DEFAULT_HFOV = 82.1

# Takeoff and landing overhead added to mission time (seconds)
TAKEOFF_LANDING_OVERHEAD_S = 0.0


@dataclass(frozen=True)
class DronePreset:
    """Drone model capabilities.

    Attributes:
        name: Display name.
        hfov: Horizontal field of view in degrees (None: user must provide).
        photo_interval: Minimum seconds between photos at max resolution.
        max_flight_time: Practical flight time in minutes (None: no warnings).
        drone_enum: WPML ``droneEnumValue``.
        drone_sub_enum: WPML ``droneSubEnumValue``.
        is_default: Preset used when settings do not name a drone.
    """
    name: str
    hfov: Optional[float]
    photo_interval: float
    max_flight_time: Optional[float]
    drone_enum: int = 68
    drone_sub_enum: int = 0
    is_default: bool = False


DRONE_PRESETS: Dict[str, DronePreset] = {
    "mini-4-pro": DronePreset(name="DJI Mini 4 Pro", hfov=82.1, photo_interval=5.5, max_flight_time=31),
    "mini-5-pro": DronePreset(
        name="DJI Mini 5 Pro", hfov=84.0, photo_interval=5.5, max_flight_time=40, is_default=True
    ),
    # photo interval not measured yet for this model
    "mavic-4-pro": DronePreset(name="DJI Mavic 4 Pro", hfov=72.0, photo_interval=5.5, max_flight_time=40),
    "custom": DronePreset(name="Custom", hfov=None, photo_interval=DEFAULT_PHOTO_INTERVAL, max_flight_time=None),
}

LEGACY_DRONE_IDS: Dict[str, str] = {
    "dji_mini_4_pro": "mini-4-pro",
    "dji_mini_5_pro": "mini-5-pro",
    "dji_mavic_4_pro": "mavic-4-pro",
    "custom": "custom",
}


def map_legacy_drone_id(drone_id: str) -> str:
    """Map an old drone identifier (``dji_mini_4_pro``) to a preset id."""
    return LEGACY_DRONE_IDS.get(drone_id, drone_id)


def get_default_drone_id() -> str:
    for drone_id, preset in DRONE_PRESETS.items():
        if preset.is_default:
            return drone_id
    return next(iter(DRONE_PRESETS))


def get_drone_preset(drone_id: Optional[str]) -> Optional[DronePreset]:
    """Return preset by id (legacy ids accepted) or None if unknown."""
    if not drone_id:
        return None
    return DRONE_PRESETS.get(map_legacy_drone_id(drone_id))


def get_drone_ids() -> List[str]:
    return list(DRONE_PRESETS)
