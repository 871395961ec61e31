"""
Geofence validation service.
Uses Haversine formula to calculate distance between points.
"""
import math
from typing import NamedTuple, Optional

# Earth radius in meters
EARTH_RADIUS_M = 6371000

WFO = "WFO"
WFH = "WFH"
WORK_MODES = (WFO, WFH)

MSG_WFO_OUTSIDE = (
    "Anda harus berada di kantor untuk mode WFO. "
    "Silakan pilih mode WFH atau pindah ke lokasi kantor."
)
MSG_WFO_OK = "Validasi lokasi berhasil"
MSG_WFH_OK = "Mode WFH aktif. Lokasi akan dicatat untuk transparansi."
MSG_INVALID_MODE = "Mode kerja tidak valid"


class WorkModeValidation(NamedTuple):
    valid: bool
    message: str


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Calculate the great circle distance between two points on Earth.

    Args:
        lat1: Latitude of first point
        lon1: Longitude of first point
        lat2: Latitude of second point
        lon2: Longitude of second point

    Returns:
        Distance in meters
    """
    # Convert to radians
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    delta_phi = math.radians(lat2 - lat1)
    delta_lambda = math.radians(lon2 - lon1)

    # Haversine formula
    a = (
        math.sin(delta_phi / 2) ** 2 +
        math.cos(phi1) * math.cos(phi2) * math.sin(delta_lambda / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_M * c


def is_within_geofence(
    user_lat: float,
    user_lng: float,
    office_lat: float,
    office_lng: float,
    radius_m: float,
) -> bool:
    """True if the user point lies inside (or on) the circle around the office."""
    return haversine_distance(user_lat, user_lng, office_lat, office_lng) <= radius_m


def validate_work_mode(
    work_mode: str,
    user_lat: float,
    user_lng: float,
    office_lat: float,
    office_lng: float,
    radius_m: float,
    enforce: bool,
) -> WorkModeValidation:
    """
    Check a work mode against the office geofence.

    WFO is rejected only when enforcement is on and the user is outside the
    radius. WFH is always accepted; the location is kept for transparency.
    """
    if work_mode == WFO:
        if enforce and not is_within_geofence(user_lat, user_lng, office_lat, office_lng, radius_m):
            return WorkModeValidation(False, MSG_WFO_OUTSIDE)
        return WorkModeValidation(True, MSG_WFO_OK)
    if work_mode == WFH:
        return WorkModeValidation(True, MSG_WFH_OK)
    return WorkModeValidation(False, MSG_INVALID_MODE)


def rounded_distance(
    user_lat: Optional[float],
    user_lng: Optional[float],
    office_lat: float,
    office_lng: float,
) -> Optional[int]:
    """Distance in whole meters, or None when the user position is unknown."""
    if user_lat is None or user_lng is None:
        return None
    return int(round(haversine_distance(float(user_lat), float(user_lng), office_lat, office_lng)))
