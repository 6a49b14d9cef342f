"""
Distance & ETA Estimation
Great-circle distance, bearing and naive travel-time estimates.

Every distance shown to a dispatcher goes through haversine_distance() so the
nearest-ambulance panel, the route list and the navigation header always agree.

The ETA is deliberately naive: distance divided by an assumed average speed.
There is no road graph and no traffic model behind it.
"""

import math
from dataclasses import dataclass
from typing import Iterable, Optional, Tuple
import logging

from .config import BOUNDS_PADDING_DEG, DEFAULT_AVG_SPEED_KMH
from .models import Position, ValidationError

logger = logging.getLogger(__name__)

# Earth's mean radius in kilometers
EARTH_RADIUS_KM = 6371.0


@dataclass(frozen=True)
class DistanceEta:
    """
    Straight-line distance and estimated travel time between two points.

    Attributes:
        distance_km: Haversine distance (kilometers)
        eta_minutes: Whole minutes at the assumed speed
        speed_kmh: Speed the estimate was computed with
    """
    distance_km: float
    eta_minutes: int
    speed_kmh: float


# =============================================================================
# DISTANCE CALCULATIONS
# =============================================================================

def haversine_distance(a: Position, b: Position) -> float:
    """
    Calculate the great-circle distance between two points on Earth.

    a = sin²(Δφ/2) + cos(φ1) * cos(φ2) * sin²(Δλ/2)
    c = 2 * atan2(√a, √(1−a))
    d = R * c

    Args:
        a, b: Positions in degrees

    Returns:
        Distance in kilometers

    Examples:
        >>> round(haversine_distance(Position(0, 0), Position(0, 0.001)), 3)
        0.111
    """
    lat1_rad = math.radians(a.latitude)
    lat2_rad = math.radians(b.latitude)
    dlat = math.radians(b.latitude - a.latitude)
    dlon = math.radians(b.longitude - a.longitude)

    h = (
        math.sin(dlat / 2) ** 2 +
        math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(dlon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))

    return EARTH_RADIUS_KM * c


def calculate_bearing(a: Position, b: Position) -> float:
    """
    Initial compass bearing from a to b.

    Returns:
        Bearing in degrees (0-360), where 0° = North, 90° = East
    """
    lat1_rad = math.radians(a.latitude)
    lat2_rad = math.radians(b.latitude)
    dlon = math.radians(b.longitude - a.longitude)

    x = math.sin(dlon) * math.cos(lat2_rad)
    y = (
        math.cos(lat1_rad) * math.sin(lat2_rad) -
        math.sin(lat1_rad) * math.cos(lat2_rad) * math.cos(dlon)
    )

    return (math.degrees(math.atan2(x, y)) + 360) % 360


def bearing_to_cardinal(bearing: float) -> str:
    """
    Convert bearing degrees to cardinal direction.

    Examples:
        >>> bearing_to_cardinal(45)
        'NE'
        >>> bearing_to_cardinal(180)
        'S'
    """
    directions = ['N', 'NE', 'E', 'SE', 'S', 'SW', 'W', 'NW']
    index = round(bearing / 45) % 8
    return directions[index]


# =============================================================================
# ETA ESTIMATION
# =============================================================================

def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def eta_minutes_for(distance_km: float, speed_kmh: float = DEFAULT_AVG_SPEED_KMH) -> int:
    """
    Estimate whole travel minutes for a known distance.

    Args:
        distance_km: Distance to travel (kilometers, >= 0)
        speed_kmh: Assumed average speed (km/h, > 0)

    Returns:
        distance / speed * 60, rounded half up to a whole minute

    Examples:
        >>> eta_minutes_for(20, 40)
        30
    """
    if speed_kmh is None or speed_kmh <= 0:
        raise ValidationError(f"Average speed must be positive, got {speed_kmh}")
    if distance_km < 0:
        raise ValidationError(f"Distance must not be negative, got {distance_km}")

    return _round_half_up(distance_km / speed_kmh * 60)


def estimate(
    origin: Position,
    destination: Position,
    speed_kmh: float = DEFAULT_AVG_SPEED_KMH,
) -> DistanceEta:
    """
    Distance and naive ETA between two positions.

    Args:
        origin: Responder position
        destination: Patient / target position
        speed_kmh: Assumed average speed (default: 40 km/h)

    Returns:
        DistanceEta
    """
    if origin is None or destination is None:
        raise ValidationError("Both origin and destination positions are required")

    distance = haversine_distance(origin, destination)
    return DistanceEta(
        distance_km=distance,
        eta_minutes=eta_minutes_for(distance, speed_kmh),
        speed_kmh=speed_kmh,
    )


# =============================================================================
# DISPLAY HELPERS
# =============================================================================

def format_distance(distance_km: float) -> str:
    """
    Examples:
        >>> format_distance(0.85)
        '850 m'
        >>> format_distance(2.44)
        '2.4 km'
    """
    if distance_km < 1.0:
        return f"{round(distance_km * 1000)} m"
    return f"{distance_km:.1f} km"


def format_eta(minutes: int) -> str:
    """
    Examples:
        >>> format_eta(12)
        '12 min'
        >>> format_eta(65)
        '1 h 05 min'
    """
    if minutes < 60:
        return f"{minutes} min"
    hours, rest = divmod(minutes, 60)
    return f"{hours} h {rest:02d} min"


def compute_bounds(
    positions: Iterable[Position],
    padding: float = BOUNDS_PADDING_DEG,
) -> Optional[Tuple[Tuple[float, float], Tuple[float, float]]]:
    """
    Padded bounding box around a set of positions, for fitting the map view.

    The padding is a flat delta in degrees, not a distance.

    Returns:
        ((south, west), (north, east)), or None when there are no positions
    """
    positions = list(positions)
    if not positions:
        return None

    lats = [p.latitude for p in positions]
    lngs = [p.longitude for p in positions]

    return (
        (min(lats) - padding, min(lngs) - padding),
        (max(lats) + padding, max(lngs) + padding),
    )
