"""
Shared calculations module.

This module contains the geometric and unit conversion helpers shared by the
statistics engine, the weather sampler and the wind interpolator, so every
stage measures distances and bearings the same way.
"""

import math
from typing import Optional, Sequence

from geopy.distance import great_circle

from core.constants import (
    EARTH_RADIUS_KM, FULL_CIRCLE_DEGREES, KMH_PER_METER_PER_SECOND,
    METERS_PER_KILOMETER
)


# =============================================================================
# BASIC GEOMETRIC CALCULATIONS
# =============================================================================

def calculate_bearing(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Calculate the forward azimuth between two points in degrees (0-360)."""
    # Convert to radians
    lat1 = math.radians(lat1)
    lon1 = math.radians(lon1)
    lat2 = math.radians(lat2)
    lon2 = math.radians(lon2)

    # Calculate bearing
    x = math.sin(lon2 - lon1) * math.cos(lat2)
    y = math.cos(lat1) * math.sin(lat2) - math.sin(lat1) * math.cos(lat2) * math.cos(lon2 - lon1)
    initial_bearing = math.atan2(x, y)

    # Convert to degrees
    initial_bearing = math.degrees(initial_bearing)
    compass_bearing = (initial_bearing + FULL_CIRCLE_DEGREES) % FULL_CIRCLE_DEGREES

    return compass_bearing


def calculate_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Calculate great-circle distance between two points in meters."""
    return great_circle((lat1, lon1), (lat2, lon2), radius=EARTH_RADIUS_KM).meters


def bounding_box_diagonal(coords: Sequence[Sequence[float]]) -> float:
    """
    Diagonal of the planar bounding box of [x, y, ...] coordinates.

    Returns 0.0 for an empty sequence.
    """
    if not coords:
        return 0.0
    xs = [float(c[0]) for c in coords]
    ys = [float(c[1]) for c in coords]
    return math.hypot(max(xs) - min(xs), max(ys) - min(ys))


def clamp01(value: float) -> float:
    """Clamp a value into [0, 1]."""
    return max(0.0, min(1.0, value))


# =============================================================================
# UNIT CONVERSIONS
# =============================================================================

def kmh_to_meters_per_second(speed_kmh: float) -> float:
    """Convert km/h to meters per second."""
    return speed_kmh / KMH_PER_METER_PER_SECOND


def meters_to_kilometers(distance_m: float) -> float:
    """Convert meters to kilometers."""
    return distance_m / METERS_PER_KILOMETER


def kilometers_to_meters(distance_km: float) -> float:
    """Convert kilometers to meters."""
    return distance_km * METERS_PER_KILOMETER


def format_hms(seconds: Optional[float]) -> str:
    """Format a duration in seconds as H:MM:SS."""
    total = max(0, int(seconds or 0))
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)
    return f"{hours}:{minutes:02d}:{secs:02d}"
