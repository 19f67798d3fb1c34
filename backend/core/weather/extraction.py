"""
Per-sample weather value extraction from hourly provider responses.
"""

import logging
from typing import Any, Dict, Optional, Sequence

from core.calculations import clamp01
from core.constants import (
    FOG_DEW_POINT_SPREAD_C, FOG_HUMIDITY_BOOST_FACTOR,
    FOG_HUMIDITY_BOOST_THRESHOLD_PCT, SECONDS_PER_HOUR, WEATHER_SOURCE_NAME
)
from core.models.weather import WeatherFeature, WeatherSample

logger = logging.getLogger(__name__)

# Feature attribute -> hourly series name in the provider response
HOURLY_FIELDS = {
    'rain_mm': 'rain',
    'temperature_c': 'temperature_80m',
    'wind_speed_kmh': 'wind_speed_10m',
    'wind_direction_deg': 'wind_direction_10m',
    'cloud_cover_pct': 'cloud_cover',
    'snowfall_cm': 'snowfall',
    'dew_point_2m_c': 'dew_point_2m',
    'temperature_2m_c': 'temperature_2m',
    'relative_humidity_pct': 'relative_humidity_2m',
}


def closest_hour_index(times: Sequence[Any], timestamp: Optional[int]) -> Optional[int]:
    """
    Index of the hourly entry closest to `timestamp` truncated to its hour.

    Ties keep the first closest entry. Returns None without a timestamp or
    an empty time axis.
    """
    if not timestamp or not times:
        return None

    hour = int(timestamp // SECONDS_PER_HOUR) * SECONDS_PER_HOUR
    closest_index = None
    min_diff = None
    for index, value in enumerate(times):
        if value is None:
            continue
        diff = abs(int(value) - hour)
        if min_diff is None or diff < min_diff:
            min_diff = diff
            closest_index = index
    return closest_index


def hourly_value(hourly: Dict[str, Any], name: str, index: Optional[int]) -> Optional[float]:
    """Value of series `name` at `index`; None if the series or the entry is missing."""
    if index is None:
        return None
    series = hourly.get(name)
    if not isinstance(series, list) or index >= len(series):
        return None
    value = series[index]
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        logger.debug(f"Non-numeric {name} value {value!r} at index {index}")
        return None


def calculate_fog_intensity(
    temperature_2m: Optional[float],
    dew_point_2m: Optional[float],
    relative_humidity: Optional[float]
) -> float:
    """
    Fog intensity on a 0-1 scale from the temperature/dew point spread.

    Scales linearly from 0 at a 2 degree spread to 1 at saturation, with a
    x1.2 boost above 90% relative humidity. Missing temperature or dew point
    means no fog.
    """
    if temperature_2m is None or dew_point_2m is None:
        return 0.0

    spread = temperature_2m - dew_point_2m
    if spread >= FOG_DEW_POINT_SPREAD_C:
        return 0.0

    intensity = (FOG_DEW_POINT_SPREAD_C - spread) / FOG_DEW_POINT_SPREAD_C
    if relative_humidity is not None and relative_humidity > FOG_HUMIDITY_BOOST_THRESHOLD_PCT:
        intensity = min(1.0, intensity * FOG_HUMIDITY_BOOST_FACTOR)
    return clamp01(intensity)


def extract_values(response: Dict[str, Any], timestamp: Optional[int]) -> Dict[str, Optional[float]]:
    """All hourly feature values for one timestamp."""
    hourly = response.get('hourly') or {}
    index = closest_hour_index(hourly.get('time') or [], timestamp)
    return {attr: hourly_value(hourly, name, index) for attr, name in HOURLY_FIELDS.items()}


def build_weather_feature(sample: WeatherSample, response: Dict[str, Any]) -> WeatherFeature:
    """Derive the weather feature for a sample from its cell's response."""
    values = extract_values(response, sample.time_unix)
    fog = calculate_fog_intensity(
        values['temperature_2m_c'],
        values['dew_point_2m_c'],
        values['relative_humidity_pct'],
    )
    return WeatherFeature(
        lon=sample.lon,
        lat=sample.lat,
        time_unix=sample.time_unix,
        sample_type=sample.label,
        fog_intensity=fog,
        source=WEATHER_SOURCE_NAME,
        **values
    )
