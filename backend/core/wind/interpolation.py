"""
Wind interpolation along a track.

Maps the sparse weather features back onto track points by a combined
space/time nearest-match score, derives a wind impact factor from the track
bearing, and fills gaps so that every point carries a value whenever the
track had at least one match.
"""

import logging
import math
from typing import List, Optional, Sequence

import numpy as np

from core.calculations import calculate_bearing, kmh_to_meters_per_second
from core.constants import SECONDS_PER_HOUR, WIND_BASELINE_SPEED_MS, WIND_DISTANCE_WEIGHT
from core.models.track import TrackSeries
from core.models.weather import WeatherFeature, WeatherFeatureCollection
from core.wind.models import WindSeries

logger = logging.getLogger(__name__)


class FeatureIndex:
    """
    Weather features that carry a value for one property, as numpy arrays.

    Features whose property is missing are left out; a missing feature time
    counts as 0.
    """

    def __init__(self, features: Sequence[WeatherFeature], prop: str):
        usable = [f for f in features if getattr(f, prop, None) is not None]
        self.prop = prop
        self.lons = np.array([f.lon for f in usable], dtype=float)
        self.lats = np.array([f.lat for f in usable], dtype=float)
        self.times = np.array([f.time_unix or 0 for f in usable], dtype=float)
        self.values = [float(getattr(f, prop)) for f in usable]

    def __len__(self) -> int:
        return len(self.values)

    def nearest(self, lon: float, lat: float, timestamp: int) -> Optional[float]:
        """Value of the feature with the lowest score; ties keep the first feature."""
        if not self.values:
            return None
        distance = np.hypot(self.lons - lon, self.lats - lat)
        hours = np.abs(timestamp - self.times) / SECONDS_PER_HOUR
        scores = distance * WIND_DISTANCE_WEIGHT + hours
        return self.values[int(np.argmin(scores))]


def interpolate_wind_value_for_point(
    features: Sequence[WeatherFeature],
    lon: float,
    lat: float,
    timestamp: int,
    prop: str
) -> Optional[float]:
    """
    Nearest weather value for a point and time.

    Score per feature is planar distance in degrees times 1000 plus the
    absolute time difference in hours.
    """
    return FeatureIndex(features, prop).nearest(lon, lat, timestamp)


def calculate_wind_impact(
    prev_coord: Sequence[float],
    coord: Sequence[float],
    wind_speed_kmh: float,
    wind_direction_deg: float
) -> float:
    """
    Impact factor of the wind on the segment ending at `coord`.

    1.0 means no effect; the along-track wind component is scaled against a
    15 m/s cruising speed, positive for tailwind. Not clamped.
    """
    bearing = calculate_bearing(prev_coord[1], prev_coord[0], coord[1], coord[0])
    wind_speed_ms = kmh_to_meters_per_second(wind_speed_kmh)
    relative_angle = math.radians(wind_direction_deg - bearing)
    wind_component = wind_speed_ms * math.cos(relative_angle)
    return 1.0 + wind_component / WIND_BASELINE_SPEED_MS


def fill_null_values(values: Sequence[Optional[float]]) -> List[Optional[float]]:
    """Forward-fill, then backward-fill the leading gap."""
    filled = list(values)
    last = None
    for i, value in enumerate(filled):
        if value is not None:
            last = value
        elif last is not None:
            filled[i] = last

    last = None
    for i in range(len(filled) - 1, -1, -1):
        if filled[i] is not None:
            last = filled[i]
        elif last is not None:
            filled[i] = last
    return filled


def interpolate_wind_series(
    series: TrackSeries,
    collection: WeatherFeatureCollection,
    density: int = 3
) -> WindSeries:
    """
    Interpolate wind speed, direction and impact for every track point.

    Only every `density`-th point (and always the last one) is matched;
    points without a timestamp get no match. Gaps are filled afterwards so
    only a track with no match at all stays entirely null.

    Args:
        series: Track series
        collection: Weather features of the track
        density: Process every Nth point

    Returns:
        WindSeries aligned with the track series
    """
    n = len(series)
    if n == 0:
        return WindSeries()
    if not collection.features:
        return WindSeries.empty(n)

    density = max(1, int(density))
    timestamps = series.timestamps_unix()
    speed_index = FeatureIndex(collection.features, 'wind_speed_kmh')
    direction_index = FeatureIndex(collection.features, 'wind_direction_deg')

    speeds: List[Optional[float]] = [None] * n
    directions: List[Optional[float]] = [None] * n
    impacts: List[Optional[float]] = [None] * n

    for i, coord in enumerate(series.coordinates):
        if i % density != 0 and i != n - 1:
            continue
        timestamp = timestamps[i]
        if not timestamp:
            continue

        lon, lat = float(coord[0]), float(coord[1])
        speed = speed_index.nearest(lon, lat, timestamp)
        direction = direction_index.nearest(lon, lat, timestamp)
        speeds[i] = speed
        directions[i] = direction

        if speed is not None and direction is not None and i > 0:
            impacts[i] = calculate_wind_impact(series.coordinates[i - 1], coord, speed, direction)

    result = WindSeries(
        wind_speeds=fill_null_values(speeds),
        wind_directions=fill_null_values(directions),
        wind_impacts=fill_null_values(impacts),
    )
    logger.info(
        f"Interpolated wind for {n} points from {len(collection)} weather features "
        f"(density {density}, matched={result.has_data})"
    )
    return result
