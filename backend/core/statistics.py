"""
Track statistics engine.

Turns the parsed point list into the per-point series (coordinates,
timestamps, cumulative distance, biometrics) and the ride statistics:
distance, moving time, average speed, smoothed elevation gain/loss and
bounds.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from core.calculations import calculate_distance, format_hms
from core.constants import (
    CLIMB_SEGMENT_THRESHOLD_M, ELEVATION_MEDIAN_WINDOW,
    MOVING_SPEED_THRESHOLD_MS, RAW_ELEVATION_GAIN_THRESHOLD_M
)
from core.gpx import dataframe_to_points, load_gpx_file, load_gpx_from_path
from core.models.track import (
    Bounds, ParsedTrack, TrackPoint, TrackSeries, TrackStats, unix_to_iso
)
from core.validation import EmptyTrackError

logger = logging.getLogger(__name__)


# =============================================================================
# ELEVATION SMOOTHING
# =============================================================================

def fill_missing_elevations(elevations: Sequence[Optional[float]]) -> List[float]:
    """
    Forward-fill missing elevations.

    Leading gaps take the first known elevation; a series without any
    elevation becomes all zeros.
    """
    first_known = next((e for e in elevations if e is not None), 0.0)
    filled = []
    last = first_known
    for elevation in elevations:
        if elevation is not None:
            last = elevation
        filled.append(float(last))
    return filled


def median_filter(values: Sequence[float], window: int = ELEVATION_MEDIAN_WINDOW) -> np.ndarray:
    """
    Centered median filter, window clamped at the edges.

    For even-sized edge windows the upper middle element is used.
    """
    arr = np.asarray(values, dtype=float)
    n = len(arr)
    half = window // 2
    smoothed = np.empty(n, dtype=float)
    for i in range(n):
        segment = np.sort(arr[max(0, i - half):min(n, i + half + 1)])
        smoothed[i] = segment[len(segment) // 2]
    return smoothed


def aggregate_climbs(smoothed: Sequence[float], threshold: float = CLIMB_SEGMENT_THRESHOLD_M) -> Tuple[float, float]:
    """
    Accumulate elevation gain and loss from a smoothed elevation signal.

    A climb is committed when the signal turns down and only if it rose at
    least `threshold` meters since the last dip; descents are aggregated the
    same way in the opposite direction.

    Returns:
        (gain_m, loss_m)
    """
    gain = 0.0
    loss = 0.0
    segment_gain = 0.0
    segment_loss = 0.0
    for i in range(1, len(smoothed)):
        delta = float(smoothed[i]) - float(smoothed[i - 1])
        if delta > 0:
            segment_gain += delta
            if segment_loss >= threshold:
                loss += segment_loss
            segment_loss = 0.0
        elif delta < 0:
            segment_loss -= delta
            if segment_gain >= threshold:
                gain += segment_gain
            segment_gain = 0.0
    if segment_gain >= threshold:
        gain += segment_gain
    if segment_loss >= threshold:
        loss += segment_loss
    return gain, loss


def raw_elevation_gain(elevations: Sequence[Optional[float]]) -> float:
    """Naive gain: sum of consecutive rises above the noise threshold."""
    gain = 0.0
    for prev, curr in zip(elevations, elevations[1:]):
        if prev is None or curr is None:
            continue
        delta = curr - prev
        if delta > RAW_ELEVATION_GAIN_THRESHOLD_M:
            gain += delta
    return gain


# =============================================================================
# SERIES AND STATISTICS
# =============================================================================

def compute_point_statistics(points: Sequence[TrackPoint]) -> Tuple[TrackSeries, TrackStats]:
    """
    Compute the per-point series and ride statistics in a single pass.

    Args:
        points: Points in recording order

    Returns:
        (TrackSeries, TrackStats)

    Raises:
        EmptyTrackError: If there are no points
    """
    if not points:
        raise EmptyTrackError("No track points found")

    coordinates = []
    timestamps = []
    cumulative = []
    heart_rates = []
    cadences = []
    temperatures = []
    powers = []
    elevations = []

    total_distance = 0.0
    moving_time = 0.0
    min_elev: Optional[float] = None
    max_elev: Optional[float] = None
    min_lat, min_lon, max_lat, max_lon = 90.0, 180.0, -90.0, -180.0
    prev: Optional[TrackPoint] = None

    for point in points:
        lat, lon, ele = point.latitude, point.longitude, point.elevation

        min_lat = min(min_lat, lat)
        max_lat = max(max_lat, lat)
        min_lon = min(min_lon, lon)
        max_lon = max(max_lon, lon)

        if ele is not None:
            min_elev = ele if min_elev is None else min(min_elev, ele)
            max_elev = ele if max_elev is None else max(max_elev, ele)

        if prev is not None:
            d = calculate_distance(prev.latitude, prev.longitude, lat, lon)
            total_distance += d

            if point.time is not None and prev.time is not None:
                dt = max(0, point.time - prev.time)
                # Zero-duration segments never count as moving
                if dt > 0 and d / dt > MOVING_SPEED_THRESHOLD_MS:
                    moving_time += dt

        coordinates.append([lon, lat, ele if ele is not None else 0.0])
        timestamps.append(unix_to_iso(point.time))
        cumulative.append(total_distance)
        heart_rates.append(point.heart_rate)
        cadences.append(point.cadence)
        temperatures.append(point.temperature)
        powers.append(point.power)
        elevations.append(ele)
        prev = point

    raw_gain = raw_elevation_gain(elevations)
    if any(e is not None for e in elevations):
        smoothed = median_filter(fill_missing_elevations(elevations))
        elevation_gain, elevation_loss = aggregate_climbs(smoothed)
    else:
        elevation_gain, elevation_loss = raw_gain, 0.0

    average_speed = total_distance / moving_time if moving_time > 0 else 0.0
    bounds: Bounds = (min_lon, min_lat, max_lon, max_lat)

    series = TrackSeries(
        coordinates=coordinates,
        timestamps=timestamps,
        cumulative_distance=cumulative,
        heart_rates=heart_rates,
        cadences=cadences,
        temperatures=temperatures,
        powers=powers,
    )
    stats = TrackStats(
        total_distance_m=total_distance,
        moving_time_s=moving_time,
        average_speed_m_s=average_speed,
        elevation_gain_m=elevation_gain,
        elevation_loss_m=elevation_loss,
        raw_elevation_gain_m=raw_gain,
        min_elevation_m=min_elev,
        max_elevation_m=max_elev,
        bounds=bounds,
    )

    logger.info(
        f"Computed stats for {len(points)} points: {total_distance:.0f} m, "
        f"moving {moving_time:.0f} s, gain {elevation_gain:.1f} m"
    )
    return series, stats


def compute_track_statistics(df: pd.DataFrame) -> Tuple[TrackSeries, TrackStats]:
    """Compute series and statistics from a parsed point table."""
    return compute_point_statistics(dataframe_to_points(df))


def parse_track(source: Any) -> ParsedTrack:
    """
    Parse a track source and derive its series and statistics.

    Args:
        source: A filesystem path or a readable file-like object

    Returns:
        ParsedTrack

    Raises:
        TrackParseError: UnreadableTrackError, MalformedTrackError or EmptyTrackError
    """
    if hasattr(source, 'read'):
        df, metadata = load_gpx_file(source)
    else:
        df, metadata = load_gpx_from_path(source)

    series, stats = compute_track_statistics(df)
    return ParsedTrack(series=series, stats=stats, metadata=metadata)


def stats_summary(stats: TrackStats) -> Dict[str, Any]:
    """Short human-oriented summary used by logs and the CLI."""
    return {
        'distance_km': round(stats.total_distance_km, 2),
        'moving_time': format_hms(stats.moving_time_s),
        'elevation_gain_m': round(stats.elevation_gain_m, 1),
    }
