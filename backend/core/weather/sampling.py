"""
Weather sample generation.

Chooses sparse locations/times along a track, optionally augments them with
compass offsets, and groups them into 0.1 degree grid cells so each cell is
fetched from the provider once.
"""

import logging
import math
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Dict, List, Optional, Sequence, Tuple

from core.calculations import kilometers_to_meters
from core.constants import (
    KM_PER_DEGREE_LATITUDE, SECONDS_PER_MINUTE,
    WEATHER_FALLBACK_MAX_SAMPLES, WEATHER_GRID_DECIMALS, WEATHER_MAX_UNIQUE_CELLS,
    WEATHER_MULTI_POINT_DIRECTIONS, WEATHER_TIME_PADDING_SECONDS
)
from core.models.track import TrackSeries
from core.models.weather import SampleType, WeatherSample

logger = logging.getLogger(__name__)


def round_half_away(value: float, decimals: int = WEATHER_GRID_DECIMALS) -> float:
    """Round half away from zero, so 0.25 and -0.25 land in mirrored cells."""
    factor = 10 ** decimals
    rounded = math.floor(abs(value) * factor + 0.5) / factor
    # Adding 0.0 folds -0.0 into 0.0
    return math.copysign(rounded, value) + 0.0


def _sample_at(series: TrackSeries, index: int, sample_type: SampleType,
               time_unix: Optional[int]) -> WeatherSample:
    coord = series.coordinates[index]
    return WeatherSample(
        lon=float(coord[0]),
        lat=float(coord[1]),
        time_unix=time_unix,
        source_index=index,
        sample_type=sample_type,
    )


def _distance_samples(series: TrackSeries, timestamps: List[Optional[int]],
                      step_km: float) -> List[WeatherSample]:
    step_m = kilometers_to_meters(step_km)
    samples = []
    next_mark = 0.0
    for i, distance in enumerate(series.cumulative_distance):
        current = distance or 0.0
        if current >= next_mark:
            samples.append(_sample_at(series, i, SampleType.DISTANCE, timestamps[i]))
            # One sample per crossing, even after a long gap between points
            while next_mark <= current:
                next_mark += step_m
    return samples


def _time_samples(series: TrackSeries, timestamps: List[Optional[int]],
                  step_min: int) -> List[WeatherSample]:
    step_s = step_min * SECONDS_PER_MINUTE
    samples = []
    last_time: Optional[int] = None
    for i, timestamp in enumerate(timestamps):
        if timestamp is None:
            continue
        if last_time is None or timestamp - last_time >= step_s:
            samples.append(_sample_at(series, i, SampleType.TIME, timestamp))
            last_time = timestamp
    return samples


def _fallback_samples(series: TrackSeries, timestamps: List[Optional[int]]) -> List[WeatherSample]:
    n = len(series)
    step = max(1, math.ceil(n / WEATHER_FALLBACK_MAX_SAMPLES))
    return [_sample_at(series, i, SampleType.FALLBACK, timestamps[i]) for i in range(0, n, step)]


def add_multi_point_samples(samples: Sequence[WeatherSample], distance_km: float) -> List[WeatherSample]:
    """
    Follow every sample with N/S/E/W offsets `distance_km` away.

    Offsets use the planar approximation of 111 km per degree latitude and
    longitude degrees scaled by cos(latitude).
    """
    augmented = []
    lat_offset = distance_km / KM_PER_DEGREE_LATITUDE
    for sample in samples:
        augmented.append(sample)
        cos_lat = math.cos(math.radians(sample.lat))
        lon_offset = distance_km / (KM_PER_DEGREE_LATITUDE * cos_lat) if abs(cos_lat) > 1e-12 else 0.0
        offsets = {
            'N': (0.0, lat_offset),
            'S': (0.0, -lat_offset),
            'E': (lon_offset, 0.0),
            'W': (-lon_offset, 0.0),
        }
        for direction in WEATHER_MULTI_POINT_DIRECTIONS:
            d_lon, d_lat = offsets[direction]
            augmented.append(WeatherSample(
                lon=sample.lon + d_lon,
                lat=sample.lat + d_lat,
                time_unix=sample.time_unix,
                source_index=sample.source_index,
                sample_type=sample.sample_type,
                direction=direction,
            ))
    return augmented


def generate_weather_samples(
    series: TrackSeries,
    sampling: str = 'distance',
    step_km: float = 5.0,
    step_min: int = 10,
    multi_point: bool = False,
    multi_point_distance_km: float = 5.0
) -> List[WeatherSample]:
    """
    Choose weather sample points along a track.

    Distance mode emits a sample each time the cumulative distance crosses
    the next multiple of `step_km`; time mode emits one whenever at least
    `step_min` minutes passed since the previous sample. When the chosen
    mode has nothing to work with, at most 20 evenly spaced points are used.

    Args:
        series: Track series with coordinates, timestamps and distances
        sampling: 'distance' or 'time'
        step_km: Distance step for distance mode
        step_min: Time step for time mode
        multi_point: Add N/S/E/W offset samples around each sample
        multi_point_distance_km: Offset distance for multi-point samples

    Returns:
        List of WeatherSample in track order
    """
    if len(series) == 0:
        return []

    timestamps = series.timestamps_unix()
    samples: List[WeatherSample] = []

    if sampling == 'distance' and series.cumulative_distance and step_km > 0:
        samples = _distance_samples(series, timestamps, step_km)
    elif sampling == 'time' and any(t is not None for t in timestamps) and step_min > 0:
        samples = _time_samples(series, timestamps, step_min)

    if not samples:
        samples = _fallback_samples(series, timestamps)

    if multi_point:
        samples = add_multi_point_samples(samples, multi_point_distance_km)

    logger.info(f"Generated {len(samples)} weather samples ({sampling} sampling, multi_point={multi_point})")
    return samples


@dataclass
class GridCell:
    """A 0.1 degree cell and the samples that fall into it."""
    lat: float
    lon: float
    samples: List[WeatherSample] = field(default_factory=list)

    @property
    def key(self) -> Tuple[float, float]:
        return (self.lat, self.lon)


def group_samples_by_grid(
    samples: Sequence[WeatherSample],
    max_cells: int = WEATHER_MAX_UNIQUE_CELLS
) -> List[GridCell]:
    """
    Group samples by rounded (lat, lon), keeping first-seen cell order.

    Only the first `max_cells` cells are returned; samples in the remaining
    cells get no weather.
    """
    cells: Dict[Tuple[float, float], GridCell] = {}
    for sample in samples:
        key = (round_half_away(sample.lat), round_half_away(sample.lon))
        cell = cells.get(key)
        if cell is None:
            cell = cells[key] = GridCell(lat=key[0], lon=key[1])
        cell.samples.append(sample)

    grouped = list(cells.values())
    if len(grouped) > max_cells:
        dropped = sum(len(c.samples) for c in grouped[max_cells:])
        logger.warning(
            f"Weather grid has {len(grouped)} cells, fetching the first {max_cells}; "
            f"{dropped} samples left without weather"
        )
        grouped = grouped[:max_cells]
    return grouped


def sample_date_range(samples: Sequence[WeatherSample], today: Optional[date] = None) -> Tuple[str, str]:
    """
    Provider date range covering every sample time with 12 h padding.

    Dates are UTC calendar days. Without any timestamps the range is today.
    """
    times = [s.time_unix for s in samples if s.time_unix]
    if not times:
        day = (today or datetime.now(timezone.utc).date()).isoformat()
        return day, day

    start = datetime.fromtimestamp(min(times) - WEATHER_TIME_PADDING_SECONDS, tz=timezone.utc)
    end = datetime.fromtimestamp(max(times) + WEATHER_TIME_PADDING_SECONDS, tz=timezone.utc)
    return start.date().isoformat(), end.date().isoformat()
