"""
Shared fixtures: GPX documents built in memory and a fake weather provider.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple

import pytest

from core.weather.provider import WeatherProvider, WeatherProviderError

START_TIME = datetime(2024, 6, 1, 8, 0, 0, tzinfo=timezone.utc)

GPX_HEADER = (
    '<?xml version="1.0" encoding="UTF-8"?>\n'
    '<gpx version="1.1" creator="tests" xmlns="http://www.topografix.com/GPX/1/1" '
    'xmlns:gpxtpx="http://www.garmin.com/xmlschemas/TrackPointExtension/v1">\n'
)


def make_gpx(
    points: Sequence[Tuple[float, float, Optional[float]]],
    interval_s: Optional[int] = 60,
    name: str = "Test Ride",
    extensions: Optional[Sequence[Dict[str, float]]] = None
) -> str:
    """Build a single-segment GPX track; `interval_s=None` omits timestamps."""
    rows = []
    for i, (lat, lon, ele) in enumerate(points):
        parts = [f'<trkpt lat="{lat}" lon="{lon}">']
        if ele is not None:
            parts.append(f'<ele>{ele}</ele>')
        if interval_s is not None:
            stamp = (START_TIME + timedelta(seconds=i * interval_s)).strftime('%Y-%m-%dT%H:%M:%SZ')
            parts.append(f'<time>{stamp}</time>')
        if extensions is not None:
            ext = extensions[i]
            inner = ''.join(f'<gpxtpx:{tag}>{value}</gpxtpx:{tag}>' for tag, value in ext.items())
            parts.append(f'<extensions><gpxtpx:TrackPointExtension>{inner}</gpxtpx:TrackPointExtension></extensions>')
        parts.append('</trkpt>')
        rows.append(''.join(parts))
    return (
        GPX_HEADER
        + f'<trk><name>{name}</name><trkseg>\n'
        + '\n'.join(rows)
        + '\n</trkseg></trk>\n</gpx>\n'
    )


def northbound_points(count: int, step_deg: float = 0.01, lon: float = 0.0,
                      elevation: Optional[float] = 100.0) -> List[Tuple[float, float, Optional[float]]]:
    return [(i * step_deg, lon, elevation) for i in range(count)]


class FakeWeatherProvider(WeatherProvider):
    """Serves a constant hourly series and records every request."""

    name = 'fake'

    def __init__(self, values: Optional[Dict[str, Any]] = None, fail: bool = False,
                 fail_cells: Sequence[Tuple[float, float]] = ()):
        self.values = {
            'rain': 0.4,
            'wind_speed_10m': 18.0,
            'wind_direction_10m': 0.0,
            'temperature_80m': 14.0,
            'cloud_cover': 60.0,
            'snowfall': 0.0,
            'dew_point_2m': 9.0,
            'temperature_2m': 10.0,
            'relative_humidity_2m': 95.0,
        }
        if values:
            self.values.update(values)
        self.fail = fail
        self.fail_cells = set(fail_cells)
        self.calls: List[Tuple[float, float, str, str]] = []

    def fetch_hourly(self, lat: float, lon: float, start_date: str, end_date: str) -> Dict[str, Any]:
        self.calls.append((lat, lon, start_date, end_date))
        if self.fail or (lat, lon) in self.fail_cells:
            raise WeatherProviderError("provider unavailable", lat, lon)

        start = datetime.fromisoformat(start_date).replace(tzinfo=timezone.utc)
        end = datetime.fromisoformat(end_date).replace(tzinfo=timezone.utc) + timedelta(days=1)
        hours = int((end - start).total_seconds() // 3600)
        times = [int(start.timestamp()) + h * 3600 for h in range(hours)]
        hourly: Dict[str, Any] = {'time': times}
        for key, value in self.values.items():
            hourly[key] = [value] * len(times)
        return {'latitude': lat, 'longitude': lon, 'hourly': hourly}


@pytest.fixture
def three_point_gpx() -> str:
    """(0,0) -> (0.01,0) -> (0.02,0), 100 m elevation, 60 s apart."""
    return make_gpx(northbound_points(3))


@pytest.fixture
def long_ride_gpx() -> str:
    """A 40 km northbound ride with a zig-zag, one point every 100 m."""
    points = []
    for i in range(400):
        lon = 0.0005 if i % 2 else 0.0
        points.append((i * 0.0009, lon, 100.0 + (i % 50)))
    return make_gpx(points, interval_s=20)


@pytest.fixture
def fake_provider() -> FakeWeatherProvider:
    return FakeWeatherProvider()
