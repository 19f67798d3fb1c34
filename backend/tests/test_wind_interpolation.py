"""
Tests for wind interpolation, impact factors and the wind service.
"""

import pytest

from config.settings import PipelineOptions
from core.models.track import TrackSeries, unix_to_iso
from core.models.weather import WeatherFeature, WeatherFeatureCollection
from core.storage import ATTR_GEOJSON, ATTR_WEATHER_POINTS, ATTR_WIND_SERIES, InMemoryTrackStore
from core.wind.interpolation import (
    FeatureIndex, calculate_wind_impact, fill_null_values,
    interpolate_wind_series, interpolate_wind_value_for_point
)
from services.wind_service import WindService
from tests.conftest import START_TIME

START_UNIX = int(START_TIME.timestamp())
HOUR = 3600


def feature(lon, lat, time_unix, speed=10.0, direction=0.0):
    return WeatherFeature(lon=lon, lat=lat, time_unix=time_unix, sample_type='distance',
                          wind_speed_kmh=speed, wind_direction_deg=direction)


def northbound_series(count, interval_s=60, timed=True):
    return TrackSeries(
        coordinates=[[0.0, i * 0.001, 0.0] for i in range(count)],
        timestamps=[unix_to_iso(START_UNIX + i * interval_s) if timed else None for i in range(count)],
        cumulative_distance=[i * 111.2 for i in range(count)],
    )


class TestWindImpact:
    """Tests for calculate_wind_impact."""

    def test_tailwind(self):
        """Wind direction equal to the bearing adds to the rider's speed."""
        impact = calculate_wind_impact([0.0, 0.0], [0.0, 0.01], 36.0, 0.0)
        assert impact == pytest.approx(1.0 + 10.0 / 15.0)
        assert impact > 1

    def test_headwind(self):
        impact = calculate_wind_impact([0.0, 0.0], [0.0, 0.01], 36.0, 180.0)
        assert impact == pytest.approx(1.0 - 10.0 / 15.0)
        assert impact < 1

    def test_crosswind_neutral(self):
        impact = calculate_wind_impact([0.0, 0.0], [0.0, 0.01], 36.0, 90.0)
        assert impact == pytest.approx(1.0)

    def test_calm(self):
        assert calculate_wind_impact([0.0, 0.0], [0.01, 0.0], 0.0, 45.0) == 1.0

    def test_not_clamped(self):
        """Strong headwinds drive the factor below zero."""
        assert calculate_wind_impact([0.0, 0.0], [0.0, 0.01], 108.0, 180.0) < 0


class TestFillNullValues:
    """Tests for fill_null_values."""

    def test_forward_then_backward(self):
        assert fill_null_values([None, None, 3.0, None, 5.0, None]) == [3.0, 3.0, 3.0, 3.0, 5.0, 5.0]

    def test_all_null_stays_null(self):
        assert fill_null_values([None, None]) == [None, None]

    def test_zero_is_a_value(self):
        assert fill_null_values([0.0, None]) == [0.0, 0.0]


class TestNearestFeature:
    """Tests for the space/time nearest match."""

    def test_space_dominates(self):
        """0.01 degrees weighs as much as 10 hours."""
        features = [
            feature(0.0, 0.01, START_UNIX, speed=5.0),
            feature(0.0, 0.0, START_UNIX + 5 * HOUR, speed=20.0),
        ]
        assert interpolate_wind_value_for_point(features, 0.0, 0.0, START_UNIX, 'wind_speed_kmh') == 20.0

    def test_time_breaks_spatial_tie(self):
        features = [
            feature(0.0, 0.0, START_UNIX + 3 * HOUR, speed=5.0),
            feature(0.0, 0.0, START_UNIX, speed=20.0),
        ]
        assert interpolate_wind_value_for_point(features, 0.0, 0.0, START_UNIX, 'wind_speed_kmh') == 20.0

    def test_tie_keeps_first(self):
        features = [feature(0.0, 0.01, START_UNIX, speed=5.0), feature(0.0, -0.01, START_UNIX, speed=20.0)]
        assert interpolate_wind_value_for_point(features, 0.0, 0.0, START_UNIX, 'wind_speed_kmh') == 5.0

    def test_missing_property_skipped(self):
        features = [feature(0.0, 0.0, START_UNIX, speed=None), feature(1.0, 1.0, START_UNIX, speed=12.0)]
        assert interpolate_wind_value_for_point(features, 0.0, 0.0, START_UNIX, 'wind_speed_kmh') == 12.0

    def test_no_usable_features(self):
        index = FeatureIndex([feature(0.0, 0.0, START_UNIX, speed=None)], 'wind_speed_kmh')
        assert len(index) == 0
        assert index.nearest(0.0, 0.0, START_UNIX) is None


class TestInterpolateWindSeries:
    """Tests for interpolate_wind_series."""

    def test_every_point_filled(self):
        """A single feature reaches every point; the first impact is back-filled."""
        series = northbound_series(10)
        collection = WeatherFeatureCollection(features=[feature(0.0, 0.005, START_UNIX, speed=36.0, direction=0.0)])

        wind = interpolate_wind_series(series, collection, density=3)

        assert len(wind) == 10
        assert wind.wind_speeds == [36.0] * 10
        assert wind.wind_directions == [0.0] * 10
        assert all(v == pytest.approx(1.0 + 10.0 / 15.0) for v in wind.wind_impacts)

    def test_density_picks_nearest_at_sampled_points(self):
        """Only every Nth point and the last one are matched, the rest is filled forward."""
        series = northbound_series(7)
        collection = WeatherFeatureCollection(features=[
            feature(0.0, 0.0, START_UNIX, speed=10.0),
            feature(0.0, 0.006, START_UNIX, speed=30.0),
        ])

        wind = interpolate_wind_series(series, collection, density=5)

        # Points 0, 5 and 6 are matched; 1..4 carry point 0's value forward
        assert wind.wind_speeds == [10.0, 10.0, 10.0, 10.0, 10.0, 30.0, 30.0]

    def test_density_one_matches_every_point(self):
        series = northbound_series(7)
        collection = WeatherFeatureCollection(features=[
            feature(0.0, 0.0, START_UNIX, speed=10.0),
            feature(0.0, 0.007, START_UNIX, speed=30.0),
        ])
        wind = interpolate_wind_series(series, collection, density=1)
        assert wind.wind_speeds == [10.0, 10.0, 10.0, 10.0, 30.0, 30.0, 30.0]

    def test_untimed_track_stays_null(self):
        wind = interpolate_wind_series(
            northbound_series(5, timed=False),
            WeatherFeatureCollection(features=[feature(0.0, 0.0, START_UNIX)]),
        )
        assert wind.wind_speeds == [None] * 5
        assert not wind.has_data

    def test_no_features(self):
        wind = interpolate_wind_series(northbound_series(4), WeatherFeatureCollection())
        assert wind.to_dict() == {
            'windSpeeds': [None] * 4,
            'windDirections': [None] * 4,
            'windImpacts': [None] * 4,
        }


class TestWindService:
    """Tests for WindService.apply_to_track gating and persistence."""

    def _track(self, store, with_weather=True):
        series = northbound_series(6)
        attributes = {ATTR_GEOJSON: series.to_geojson()}
        if with_weather:
            attributes[ATTR_WEATHER_POINTS] = WeatherFeatureCollection(
                features=[feature(0.0, 0.0, START_UNIX, speed=20.0, direction=180.0)]
            ).to_dict()
        return store.create_track(attributes)

    def test_disabled_without_force(self):
        store = InMemoryTrackStore()
        track_id = self._track(store)
        service = WindService(store, PipelineOptions(weather_enabled=True, wind_analysis_enabled=False))
        assert service.apply_to_track(track_id) is None
        assert store.get(track_id, ATTR_WIND_SERIES) is None

    def test_enabled_stores_series(self):
        store = InMemoryTrackStore()
        track_id = self._track(store)
        service = WindService(store, PipelineOptions(weather_enabled=True, wind_analysis_enabled=True))

        wind = service.apply_to_track(track_id)

        assert wind is not None
        stored = store.get(track_id, ATTR_WIND_SERIES)
        assert stored['windSpeeds'] == [20.0] * 6
        assert all(v < 1 for v in stored['windImpacts'])

    def test_needs_weather(self):
        store = InMemoryTrackStore()
        track_id = self._track(store, with_weather=False)
        assert WindService(store).apply_to_track(track_id, force=True) is None

    def test_density_override(self):
        store = InMemoryTrackStore()
        service = WindService(store, PipelineOptions(wind_interpolation_density=5))
        collection = WeatherFeatureCollection(features=[feature(0.0, 0.0, START_UNIX)])
        assert len(service.interpolate(northbound_series(4), collection, density=1)) == 4
