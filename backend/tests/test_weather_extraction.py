"""
Tests for hourly value extraction and fog derivation.
"""

import pytest

from core.models.weather import SampleType, WeatherSample
from core.weather.extraction import (
    build_weather_feature, calculate_fog_intensity, closest_hour_index,
    extract_values, hourly_value
)

HOUR = 3600
BASE = 1717200000  # 2024-06-01 00:00 UTC


def hourly_response(**series):
    hourly = {'time': [BASE + h * HOUR for h in range(4)]}
    hourly.update(series)
    return {'hourly': hourly}


class TestClosestHourIndex:
    """Tests for closest_hour_index."""

    def test_exact_hour(self):
        times = [BASE, BASE + HOUR, BASE + 2 * HOUR]
        assert closest_hour_index(times, BASE + HOUR) == 1

    def test_truncates_to_hour(self):
        """10:59 matches 10:00, not 11:00."""
        times = [BASE, BASE + HOUR, BASE + 2 * HOUR]
        assert closest_hour_index(times, BASE + HOUR + 59 * 60) == 1

    def test_tie_keeps_first(self):
        """Equal distances keep the earlier entry."""
        times = [BASE, BASE + 2 * HOUR]
        assert closest_hour_index(times, BASE + HOUR) == 0

    def test_outside_range_clamps(self):
        times = [BASE, BASE + HOUR]
        assert closest_hour_index(times, BASE + 10 * HOUR) == 1

    def test_missing_inputs(self):
        assert closest_hour_index([BASE], None) is None
        assert closest_hour_index([], BASE) is None


class TestHourlyValue:
    """Tests for hourly_value."""

    def test_missing_series(self):
        assert hourly_value({'time': [BASE]}, 'rain', 0) is None

    def test_short_series(self):
        assert hourly_value({'rain': [0.1]}, 'rain', 3) is None

    def test_null_entry(self):
        assert hourly_value({'rain': [None]}, 'rain', 0) is None

    def test_non_numeric(self):
        assert hourly_value({'rain': ['n/a']}, 'rain', 0) is None

    def test_numeric(self):
        assert hourly_value({'rain': [0, '1.5']}, 'rain', 1) == 1.5


class TestFogIntensity:
    """Tests for calculate_fog_intensity."""

    def test_wide_spread_no_fog(self):
        assert calculate_fog_intensity(15.0, 10.0, 99.0) == 0.0

    def test_spread_at_threshold_no_fog(self):
        assert calculate_fog_intensity(12.0, 10.0, 50.0) == 0.0

    def test_saturation(self):
        assert calculate_fog_intensity(10.0, 10.0, 80.0) == 1.0

    def test_linear_without_boost(self):
        assert calculate_fog_intensity(11.0, 10.0, 80.0) == pytest.approx(0.5)

    def test_humidity_boost(self):
        assert calculate_fog_intensity(11.0, 10.0, 95.0) == pytest.approx(0.6)

    def test_boost_capped_at_one(self):
        assert calculate_fog_intensity(10.1, 10.0, 99.0) == 1.0

    def test_missing_values(self):
        assert calculate_fog_intensity(None, 10.0, 99.0) == 0.0
        assert calculate_fog_intensity(10.0, None, 99.0) == 0.0

    def test_monotone_in_spread(self):
        """Narrower spreads never give less fog, and values stay in [0, 1]."""
        spreads = [3.0, 2.0, 1.5, 1.0, 0.5, 0.0, -0.5]
        values = [calculate_fog_intensity(10.0 + s, 10.0, 92.0) for s in spreads]
        assert values == sorted(values)
        assert all(0.0 <= v <= 1.0 for v in values)


class TestBuildWeatherFeature:
    """Tests for extract_values and build_weather_feature."""

    def test_values_from_closest_hour(self):
        response = hourly_response(
            rain=[0.0, 0.2, 1.4, 0.0],
            temperature_80m=[10, 11, 12, 13],
            wind_speed_10m=[5, 6, 7, 8],
            wind_direction_10m=[90, 180, 270, 0],
            temperature_2m=[10, 10, 10, 10],
            dew_point_2m=[9, 9, 9, 9],
            relative_humidity_2m=[80, 80, 80, 80],
        )
        sample = WeatherSample(lon=7.0, lat=45.0, time_unix=BASE + 2 * HOUR + 600, source_index=12,
                               sample_type=SampleType.DISTANCE, direction='E')
        feature = build_weather_feature(sample, response)

        assert feature.rain_mm == 1.4
        assert feature.temperature_c == 12.0
        assert feature.wind_speed_kmh == 7.0
        assert feature.wind_direction_deg == 270.0
        assert feature.fog_intensity == pytest.approx(0.5)
        assert feature.cloud_cover_pct is None
        assert feature.sample_type == 'distance_multi_E'
        assert feature.source == 'open-meteo'
        assert (feature.lon, feature.lat) == (7.0, 45.0)

    def test_sample_without_time_has_no_values(self):
        """A missing sample time yields null values and no fog."""
        values = extract_values(hourly_response(rain=[1, 1, 1, 1]), None)
        assert values['rain_mm'] is None
        sample = WeatherSample(lon=0, lat=0, time_unix=None, source_index=0, sample_type=SampleType.FALLBACK)
        feature = build_weather_feature(sample, hourly_response(rain=[1, 1, 1, 1]))
        assert feature.rain_mm is None
        assert feature.fog_intensity == 0.0

    def test_feature_geojson(self):
        sample = WeatherSample(lon=7.5, lat=45.5, time_unix=BASE, source_index=0, sample_type=SampleType.TIME)
        data = build_weather_feature(sample, hourly_response(rain=[0.3, 0, 0, 0])).to_dict()
        assert data['type'] == 'Feature'
        assert data['geometry'] == {'type': 'Point', 'coordinates': [7.5, 45.5]}
        assert data['properties']['rain_mm'] == 0.3
        assert data['properties']['sample_type'] == 'time'
        assert data['properties']['time_unix'] == BASE
