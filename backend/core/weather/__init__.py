"""
Weather sampling, provider access and per-sample value extraction.
"""

from core.weather.extraction import (
    build_weather_feature, calculate_fog_intensity, closest_hour_index
)
from core.weather.provider import (
    OpenMeteoProvider, WeatherProvider, WeatherProviderError, fetch_with_cache
)
from core.weather.sampling import (
    GridCell, generate_weather_samples, group_samples_by_grid, sample_date_range
)

__all__ = [
    'build_weather_feature',
    'calculate_fog_intensity',
    'closest_hour_index',
    'OpenMeteoProvider',
    'WeatherProvider',
    'WeatherProviderError',
    'fetch_with_cache',
    'GridCell',
    'generate_weather_samples',
    'group_samples_by_grid',
    'sample_date_range',
]
