"""
Hourly weather providers.

A provider returns the raw hourly response for one location and date range:
`{'hourly': {'time': [...], '<parameter>': [...], ...}}` with every series
aligned to the shared UNIX-seconds time axis.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Sequence

import requests

from core.cache import CacheStore
from core.constants import (
    OPEN_METEO_FORECAST_URL, OPEN_METEO_HOURLY_PARAMETERS,
    WEATHER_CACHE_KEY_VERSION, WEATHER_REQUEST_TIMEOUT_SECONDS,
    WEATHER_RESPONSE_CACHE_TTL_SECONDS, WEATHER_USER_AGENT
)

logger = logging.getLogger(__name__)


class WeatherProviderError(Exception):
    """Timeout, HTTP failure or malformed response from a weather provider."""

    def __init__(self, message: str, lat: Optional[float] = None, lon: Optional[float] = None):
        super().__init__(message)
        self.lat = lat
        self.lon = lon


class WeatherProvider(ABC):
    """Source of hourly weather time series."""

    name = 'abstract'

    @abstractmethod
    def fetch_hourly(self, lat: float, lon: float, start_date: str, end_date: str) -> Dict[str, Any]:
        """
        Fetch the hourly series for a location.

        Args:
            lat: Latitude in degrees
            lon: Longitude in degrees
            start_date: First day, YYYY-MM-DD
            end_date: Last day, YYYY-MM-DD

        Returns:
            Response dict with an `hourly.time` axis

        Raises:
            WeatherProviderError: On any failure
        """


def validate_hourly_response(data: Any, lat: float, lon: float) -> Dict[str, Any]:
    """Only the time axis is required; individual series are checked on access."""
    hourly = data.get('hourly') if isinstance(data, dict) else None
    if not isinstance(hourly, dict) or not isinstance(hourly.get('time'), list):
        raise WeatherProviderError("Weather response has no hourly time axis", lat, lon)
    return data


class OpenMeteoProvider(WeatherProvider):
    """Open-Meteo forecast API (covers recent past days as well)."""

    name = 'open-meteo'

    def __init__(
        self,
        base_url: str = OPEN_METEO_FORECAST_URL,
        timeout: float = WEATHER_REQUEST_TIMEOUT_SECONDS,
        hourly_parameters: Sequence[str] = OPEN_METEO_HOURLY_PARAMETERS,
        user_agent: str = WEATHER_USER_AGENT
    ):
        self.base_url = base_url
        self.timeout = timeout
        self.hourly_parameters = tuple(hourly_parameters)
        self.user_agent = user_agent

    def build_params(self, lat: float, lon: float, start_date: str, end_date: str) -> Dict[str, Any]:
        return {
            'latitude': lat,
            'longitude': lon,
            'hourly': ','.join(self.hourly_parameters),
            'timezone': 'auto',
            'timeformat': 'unixtime',
            'format': 'json',
            'start_date': start_date,
            'end_date': end_date,
        }

    def fetch_hourly(self, lat: float, lon: float, start_date: str, end_date: str) -> Dict[str, Any]:
        params = self.build_params(lat, lon, start_date, end_date)
        logger.info(f"[API] start {self.base_url} lat={lat} lon={lon} {start_date}..{end_date}")
        try:
            resp = requests.get(
                self.base_url,
                params=params,
                headers={'User-Agent': self.user_agent},
                timeout=self.timeout,
            )
        except requests.Timeout as e:
            raise WeatherProviderError(f"Weather request timed out after {self.timeout}s", lat, lon) from e
        except requests.RequestException as e:
            raise WeatherProviderError(f"Weather request failed: {e}", lat, lon) from e

        if resp.status_code != 200:
            raise WeatherProviderError(f"Weather provider returned HTTP {resp.status_code}", lat, lon)

        try:
            data = resp.json()
        except ValueError as e:
            raise WeatherProviderError(f"Weather response is not valid JSON: {e}", lat, lon) from e

        return validate_hourly_response(data, lat, lon)


def weather_cache_key(lat: float, lon: float, start_date: str, end_date: str) -> str:
    """Cache key for a raw response of one grid cell and date range."""
    return f"{WEATHER_CACHE_KEY_VERSION}_{lat:.1f}_{lon:.1f}_{start_date}_{end_date}"


def fetch_with_cache(
    provider: WeatherProvider,
    cache: Optional[CacheStore],
    lat: float,
    lon: float,
    start_date: str,
    end_date: str,
    ttl_seconds: float = WEATHER_RESPONSE_CACHE_TTL_SECONDS
) -> Dict[str, Any]:
    """
    Return the cached response for a cell or fetch and cache it.

    A cache hit is returned as stored, without contacting the provider.
    Failures are not cached.
    """
    key = weather_cache_key(lat, lon, start_date, end_date)
    if cache is not None:
        cached = cache.get(key)
        if cached is not None:
            logger.info(f"[CACHE] hit {key}")
            return cached
        logger.info(f"[CACHE] miss {key}")

    data = provider.fetch_hourly(lat, lon, start_date, end_date)
    if cache is not None:
        cache.set(key, data, ttl_seconds)
    return data
