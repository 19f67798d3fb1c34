"""
Services package.

Provides business logic layer between API and core algorithms.

Modules:
    track_import_service: Parse, persist and enrich GPX tracks
    track_view_service: Presentation payloads, simplification and caching
    weather_service: Weather sampling, fetching and persistence
    wind_service: Wind interpolation on stored tracks
"""

from services.track_import_service import import_track, TrackImportResult
from services.track_view_service import TrackViewService, get_track_view_service
from services.weather_service import (
    EnrichmentError, EnrichmentOutcome, WeatherEnrichmentService, get_weather_service
)
from services.wind_service import WindService, get_wind_service

__all__ = [
    'import_track',
    'TrackImportResult',
    'TrackViewService',
    'get_track_view_service',
    'EnrichmentError',
    'EnrichmentOutcome',
    'WeatherEnrichmentService',
    'get_weather_service',
    'WindService',
    'get_wind_service',
]
