"""
Weather enrichment service.

Samples a stored track, fetches hourly weather per grid cell (through the
response cache), derives per-sample features and persists the collection and
its rain summary on the track. Failures never propagate to the import; they
are logged, recorded for a short time and reported through the outcome.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from config.settings import PipelineOptions
from core.cache import CacheStore, MemoryCacheStore
from core.constants import (
    WEATHER_ERROR_KEY_PREFIX, WEATHER_ERROR_TTL_SECONDS, WEATHER_SOURCE_NAME
)
from core.models.track import TrackSeries
from core.models.weather import WeatherFeature, WeatherFeatureCollection, WeatherSummary
from core.storage import (
    ATTR_GEOJSON, ATTR_WEATHER_POINTS, ATTR_WEATHER_SUMMARY, ATTR_WIND_SERIES, TrackStore
)
from core.weather.extraction import build_weather_feature
from core.weather.provider import (
    OpenMeteoProvider, WeatherProvider, WeatherProviderError, fetch_with_cache
)
from core.weather.sampling import (
    generate_weather_samples, group_samples_by_grid, sample_date_range
)
from services.track_view_service import invalidate_track_payload
from services.wind_service import WindService

logger = logging.getLogger(__name__)


class EnrichmentError(Exception):
    """Weather enrichment could not produce any data for a track."""


@dataclass
class EnrichmentOutcome:
    """Result of one enrichment run."""
    success: bool
    skipped: bool = False
    collection: Optional[WeatherFeatureCollection] = None
    summary: Optional[WeatherSummary] = None
    error: Optional[str] = None
    wind_applied: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            'success': self.success,
            'skipped': self.skipped,
            'features': len(self.collection) if self.collection is not None else 0,
            'summary': self.summary.to_dict() if self.summary is not None else None,
            'error': self.error,
            'wind_applied': self.wind_applied,
        }


def weather_error_key(track_id: str) -> str:
    return f"{WEATHER_ERROR_KEY_PREFIX}{track_id}"


class WeatherEnrichmentService:
    """
    Service for weather enrichment of stored tracks.

    Wind interpolation runs right after a successful enrichment when the
    options enable it.
    """

    def __init__(
        self,
        store: TrackStore,
        cache: Optional[CacheStore] = None,
        provider: Optional[WeatherProvider] = None,
        options: Optional[PipelineOptions] = None
    ):
        self.store = store
        self.cache = cache if cache is not None else MemoryCacheStore()
        self.provider = provider if provider is not None else OpenMeteoProvider()
        self.options = options if options is not None else PipelineOptions()

    def fetch_features(self, series: TrackSeries) -> Tuple[WeatherFeatureCollection, WeatherSummary]:
        """
        Sample a series and build its weather features.

        Cells whose provider call fails are skipped with a warning.

        Raises:
            EnrichmentError: If there are cells to fetch and every one failed
        """
        opts = self.options
        samples = generate_weather_samples(
            series,
            sampling=opts.weather_sampling,
            step_km=opts.weather_step_km,
            step_min=opts.weather_step_min,
            multi_point=opts.weather_multi_point,
            multi_point_distance_km=opts.weather_multi_point_distance_km,
        )
        cells = group_samples_by_grid(samples)
        start_date, end_date = sample_date_range(samples)
        logger.info(f"Fetching weather for {len(cells)} grid cells ({len(samples)} samples), {start_date}..{end_date}")

        features: List[WeatherFeature] = []
        failures: List[str] = []
        for cell in cells:
            try:
                response = fetch_with_cache(self.provider, self.cache, cell.lat, cell.lon, start_date, end_date)
            except WeatherProviderError as e:
                times = [s.time_unix for s in cell.samples if s.time_unix]
                logger.warning(
                    f"Weather fetch failed for cell lat={cell.lat} lon={cell.lon} "
                    f"({len(cell.samples)} samples, times {min(times) if times else None}.."
                    f"{max(times) if times else None}): {e}"
                )
                failures.append(str(e))
                continue
            features.extend(build_weather_feature(sample, response) for sample in cell.samples)

        if cells and len(failures) == len(cells):
            raise EnrichmentError(f"All {len(cells)} weather requests failed: {failures[-1]}")

        collection = WeatherFeatureCollection(
            features=features,
            meta={
                'source': WEATHER_SOURCE_NAME,
                'sampling': opts.weather_sampling,
                'step_km': opts.weather_step_km,
                'step_min': opts.weather_step_min,
                'generated_at': int(time.time()),
            },
        )
        return collection, WeatherSummary.from_features(features)

    def load_series(self, track_id: str) -> TrackSeries:
        geojson = self.store.get(track_id, ATTR_GEOJSON)
        if not geojson or not geojson.get('coordinates'):
            raise EnrichmentError(f"Track {track_id} has no geometry")
        return TrackSeries.from_geojson(geojson)

    def enrich_track(self, track_id: str, force: bool = False) -> EnrichmentOutcome:
        """
        Enrich a stored track with weather, replacing any previous weather.

        Args:
            track_id: Track to enrich
            force: Run even when weather enrichment is disabled in the options

        Returns:
            EnrichmentOutcome; a disabled option gives a skipped success
        """
        if not self.options.weather_enabled and not force:
            logger.debug(f"Weather enrichment disabled, skipping track {track_id}")
            return EnrichmentOutcome(success=True, skipped=True)

        try:
            series = self.load_series(track_id)
            collection, summary = self.fetch_features(series)
            self.store.set_many(track_id, {
                ATTR_WEATHER_POINTS: collection.to_dict(),
                ATTR_WEATHER_SUMMARY: summary.to_dict(),
                ATTR_WIND_SERIES: None,
            })
        except Exception as e:
            logger.warning(f"Weather enrichment failed for track {track_id}: {e}", exc_info=True)
            self.cache.set(weather_error_key(track_id), str(e), WEATHER_ERROR_TTL_SECONDS)
            return EnrichmentOutcome(success=False, error=str(e))

        self.cache.delete(weather_error_key(track_id))
        invalidate_track_payload(self.store, self.cache, track_id)
        logger.info(
            f"Stored {len(collection)} weather features for track {track_id} "
            f"(max rain {summary.max_mm} mm, {summary.wet_points}/{summary.total_points} wet)"
        )

        wind_applied = False
        if self.options.wind_analysis_enabled:
            wind_service = WindService(self.store, self.options, cache=self.cache)
            wind_applied = wind_service.apply_to_track(track_id, force=True) is not None

        return EnrichmentOutcome(
            success=True, collection=collection, summary=summary, wind_applied=wind_applied
        )

    def get_last_error(self, track_id: str) -> Optional[str]:
        """Error message of the latest failed run, if it happened within the last minute."""
        return self.cache.get(weather_error_key(track_id))


def get_weather_service(
    store: TrackStore,
    cache: Optional[CacheStore] = None,
    provider: Optional[WeatherProvider] = None,
    options: Optional[PipelineOptions] = None
) -> WeatherEnrichmentService:
    """
    Get a WeatherEnrichmentService instance.

    Returns:
        WeatherEnrichmentService instance
    """
    return WeatherEnrichmentService(store, cache=cache, provider=provider, options=options)
