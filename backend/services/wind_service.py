"""
Wind analysis service.

This module provides business logic for wind interpolation on stored tracks,
used by the enrichment service and the API backend.
"""

import logging
from typing import Optional

from config.settings import PipelineOptions
from core.cache import CacheStore
from core.models.track import TrackSeries
from core.models.weather import WeatherFeatureCollection
from core.storage import ATTR_GEOJSON, ATTR_WEATHER_POINTS, ATTR_WIND_SERIES, TrackStore
from core.wind.interpolation import interpolate_wind_series
from core.wind.models import WindSeries
from services.track_view_service import invalidate_track_payload

logger = logging.getLogger(__name__)


class WindService:
    """
    Service for wind interpolation and related calculations.

    This class applies the option gates around the pure interpolation and
    persists the resulting wind arrays on the track.
    """

    def __init__(
        self,
        store: TrackStore,
        options: Optional[PipelineOptions] = None,
        cache: Optional[CacheStore] = None
    ):
        self.store = store
        self.options = options if options is not None else PipelineOptions()
        self.cache = cache

    def interpolate(
        self,
        series: TrackSeries,
        collection: WeatherFeatureCollection,
        density: Optional[int] = None
    ) -> WindSeries:
        """
        Interpolate wind for a series using the configured density.

        Args:
            series: Track series
            collection: Weather features for the track
            density: Override for the interpolation density

        Returns:
            WindSeries: Per-point wind arrays, possibly all null
        """
        if density is None:
            density = self.options.wind_interpolation_density
        return interpolate_wind_series(series, collection, density)

    def apply_to_track(self, track_id: str, force: bool = False) -> Optional[WindSeries]:
        """
        Interpolate and store wind for a track.

        Args:
            track_id: Track to process
            force: Ignore the wind/weather option gates

        Returns:
            WindSeries stored on the track, or None when skipped or failed
        """
        if not force and not (self.options.wind_analysis_enabled and self.options.weather_enabled):
            logger.debug(f"Wind analysis disabled, skipping track {track_id}")
            return None

        try:
            geojson = self.store.get(track_id, ATTR_GEOJSON)
            weather = self.store.get(track_id, ATTR_WEATHER_POINTS)
            if not geojson or not geojson.get('coordinates'):
                logger.debug(f"Track {track_id} has no geometry, skipping wind")
                return None
            if not weather or 'features' not in weather:
                logger.debug(f"Track {track_id} has no weather data yet, skipping wind")
                return None

            series = TrackSeries.from_geojson(geojson)
            if not any(series.timestamps):
                logger.debug(f"Track {track_id} has no timestamps, skipping wind")
                return None

            wind = self.interpolate(series, WeatherFeatureCollection.from_dict(weather))
            self.store.set(track_id, ATTR_WIND_SERIES, wind.to_dict())
        except Exception as e:
            logger.warning(f"Wind interpolation failed for track {track_id}: {e}", exc_info=True)
            return None

        if self.cache is not None:
            invalidate_track_payload(self.store, self.cache, track_id)
        return wind


def get_wind_service(
    store: TrackStore,
    options: Optional[PipelineOptions] = None,
    cache: Optional[CacheStore] = None
) -> WindService:
    """
    Get a WindService instance.

    Returns:
        WindService instance
    """
    return WindService(store, options=options, cache=cache)
