"""
Track presentation service.

Assembles the payload a map client loads for one track: stats, the track
LineString with wind arrays merged in, bounds, weather and its summary. Large
tracks are simplified and snapped to the compression grid. Assembled
payloads are cached under a key built from the track id, its modification
counter and the options fingerprint.
"""

import logging
from typing import Any, Dict, List, Optional

from config.settings import PipelineOptions
from core.cache import CacheStore
from core.constants import (
    SIMPLIFY_MIN_POINTS_TO_APPLY, SIMPLIFY_MIN_RDP_TARGET,
    TRACK_PAYLOAD_CACHE_TTL_SECONDS, WEATHER_ERROR_KEY_PREFIX
)
from core.simplification import (
    compress_coordinates, simplify_to_target, slice_series, snap_to_grid, target_for_size
)
from core.storage import (
    ATTR_BOUNDS, ATTR_CACHED_KEY, ATTR_GEOJSON, ATTR_METADATA, ATTR_POINTS_COUNT,
    ATTR_STATS, ATTR_WEATHER_POINTS, ATTR_WEATHER_SUMMARY, ATTR_WIND_SERIES, TrackStore
)
from core.wind.models import WindSeries

logger = logging.getLogger(__name__)

ENCODINGS = ('absolute', 'delta')

# Per-point property arrays resliced together with the coordinates
SERIES_PROPERTIES = (
    'timestamps', 'cumulativeDistance', 'heartRates', 'cadences',
    'temperatures', 'powers', 'windSpeeds', 'windDirections', 'windImpacts',
)


def empty_geojson() -> Dict[str, Any]:
    return {
        'type': 'LineString',
        'coordinates': [],
        'properties': {name: [] for name in SERIES_PROPERTIES},
    }


def invalidate_track_payload(store: TrackStore, cache: CacheStore, track_id: str) -> None:
    """Drop the cached payload recorded on the track."""
    cached_key = store.get(track_id, ATTR_CACHED_KEY)
    if cached_key:
        cache.delete(cached_key)
        store.set_many(track_id, {ATTR_CACHED_KEY: None}, touch=False)
        logger.debug(f"Invalidated payload cache {cached_key}")


def simplify_geojson(geojson: Dict[str, Any], admin_target: int) -> bool:
    """
    Simplify a LineString in place when it is large enough.

    Returns True if points were dropped.
    """
    coords = geojson.get('coordinates') or []
    original_count = len(coords)
    target = target_for_size(original_count, admin_target)
    if original_count <= max(SIMPLIFY_MIN_POINTS_TO_APPLY, target):
        return False

    indices = simplify_to_target(coords, max(SIMPLIFY_MIN_RDP_TARGET, target))
    if not indices:
        return False

    geojson['coordinates'] = [coords[i] for i in indices]
    props = geojson.setdefault('properties', {})
    for name in SERIES_PROPERTIES:
        values = props.get(name)
        if isinstance(values, list) and len(values) == original_count:
            props[name] = slice_series(values, indices)

    logger.info(f"Simplified track from {original_count} to {len(indices)} points (target {target})")
    return True


class TrackViewService:
    """Builds and caches presentation payloads."""

    def __init__(
        self,
        store: TrackStore,
        cache: CacheStore,
        options: Optional[PipelineOptions] = None,
        ttl_seconds: float = TRACK_PAYLOAD_CACHE_TTL_SECONDS
    ):
        self.store = store
        self.cache = cache
        self.options = options if options is not None else PipelineOptions()
        self.ttl_seconds = ttl_seconds

    def payload_cache_key(self, track_id: str, encoding: str = 'absolute') -> str:
        modified = self.store.modified(track_id)
        return f"track_payload_{track_id}_{modified}_{self.options.fingerprint()}_{encoding}"

    def get_track_payload(self, track_id: str, encoding: str = 'absolute') -> Dict[str, Any]:
        """
        Presentation payload for a track, served from cache when fresh.

        Args:
            track_id: Track to present
            encoding: 'absolute' grid-snapped coordinates or 'delta' offsets

        Raises:
            TrackNotFoundError: If the track does not exist
            ValueError: For an unknown encoding
        """
        if encoding not in ENCODINGS:
            raise ValueError(f"Unknown coordinate encoding: {encoding}")

        key = self.payload_cache_key(track_id, encoding)
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug(f"[CACHE] hit {key}")
            return cached

        payload = self.build_payload(track_id, encoding)
        self.cache.set(key, payload, self.ttl_seconds)
        self.store.set_many(track_id, {ATTR_CACHED_KEY: key}, touch=False)
        return payload

    def build_payload(self, track_id: str, encoding: str = 'absolute') -> Dict[str, Any]:
        geojson = self.store.get(track_id, ATTR_GEOJSON) or empty_geojson()
        props = geojson.setdefault('properties', {})

        wind = WindSeries.from_dict(self.store.get(track_id, ATTR_WIND_SERIES))
        if len(wind) == len(geojson.get('coordinates') or []) and len(wind) > 0:
            props.update(wind.to_dict())

        simplified = False
        if self.options.simplify_enabled:
            simplified = simplify_geojson(geojson, self.options.simplify_target)

        coords: List[Any] = geojson.get('coordinates') or []
        if encoding == 'delta':
            geojson['compressed'] = compress_coordinates(coords).to_dict()
            geojson['coordinates'] = []
        else:
            geojson['coordinates'] = snap_to_grid(coords)
        geojson['encoding'] = encoding

        metadata = self.store.get(track_id, ATTR_METADATA) or {}
        return {
            'id': track_id,
            'name': metadata.get('name'),
            'stats': self.store.get(track_id, ATTR_STATS) or {},
            'geojson': geojson,
            'bounds': self.store.get(track_id, ATTR_BOUNDS) or [],
            'points_count': self.store.get(track_id, ATTR_POINTS_COUNT, 0),
            'simplified': simplified,
            'weather': self.store.get(track_id, ATTR_WEATHER_POINTS) or {'type': 'FeatureCollection', 'features': []},
            'weatherSummary': self.store.get(track_id, ATTR_WEATHER_SUMMARY),
        }

    def invalidate(self, track_id: str) -> None:
        invalidate_track_payload(self.store, self.cache, track_id)

    def get_status(self, track_id: str) -> Dict[str, Any]:
        """Per-subsystem availability for a track."""
        wind = WindSeries.from_dict(self.store.get(track_id, ATTR_WIND_SERIES))
        return {
            'has_stats': bool(self.store.get(track_id, ATTR_STATS)),
            'has_weather': bool(self.store.get(track_id, ATTR_WEATHER_POINTS)),
            'has_wind': wind.has_data,
            'points_count': self.store.get(track_id, ATTR_POINTS_COUNT, 0),
            'last_weather_error': self.cache.get(f"{WEATHER_ERROR_KEY_PREFIX}{track_id}"),
        }


def get_track_view_service(
    store: TrackStore,
    cache: CacheStore,
    options: Optional[PipelineOptions] = None
) -> TrackViewService:
    """
    Get a TrackViewService instance.

    Returns:
        TrackViewService instance
    """
    return TrackViewService(store, cache, options=options)
