"""
Track import pipeline.

Parses a GPX source, persists the derived artifacts on a track and runs
weather enrichment and wind interpolation. Parse failures propagate before
anything is written; enrichment failures never fail the import.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from config.settings import PipelineOptions
from core.cache import CacheStore, MemoryCacheStore
from core.models.track import ParsedTrack, TrackStats
from core.statistics import parse_track, stats_summary
from core.storage import (
    ATTR_BOUNDS, ATTR_GEOJSON, ATTR_METADATA, ATTR_POINTS_COUNT, ATTR_STATS,
    ENRICHMENT_ATTRIBUTES, TrackNotFoundError, TrackStore
)
from core.weather.provider import WeatherProvider
from services.track_view_service import invalidate_track_payload
from services.weather_service import EnrichmentOutcome, WeatherEnrichmentService

logger = logging.getLogger(__name__)


@dataclass
class TrackImportResult:
    """Container for import results."""
    track_id: str
    stats: TrackStats
    points_count: int
    metadata: Dict[str, Any] = field(default_factory=dict)
    weather: Optional[EnrichmentOutcome] = None

    @property
    def wind_applied(self) -> bool:
        return self.weather is not None and self.weather.wind_applied

    def to_dict(self) -> Dict[str, Any]:
        return {
            'track_id': self.track_id,
            'stats': self.stats.to_dict(),
            'summary': stats_summary(self.stats),
            'points_count': self.points_count,
            'metadata': self.metadata,
            'weather': self.weather.to_dict() if self.weather is not None else None,
            'wind_applied': self.wind_applied,
        }


def serialize_metadata(metadata: Dict[str, Any]) -> Dict[str, Any]:
    """Make GPX metadata JSON friendly."""
    return {
        key: value.isoformat() if isinstance(value, datetime) else value
        for key, value in metadata.items()
    }


def persist_parsed_track(
    store: TrackStore,
    parsed: ParsedTrack,
    track_id: Optional[str] = None
) -> str:
    """
    Write parse artifacts, creating the track if needed.

    Re-imports drop weather and wind first so no artifact of the previous
    geometry survives.
    """
    attributes = {
        ATTR_STATS: parsed.stats.to_dict(),
        ATTR_GEOJSON: parsed.series.to_geojson(),
        ATTR_BOUNDS: list(parsed.bounds),
        ATTR_POINTS_COUNT: parsed.points_count,
        ATTR_METADATA: serialize_metadata(parsed.metadata),
    }
    if track_id is None:
        return store.create_track(attributes)

    store.delete(track_id, ENRICHMENT_ATTRIBUTES)
    store.set_many(track_id, attributes)
    return track_id


def import_track(
    source: Any,
    store: TrackStore,
    cache: Optional[CacheStore] = None,
    provider: Optional[WeatherProvider] = None,
    options: Optional[PipelineOptions] = None,
    track_id: Optional[str] = None
) -> TrackImportResult:
    """
    Import a GPX track.

    Args:
        source: Path or readable file-like object with GPX data
        store: Track attribute store
        cache: Cache for weather responses and payloads
        provider: Weather provider (Open-Meteo by default)
        options: Processing options
        track_id: Existing track to re-import into

    Returns:
        TrackImportResult

    Raises:
        TrackParseError: If the source cannot be parsed; nothing is stored
        TrackNotFoundError: If `track_id` is given but unknown
    """
    options = options if options is not None else PipelineOptions()
    cache = cache if cache is not None else MemoryCacheStore()

    parsed = parse_track(source)
    if track_id is not None and not store.exists(track_id):
        raise TrackNotFoundError(track_id)

    track_id = persist_parsed_track(store, parsed, track_id)
    invalidate_track_payload(store, cache, track_id)
    logger.info(f"Imported track {track_id}: {stats_summary(parsed.stats)}")

    weather = None
    if options.weather_enabled:
        weather_service = WeatherEnrichmentService(store, cache=cache, provider=provider, options=options)
        weather = weather_service.enrich_track(track_id)
        if not weather.success:
            logger.warning(f"Track {track_id} imported without weather: {weather.error}")

    return TrackImportResult(
        track_id=track_id,
        stats=parsed.stats,
        points_count=parsed.points_count,
        metadata=serialize_metadata(parsed.metadata),
        weather=weather,
    )
