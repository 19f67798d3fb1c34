"""
Per-track attribute storage.

The pipeline reads and writes track artifacts (stats, geojson, bounds,
weather, wind) through this interface only. Every write bumps the track's
modification counter, which presentation caches use as part of their key.
"""

import copy
import itertools
import logging
import threading
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional

logger = logging.getLogger(__name__)

# Attribute names used by the pipeline
ATTR_STATS = 'stats'
ATTR_GEOJSON = 'geojson'
ATTR_BOUNDS = 'bounds'
ATTR_POINTS_COUNT = 'points_count'
ATTR_METADATA = 'metadata'
ATTR_WEATHER_POINTS = 'weather_points'
ATTR_WEATHER_SUMMARY = 'weather_summary'
ATTR_WIND_SERIES = 'wind_series'
ATTR_CACHED_KEY = 'cached_key'

ENRICHMENT_ATTRIBUTES = (ATTR_WEATHER_POINTS, ATTR_WEATHER_SUMMARY, ATTR_WIND_SERIES)


class TrackNotFoundError(KeyError):
    """Raised when a track id is unknown to the store."""


class TrackStore(ABC):
    """Opaque key/value attribute store, one namespace per track."""

    @abstractmethod
    def create_track(self, attributes: Optional[Dict[str, Any]] = None) -> str:
        """Create a track and return its id."""

    @abstractmethod
    def exists(self, track_id: str) -> bool:
        pass

    @abstractmethod
    def get(self, track_id: str, name: str, default: Any = None) -> Any:
        """Read one attribute; unknown tracks raise TrackNotFoundError."""

    @abstractmethod
    def set_many(self, track_id: str, values: Dict[str, Any], touch: bool = True) -> None:
        """
        Write several attributes at once. None values delete the attribute.

        With `touch=False` the modification counter is left alone, for
        bookkeeping attributes that do not change the track itself.
        """

    @abstractmethod
    def delete(self, track_id: str, names: Iterable[str]) -> None:
        pass

    @abstractmethod
    def modified(self, track_id: str) -> int:
        """Monotonic modification counter of the track."""

    @abstractmethod
    def track_ids(self) -> List[str]:
        pass

    def set(self, track_id: str, name: str, value: Any) -> None:
        self.set_many(track_id, {name: value})


class InMemoryTrackStore(TrackStore):
    """Dictionary backed store. Values are deep-copied on the way in and out."""

    def __init__(self):
        self._tracks: Dict[str, Dict[str, Any]] = {}
        self._modified: Dict[str, int] = {}
        self._ids = itertools.count(1)
        self._revisions = itertools.count(1)
        self._lock = threading.Lock()

    def _require(self, track_id: str) -> Dict[str, Any]:
        try:
            return self._tracks[track_id]
        except KeyError:
            raise TrackNotFoundError(track_id) from None

    def create_track(self, attributes: Optional[Dict[str, Any]] = None) -> str:
        with self._lock:
            track_id = str(next(self._ids))
            self._tracks[track_id] = {}
            self._modified[track_id] = next(self._revisions)
        if attributes:
            self.set_many(track_id, attributes)
        logger.debug(f"Created track {track_id}")
        return track_id

    def exists(self, track_id: str) -> bool:
        with self._lock:
            return track_id in self._tracks

    def get(self, track_id: str, name: str, default: Any = None) -> Any:
        with self._lock:
            attributes = self._require(track_id)
            if name not in attributes:
                return default
            return copy.deepcopy(attributes[name])

    def set_many(self, track_id: str, values: Dict[str, Any], touch: bool = True) -> None:
        with self._lock:
            attributes = self._require(track_id)
            for name, value in values.items():
                if value is None:
                    attributes.pop(name, None)
                else:
                    attributes[name] = copy.deepcopy(value)
            if touch:
                self._modified[track_id] = next(self._revisions)

    def delete(self, track_id: str, names: Iterable[str]) -> None:
        with self._lock:
            attributes = self._require(track_id)
            for name in names:
                attributes.pop(name, None)
            self._modified[track_id] = next(self._revisions)

    def modified(self, track_id: str) -> int:
        with self._lock:
            self._require(track_id)
            return self._modified[track_id]

    def track_ids(self) -> List[str]:
        with self._lock:
            return list(self._tracks)
