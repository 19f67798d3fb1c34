"""
Track data models.

This module defines the point, series and statistics structures produced by
the track parser and consumed by the simplifier, the weather sampler and the
wind interpolator.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from core.calculations import meters_to_kilometers


Bounds = Tuple[float, float, float, float]  # (min_lon, min_lat, max_lon, max_lat)

# Optional per-point arrays, keyed by their GeoJSON property name
BIOMETRIC_PROPERTIES = {
    'heart_rates': 'heartRates',
    'cadences': 'cadences',
    'temperatures': 'temperatures',
    'powers': 'powers',
}


def to_unix(value: Any) -> Optional[int]:
    """
    Convert an ISO-8601 string, datetime or number to UNIX seconds.

    Naive datetimes are treated as UTC. Unparseable input yields None.
    """
    if value is None or value == '':
        return None
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, str):
        text = value.strip()
        if text.endswith('Z'):
            text = text[:-1] + '+00:00'
        try:
            value = datetime.fromisoformat(text)
        except ValueError:
            return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return int(value.timestamp())
    return None


def unix_to_iso(timestamp: Optional[int]) -> Optional[str]:
    """Format UNIX seconds as an ISO-8601 UTC string."""
    if timestamp is None:
        return None
    return datetime.fromtimestamp(int(timestamp), tz=timezone.utc).isoformat()


@dataclass(frozen=True)
class TrackPoint:
    """A single recorded point. Immutable once parsed."""
    latitude: float
    longitude: float
    elevation: Optional[float] = None
    time: Optional[int] = None  # UNIX seconds
    heart_rate: Optional[float] = None
    cadence: Optional[float] = None
    temperature: Optional[float] = None
    power: Optional[float] = None


@dataclass
class TrackSeries:
    """
    Parallel per-point arrays derived from the recorded points.

    Every array has the same length as `coordinates`; index i of each array
    describes point i of the recording.
    """
    coordinates: List[List[float]]  # [lon, lat, ele]
    timestamps: List[Optional[str]]
    cumulative_distance: List[float]
    heart_rates: List[Optional[float]] = field(default_factory=list)
    cadences: List[Optional[float]] = field(default_factory=list)
    temperatures: List[Optional[float]] = field(default_factory=list)
    powers: List[Optional[float]] = field(default_factory=list)

    def __post_init__(self):
        n = len(self.coordinates)
        for name in BIOMETRIC_PROPERTIES:
            if not getattr(self, name):
                setattr(self, name, [None] * n)
        lengths = {
            'timestamps': len(self.timestamps),
            'cumulative_distance': len(self.cumulative_distance),
            **{name: len(getattr(self, name)) for name in BIOMETRIC_PROPERTIES},
        }
        mismatched = {k: v for k, v in lengths.items() if v != n}
        if mismatched:
            raise ValueError(f"Series arrays must have {n} entries, got {mismatched}")

    def __len__(self) -> int:
        return len(self.coordinates)

    def timestamps_unix(self) -> List[Optional[int]]:
        """Timestamps as UNIX seconds (None where missing or unparseable)."""
        return [to_unix(t) for t in self.timestamps]

    def to_geojson(self) -> Dict[str, Any]:
        """LineString with the per-point arrays under `properties`."""
        properties: Dict[str, Any] = {
            'timestamps': list(self.timestamps),
            'cumulativeDistance': list(self.cumulative_distance),
        }
        for name, key in BIOMETRIC_PROPERTIES.items():
            properties[key] = list(getattr(self, name))
        return {
            'type': 'LineString',
            'coordinates': [list(c) for c in self.coordinates],
            'properties': properties,
        }

    @classmethod
    def from_geojson(cls, geojson: Dict[str, Any]) -> 'TrackSeries':
        """Rebuild a series from the structure produced by `to_geojson`."""
        coordinates = [list(c) for c in geojson.get('coordinates') or []]
        props = geojson.get('properties') or {}
        n = len(coordinates)
        timestamps = list(props.get('timestamps') or [None] * n)
        cumulative = list(props.get('cumulativeDistance') or [0.0] * n)
        kwargs = {
            name: list(props.get(key) or [None] * n)
            for name, key in BIOMETRIC_PROPERTIES.items()
        }
        return cls(
            coordinates=coordinates,
            timestamps=timestamps,
            cumulative_distance=cumulative,
            **kwargs
        )


@dataclass(frozen=True)
class TrackStats:
    """Derived ride statistics. Recomputed, never mutated in place."""
    total_distance_m: float
    moving_time_s: float
    average_speed_m_s: float
    elevation_gain_m: float
    elevation_loss_m: float
    raw_elevation_gain_m: float
    min_elevation_m: Optional[float]
    max_elevation_m: Optional[float]
    bounds: Bounds

    def to_dict(self) -> Dict[str, Any]:
        """Convert stats to the persisted dictionary form."""
        return {
            'total_distance_m': self.total_distance_m,
            'moving_time_s': self.moving_time_s,
            'average_speed_m_s': self.average_speed_m_s,
            'elevation_gain_m': self.elevation_gain_m,
            'elevation_loss_m': self.elevation_loss_m,
            'raw_elevation_gain_m': self.raw_elevation_gain_m,
            'min_elevation_m': self.min_elevation_m,
            'max_elevation_m': self.max_elevation_m,
            'bounds': list(self.bounds),
        }

    @property
    def total_distance_km(self) -> float:
        """Distance in kilometers."""
        return meters_to_kilometers(self.total_distance_m)


@dataclass
class ParsedTrack:
    """Everything the parser hands to persistence for one track file."""
    series: TrackSeries
    stats: TrackStats
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def bounds(self) -> Bounds:
        return self.stats.bounds

    @property
    def points_count(self) -> int:
        return len(self.series)
