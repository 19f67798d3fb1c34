"""
Weather data models.

Samples are short-lived: they are created by the sampler, consumed by the
fetch stage and dropped once features exist. Features and the collection are
the persisted snapshot of one enrichment run.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class SampleType(str, Enum):
    """How a weather sample was chosen along the track."""
    DISTANCE = 'distance'
    TIME = 'time'
    FALLBACK = 'fallback'


@dataclass(frozen=True)
class WeatherSample:
    """A location/time along the track where weather should be looked up."""
    lon: float
    lat: float
    time_unix: Optional[int]
    source_index: int
    sample_type: SampleType
    direction: Optional[str] = None  # Set for multi-point offsets (N/S/E/W)

    @property
    def label(self) -> str:
        """Serialized sample type, e.g. 'distance' or 'distance_multi_N'."""
        if self.direction:
            return f"{self.sample_type.value}_multi_{self.direction}"
        return self.sample_type.value


# Feature property name -> value attribute, in serialization order
WEATHER_PROPERTY_NAMES = (
    'rain_mm',
    'temperature_c',
    'wind_speed_kmh',
    'wind_direction_deg',
    'cloud_cover_pct',
    'snowfall_cm',
    'fog_intensity',
    'dew_point_2m_c',
    'temperature_2m_c',
    'relative_humidity_pct',
)


@dataclass
class WeatherFeature:
    """Weather values derived for one sample."""
    lon: float
    lat: float
    time_unix: Optional[int]
    sample_type: str
    rain_mm: Optional[float] = None
    temperature_c: Optional[float] = None  # 80 m temperature
    wind_speed_kmh: Optional[float] = None
    wind_direction_deg: Optional[float] = None
    cloud_cover_pct: Optional[float] = None
    snowfall_cm: Optional[float] = None
    fog_intensity: float = 0.0
    dew_point_2m_c: Optional[float] = None
    temperature_2m_c: Optional[float] = None
    relative_humidity_pct: Optional[float] = None
    source: str = 'open-meteo'

    def to_dict(self) -> Dict[str, Any]:
        """GeoJSON Point feature."""
        properties: Dict[str, Any] = {name: getattr(self, name) for name in WEATHER_PROPERTY_NAMES}
        properties['time_unix'] = self.time_unix
        properties['source'] = self.source
        properties['sample_type'] = self.sample_type
        return {
            'type': 'Feature',
            'geometry': {'type': 'Point', 'coordinates': [self.lon, self.lat]},
            'properties': properties,
        }

    @classmethod
    def from_dict(cls, feature: Dict[str, Any]) -> 'WeatherFeature':
        coords = (feature.get('geometry') or {}).get('coordinates') or [0.0, 0.0]
        props = feature.get('properties') or {}
        values = {name: props.get(name) for name in WEATHER_PROPERTY_NAMES}
        values['fog_intensity'] = float(values.get('fog_intensity') or 0.0)
        return cls(
            lon=float(coords[0]),
            lat=float(coords[1]),
            time_unix=props.get('time_unix'),
            sample_type=str(props.get('sample_type') or ''),
            source=str(props.get('source') or 'open-meteo'),
            **values
        )


@dataclass
class WeatherSummary:
    """Rain summary over all emitted features."""
    max_mm: float = 0.0
    avg_mm: float = 0.0
    wet_points: int = 0
    total_points: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'max_mm': self.max_mm,
            'avg_mm': self.avg_mm,
            'wet_points': self.wet_points,
            'total_points': self.total_points,
        }

    @classmethod
    def from_features(cls, features: List[WeatherFeature]) -> 'WeatherSummary':
        """Missing rain values count as 0 mm."""
        rain_values = [f.rain_mm or 0.0 for f in features]
        if not rain_values:
            return cls()
        return cls(
            max_mm=max(rain_values),
            avg_mm=sum(rain_values) / len(rain_values),
            wet_points=sum(1 for r in rain_values if r > 0),
            total_points=len(rain_values),
        )


@dataclass
class WeatherFeatureCollection:
    """Immutable snapshot of one enrichment run. Re-enrichment replaces it."""
    features: List[WeatherFeature] = field(default_factory=list)
    meta: Dict[str, Any] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.features)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'type': 'FeatureCollection',
            'features': [f.to_dict() for f in self.features],
            'meta': dict(self.meta),
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'WeatherFeatureCollection':
        if not data:
            return cls()
        features = [WeatherFeature.from_dict(f) for f in data.get('features') or []]
        return cls(features=features, meta=dict(data.get('meta') or {}))
