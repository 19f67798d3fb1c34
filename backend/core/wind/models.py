"""
Wind data models.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class WindSeries:
    """
    Per-track-point wind arrays, index-aligned with the track series.

    Entries are None only when the whole track had no usable weather match.
    """
    wind_speeds: List[Optional[float]] = field(default_factory=list)
    wind_directions: List[Optional[float]] = field(default_factory=list)
    wind_impacts: List[Optional[float]] = field(default_factory=list)

    @classmethod
    def empty(cls, length: int) -> 'WindSeries':
        """All-null series for a track of the given length."""
        return cls([None] * length, [None] * length, [None] * length)

    def __len__(self) -> int:
        return len(self.wind_speeds)

    @property
    def has_data(self) -> bool:
        return any(v is not None for v in self.wind_speeds)

    def to_dict(self) -> Dict[str, Any]:
        """Property arrays as merged into the track GeoJSON."""
        return {
            'windSpeeds': list(self.wind_speeds),
            'windDirections': list(self.wind_directions),
            'windImpacts': list(self.wind_impacts),
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'WindSeries':
        if not data:
            return cls()
        return cls(
            wind_speeds=list(data.get('windSpeeds') or []),
            wind_directions=list(data.get('windDirections') or []),
            wind_impacts=list(data.get('windImpacts') or []),
        )
