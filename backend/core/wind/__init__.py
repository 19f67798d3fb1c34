"""
Wind interpolation module.

Maps weather features onto track points and models the wind's effect on
progress along the track.
"""

# Import models first (no dependencies)
from .models import WindSeries

# Users should import the algorithms directly:
# from core.wind.interpolation import interpolate_wind_series

__all__ = [
    'WindSeries'
]
