"""
Application settings and configuration.

This module contains application-specific configuration, processing option
defaults and logging setup. For algorithmic constants, see core.constants module.
"""

import hashlib
import json
import logging
import os
from dataclasses import asdict, dataclass
from typing import Any, Dict, Mapping, Optional

# Import algorithmic constants from core module
from core.constants import (
    SIMPLIFY_HARD_CEILING,
    SIMPLIFY_HARD_FLOOR,
    TRACK_PAYLOAD_CACHE_TTL_SECONDS,
    WEATHER_ERROR_TTL_SECONDS,
    WEATHER_MAX_UNIQUE_CELLS,
    WEATHER_RESPONSE_CACHE_TTL_SECONDS,
    WIND_BASELINE_SPEED_MS,
    WIND_INTERPOLATION_DENSITIES
)

logger = logging.getLogger(__name__)

# App information
APP_NAME = "Flyover Track"
APP_VERSION = "1.0.0"
APP_DESCRIPTION = "GPX track statistics, geometry simplification and weather/wind enrichment"

# Upload limits
MAX_UPLOAD_SIZE_BYTES = 50 * 1024 * 1024  # 50MB
ALLOWED_TRACK_EXTENSIONS = ('.gpx',)

# Processing defaults
DEFAULT_WEATHER_ENABLED = False
DEFAULT_WEATHER_SAMPLING = "distance"
DEFAULT_WEATHER_STEP_KM = 5.0
DEFAULT_WEATHER_STEP_MIN = 10
DEFAULT_WEATHER_MULTI_POINT = False
DEFAULT_WEATHER_MULTI_POINT_DISTANCE_KM = 5.0
DEFAULT_WIND_ANALYSIS_ENABLED = False
DEFAULT_WIND_INTERPOLATION_DENSITY = 3
DEFAULT_SIMPLIFY_ENABLED = True
DEFAULT_SIMPLIFY_TARGET = 1200

WEATHER_SAMPLING_MODES = ("distance", "time")

# Environment variable prefix for option overrides
ENV_PREFIX = "FLYOVER_"

# Logging configuration
LOG_FILE = os.environ.get(f"{ENV_PREFIX}LOG_FILE")
LOGGING_CONFIG = {
    "level": os.environ.get(f"{ENV_PREFIX}LOG_LEVEL", "INFO").upper(),
    "format": '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
}


def configure_logging(level: Optional[str] = None) -> None:
    """Apply LOGGING_CONFIG to the root logger (stream handler, plus a file if configured)."""
    handlers = [logging.StreamHandler()]
    if LOG_FILE:
        handlers.append(logging.FileHandler(LOG_FILE))
    logging.basicConfig(
        level=level or LOGGING_CONFIG["level"],
        format=LOGGING_CONFIG["format"],
        handlers=handlers,
    )


def _env_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class PipelineOptions:
    """Processing options for import, enrichment and presentation."""
    weather_enabled: bool = DEFAULT_WEATHER_ENABLED
    weather_sampling: str = DEFAULT_WEATHER_SAMPLING
    weather_step_km: float = DEFAULT_WEATHER_STEP_KM
    weather_step_min: int = DEFAULT_WEATHER_STEP_MIN
    weather_multi_point: bool = DEFAULT_WEATHER_MULTI_POINT
    weather_multi_point_distance_km: float = DEFAULT_WEATHER_MULTI_POINT_DISTANCE_KM
    wind_analysis_enabled: bool = DEFAULT_WIND_ANALYSIS_ENABLED
    wind_interpolation_density: int = DEFAULT_WIND_INTERPOLATION_DENSITY
    simplify_enabled: bool = DEFAULT_SIMPLIFY_ENABLED
    simplify_target: int = DEFAULT_SIMPLIFY_TARGET

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> 'PipelineOptions':
        """
        Build options from FLYOVER_* environment variables.

        Each field maps to the upper-cased field name, e.g.
        FLYOVER_WEATHER_ENABLED=1 or FLYOVER_SIMPLIFY_TARGET=800. Values that
        cannot be converted keep their default.
        """
        environ = os.environ if environ is None else environ
        options = cls()
        for name, default in asdict(options).items():
            raw = environ.get(f"{ENV_PREFIX}{name.upper()}")
            if raw is None:
                continue
            try:
                if isinstance(default, bool):
                    value: Any = _env_bool(raw)
                elif isinstance(default, int):
                    value = int(raw)
                elif isinstance(default, float):
                    value = float(raw)
                else:
                    value = raw.strip()
            except ValueError:
                logger.warning(f"Ignoring invalid {ENV_PREFIX}{name.upper()}={raw!r}")
                continue
            setattr(options, name, value)
        return options.validate()

    def validate(self) -> 'PipelineOptions':
        """Normalize out-of-range values in place. Never raises."""
        if self.weather_sampling not in WEATHER_SAMPLING_MODES:
            logger.warning(f"Unknown weather sampling {self.weather_sampling!r}, using '{DEFAULT_WEATHER_SAMPLING}'")
            self.weather_sampling = DEFAULT_WEATHER_SAMPLING
        if self.weather_step_km <= 0:
            logger.warning(f"weather_step_km must be positive, using {DEFAULT_WEATHER_STEP_KM}")
            self.weather_step_km = DEFAULT_WEATHER_STEP_KM
        if self.weather_step_min <= 0:
            logger.warning(f"weather_step_min must be positive, using {DEFAULT_WEATHER_STEP_MIN}")
            self.weather_step_min = DEFAULT_WEATHER_STEP_MIN
        if self.weather_multi_point_distance_km <= 0:
            logger.warning(
                f"weather_multi_point_distance_km must be positive, using {DEFAULT_WEATHER_MULTI_POINT_DISTANCE_KM}"
            )
            self.weather_multi_point_distance_km = DEFAULT_WEATHER_MULTI_POINT_DISTANCE_KM
        if self.wind_interpolation_density not in WIND_INTERPOLATION_DENSITIES:
            logger.warning(
                f"Wind interpolation density {self.wind_interpolation_density} not in "
                f"{WIND_INTERPOLATION_DENSITIES}, using {DEFAULT_WIND_INTERPOLATION_DENSITY}"
            )
            self.wind_interpolation_density = DEFAULT_WIND_INTERPOLATION_DENSITY
        if self.simplify_target <= 0:
            logger.warning(f"simplify_target must be positive, using {DEFAULT_SIMPLIFY_TARGET}")
            self.simplify_target = DEFAULT_SIMPLIFY_TARGET
        return self

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def fingerprint(self) -> str:
        """Stable short hash of the options that shape presentation output."""
        relevant = {
            'simplify_enabled': self.simplify_enabled,
            'simplify_target': self.simplify_target,
            'weather_enabled': self.weather_enabled,
            'wind_analysis_enabled': self.wind_analysis_enabled,
        }
        encoded = json.dumps(relevant, sort_keys=True).encode('utf-8')
        return hashlib.md5(encoded).hexdigest()[:12]


# =============== Configuration Classes ===============
# These classes provide typed access to configuration sections

class SimplifyConfig:
    """Configuration parameters for geometry simplification."""
    ENABLED = DEFAULT_SIMPLIFY_ENABLED
    TARGET = DEFAULT_SIMPLIFY_TARGET
    HARD_FLOOR = SIMPLIFY_HARD_FLOOR  # From core.constants
    HARD_CEILING = SIMPLIFY_HARD_CEILING  # From core.constants
    PAYLOAD_CACHE_TTL = TRACK_PAYLOAD_CACHE_TTL_SECONDS

    @classmethod
    def as_dict(cls) -> Dict[str, Any]:
        """Get simplification configuration as a dictionary."""
        return {
            'enabled': cls.ENABLED,
            'target': cls.TARGET,
            'hard_floor': cls.HARD_FLOOR,
            'hard_ceiling': cls.HARD_CEILING,
            'payload_cache_ttl': cls.PAYLOAD_CACHE_TTL,
        }


class WeatherConfig:
    """Configuration parameters for weather enrichment."""
    ENABLED = DEFAULT_WEATHER_ENABLED
    SAMPLING = DEFAULT_WEATHER_SAMPLING
    STEP_KM = DEFAULT_WEATHER_STEP_KM
    STEP_MIN = DEFAULT_WEATHER_STEP_MIN
    MULTI_POINT = DEFAULT_WEATHER_MULTI_POINT
    MULTI_POINT_DISTANCE_KM = DEFAULT_WEATHER_MULTI_POINT_DISTANCE_KM
    MAX_UNIQUE_CELLS = WEATHER_MAX_UNIQUE_CELLS  # From core.constants
    RESPONSE_CACHE_TTL = WEATHER_RESPONSE_CACHE_TTL_SECONDS
    ERROR_TTL = WEATHER_ERROR_TTL_SECONDS

    @classmethod
    def as_dict(cls) -> Dict[str, Any]:
        """Get weather configuration as a dictionary."""
        return {
            'enabled': cls.ENABLED,
            'sampling': cls.SAMPLING,
            'step_km': cls.STEP_KM,
            'step_min': cls.STEP_MIN,
            'multi_point': cls.MULTI_POINT,
            'multi_point_distance_km': cls.MULTI_POINT_DISTANCE_KM,
            'max_unique_cells': cls.MAX_UNIQUE_CELLS,
            'response_cache_ttl': cls.RESPONSE_CACHE_TTL,
            'error_ttl': cls.ERROR_TTL,
        }


class WindConfig:
    """Configuration parameters for wind interpolation."""
    ENABLED = DEFAULT_WIND_ANALYSIS_ENABLED
    INTERPOLATION_DENSITY = DEFAULT_WIND_INTERPOLATION_DENSITY
    ALLOWED_DENSITIES = WIND_INTERPOLATION_DENSITIES  # From core.constants
    BASELINE_SPEED_MS = WIND_BASELINE_SPEED_MS  # From core.constants

    @classmethod
    def as_dict(cls) -> Dict[str, Any]:
        """Get wind configuration as a dictionary."""
        return {
            'enabled': cls.ENABLED,
            'interpolation_density': cls.INTERPOLATION_DENSITY,
            'allowed_densities': list(cls.ALLOWED_DENSITIES),
            'baseline_speed_ms': cls.BASELINE_SPEED_MS,
        }
