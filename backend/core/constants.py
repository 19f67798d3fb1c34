"""
Constants for the Flyover track pipeline.

This module contains all the mathematical, algorithmic, and domain-specific
constants used throughout the codebase. Constants are grouped by their purpose
and documented with their units where applicable.
"""

# =============================================================================
# CONVERSION FACTORS
# =============================================================================

# Speed conversions
KMH_PER_METER_PER_SECOND = 3.6  # 1 m/s = 3.6 km/h

# Distance conversions
METERS_PER_KILOMETER = 1000

# Time conversions
SECONDS_PER_MINUTE = 60
SECONDS_PER_HOUR = 3600

# =============================================================================
# GEODESY
# =============================================================================

EARTH_RADIUS_METERS = 6371000.0
EARTH_RADIUS_KM = EARTH_RADIUS_METERS / METERS_PER_KILOMETER
KM_PER_DEGREE_LATITUDE = 111.0  # Planar approximation used for offsets

FULL_CIRCLE_DEGREES = 360

# =============================================================================
# TRACK STATISTICS
# =============================================================================

MOVING_SPEED_THRESHOLD_MS = 0.5  # Segments faster than this count as moving
RAW_ELEVATION_GAIN_THRESHOLD_M = 0.5  # Naive pass: ignore smaller deltas
ELEVATION_MEDIAN_WINDOW = 7  # Points, centered, clamped at edges
CLIMB_SEGMENT_THRESHOLD_M = 3.0  # Minimum climb that counts toward gain

# =============================================================================
# GEOMETRY SIMPLIFICATION
# =============================================================================

SIMPLIFY_SEARCH_ITERATIONS = 10  # Binary search steps over tolerance
SIMPLIFY_MAX_TOLERANCE_FRACTION = 0.01  # Of the bounding-box diagonal
SIMPLIFY_MIN_TOLERANCE = 1e-9

# Dynamic target sizing (point counts)
SIMPLIFY_HARD_FLOOR = 300
SIMPLIFY_HARD_CEILING = 2500
SIMPLIFY_SMALL_TRACK_LIMIT = 2000
SIMPLIFY_MEDIUM_TRACK_LIMIT = 10000
SIMPLIFY_LARGE_TRACK_LIMIT = 50000
SIMPLIFY_MEDIUM_RATIO = 0.15
SIMPLIFY_MEDIUM_BOUNDS = (800, 1500)
SIMPLIFY_LARGE_RATIO = 0.05
SIMPLIFY_LARGE_BOUNDS = (1000, 2000)
SIMPLIFY_HUGE_RATIO = 0.03
SIMPLIFY_HUGE_BOUNDS = (1200, 2500)

# Presentation-time rule: only simplify tracks larger than this
SIMPLIFY_MIN_POINTS_TO_APPLY = 200
SIMPLIFY_MIN_RDP_TARGET = 100

# Coordinate compression grid
COORDINATE_PRECISION = 100000  # 1e-5 degrees, ~1.1 m at the equator
ELEVATION_PRECISION = 10  # 0.1 m

# =============================================================================
# WEATHER SAMPLING AND ENRICHMENT
# =============================================================================

WEATHER_FALLBACK_MAX_SAMPLES = 20
WEATHER_GRID_DECIMALS = 1  # 0.1 degree deduplication grid
WEATHER_MAX_UNIQUE_CELLS = 20  # Bound on external calls per enrichment
WEATHER_TIME_PADDING_SECONDS = 12 * SECONDS_PER_HOUR
WEATHER_MULTI_POINT_DIRECTIONS = ('N', 'S', 'E', 'W')

# Fog derivation
FOG_DEW_POINT_SPREAD_C = 2.0  # Fog forms when temp - dew point < this
FOG_HUMIDITY_BOOST_THRESHOLD_PCT = 90.0
FOG_HUMIDITY_BOOST_FACTOR = 1.2

# Provider and caches
WEATHER_REQUEST_TIMEOUT_SECONDS = 10
WEATHER_RESPONSE_CACHE_TTL_SECONDS = 2 * SECONDS_PER_HOUR
WEATHER_ERROR_TTL_SECONDS = 60
WEATHER_ERROR_KEY_PREFIX = 'weather_error_'
TRACK_PAYLOAD_CACHE_TTL_SECONDS = 6 * SECONDS_PER_HOUR
WEATHER_SOURCE_NAME = 'open-meteo'

# Open-Meteo forecast endpoint
OPEN_METEO_FORECAST_URL = 'https://api.open-meteo.com/v1/forecast'
OPEN_METEO_HOURLY_PARAMETERS = (
    'rain', 'wind_speed_10m', 'wind_direction_10m', 'temperature_80m',
    'cloud_cover', 'snowfall', 'dew_point_2m', 'temperature_2m',
    'relative_humidity_2m',
)
WEATHER_USER_AGENT = 'Flyover-Track-Pipeline'
WEATHER_CACHE_KEY_VERSION = 'wx_v2'

# =============================================================================
# WIND INTERPOLATION
# =============================================================================

WIND_INTERPOLATION_DENSITIES = (1, 3, 5)
WIND_DISTANCE_WEIGHT = 1000.0  # Score = degrees * weight + hours
WIND_BASELINE_SPEED_MS = 15.0  # Assumed cruising speed for impact factor
