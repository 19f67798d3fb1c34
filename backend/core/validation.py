"""
Input validation utilities for core functions.

This module provides the exception types raised while reading track files and
the validation functions that guard the parsed data before statistics are
derived from it.
"""

import logging
from pathlib import Path
from typing import Any, Optional

import pandas as pd

logger = logging.getLogger(__name__)


class ValidationError(Exception):
    """Custom exception for validation errors."""
    pass


class TrackParseError(ValidationError):
    """Base class for failures while turning a track source into points."""
    code = 'parse_error'


class UnreadableTrackError(TrackParseError):
    """The track source could not be opened or read."""
    code = 'unreadable'


class MalformedTrackError(TrackParseError):
    """The track source was read but could not be decoded."""
    code = 'malformed'


class EmptyTrackError(TrackParseError):
    """The track source decoded fine but contained no points."""
    code = 'empty'


def validate_track_dataframe(df: Optional[pd.DataFrame], context: str = "GPX data") -> pd.DataFrame:
    """
    Validate a parsed track DataFrame has required columns and valid data.

    Args:
        df: DataFrame to validate
        context: Context description for error messages

    Returns:
        Validated DataFrame

    Raises:
        EmptyTrackError: If there are no points
        MalformedTrackError: If columns are missing or coordinates are invalid
    """
    if df is None or df.empty:
        raise EmptyTrackError(f"{context}: No track points found")

    # Required columns for basic GPX processing
    required_columns = ['latitude', 'longitude']
    missing_columns = [col for col in required_columns if col not in df.columns]

    if missing_columns:
        raise MalformedTrackError(f"{context}: Missing required columns: {missing_columns}")

    for col in required_columns:
        if df[col].isna().any():
            nan_count = int(df[col].isna().sum())
            raise MalformedTrackError(f"{context}: {nan_count} missing values in {col} column")

    # Validate coordinate ranges
    if not df['latitude'].between(-90, 90).all():
        invalid_count = int((~df['latitude'].between(-90, 90)).sum())
        raise MalformedTrackError(f"{context}: {invalid_count} invalid latitude values (must be -90 to 90)")

    if not df['longitude'].between(-180, 180).all():
        invalid_count = int((~df['longitude'].between(-180, 180)).sum())
        raise MalformedTrackError(f"{context}: {invalid_count} invalid longitude values (must be -180 to 180)")

    logger.debug(f"{context}: Validation passed for {len(df)} data points")
    return df


def validate_file_upload(uploaded_file: Any, max_size_bytes: Optional[int] = None) -> None:
    """
    Validate an uploaded track file before processing.

    Args:
        uploaded_file: File-like object, optionally carrying `name` and `size`
        max_size_bytes: Optional size limit

    Raises:
        UnreadableTrackError: If there is no file
        ValidationError: If the size or extension is not acceptable
    """
    if uploaded_file is None:
        raise UnreadableTrackError("No file uploaded")

    size = getattr(uploaded_file, 'size', None)
    if max_size_bytes is not None and isinstance(size, int) and size > max_size_bytes:
        raise ValidationError(
            f"File too large: {size / 1024 / 1024:.1f}MB (max {max_size_bytes / 1024 / 1024:.0f}MB)"
        )

    # Check file extension
    name = getattr(uploaded_file, 'name', None)
    if isinstance(name, str) and name:
        file_path = Path(name)
        if file_path.suffix and file_path.suffix.lower() != '.gpx':
            raise ValidationError(f"Invalid file type: {file_path.suffix} (expected .gpx)")

    logger.debug(f"File validation passed: {name or 'unknown'}")

