"""
GPX file parsing and handling.

This module contains functions for loading and parsing GPX files into a
normalized point table, including vendor extensions (heart rate, cadence,
temperature, power).
"""

import io
import logging
import os
from typing import Any, Dict, List, Optional, Tuple, Union

import gpxpy
import gpxpy.gpx
import pandas as pd

from core.models.track import TrackPoint, to_unix
from core.validation import (
    MalformedTrackError, UnreadableTrackError, ValidationError,
    validate_file_upload, validate_track_dataframe
)

logger = logging.getLogger(__name__)

TRACK_COLUMNS = [
    'latitude', 'longitude', 'elevation', 'time',
    'heart_rate', 'cadence', 'temperature', 'power',
]
NUMERIC_COLUMNS = ['elevation', 'heart_rate', 'cadence', 'temperature', 'power']

# Local extension tag names (lowercase, namespace stripped) per column
EXTENSION_TAGS = {
    'heart_rate': ('hr', 'heartrate'),
    'cadence': ('cad', 'cadence'),
    'temperature': ('atemp', 'temp', 'avgtemperature'),
    'power': ('power', 'watts'),
}


def _local_name(tag: Any) -> str:
    if not isinstance(tag, str):
        return ''
    return tag.rsplit('}', 1)[-1].lower()


def extract_extensions(point: Any) -> Dict[str, Optional[float]]:
    """
    Read heart rate, cadence, temperature and power from point extensions.

    Garmin's TrackPointExtension nests the values one level down, other
    vendors put them directly under <extensions>; both are found by walking
    every element and matching the local tag name.
    """
    values: Dict[str, Optional[float]] = {column: None for column in EXTENSION_TAGS}
    for extension in getattr(point, 'extensions', None) or []:
        for element in extension.iter():
            name = _local_name(element.tag)
            for column, tags in EXTENSION_TAGS.items():
                if name in tags and values[column] is None and element.text:
                    try:
                        values[column] = float(element.text.strip())
                    except ValueError:
                        logger.debug(f"Ignoring non-numeric extension {name}={element.text!r}")
    return values


def _read_source(gpx_file: Any) -> str:
    try:
        content = gpx_file.read()
    except OSError as e:
        raise UnreadableTrackError(f"Track source is not readable: {e}") from e
    if isinstance(content, bytes):
        try:
            content = content.decode('utf-8')
        except UnicodeDecodeError as e:
            raise MalformedTrackError(f"Track source is not valid UTF-8: {e}") from e
    return content


def _collect_points(gpx: gpxpy.gpx.GPX) -> List[Dict[str, Any]]:
    data = []
    for track in gpx.tracks:
        for segment in track.segments:
            for point in segment.points:
                data.append(_point_record(point))

    # Routes only when the file carries no recorded track
    if not data:
        for route in gpx.routes:
            for point in route.points:
                data.append(_point_record(point))
    return data


def _point_record(point: Any) -> Dict[str, Any]:
    record = {
        'latitude': point.latitude,
        'longitude': point.longitude,
        'elevation': point.elevation,
        'time': point.time,
    }
    record.update(extract_extensions(point))
    return record


def load_gpx_file(gpx_file: Any) -> Tuple[pd.DataFrame, Dict[str, Any]]:
    """
    Load and parse a GPX file into a pandas DataFrame with validation.

    Args:
        gpx_file: A file-like object containing GPX data (text or bytes)

    Returns:
        tuple: (DataFrame with one row per point, dict with metadata)

    Raises:
        UnreadableTrackError: If the source cannot be read
        MalformedTrackError: If the GPX cannot be decoded
        EmptyTrackError: If no points were found
    """
    try:
        validate_file_upload(gpx_file)
    except UnreadableTrackError:
        raise
    except ValidationError as e:
        raise MalformedTrackError(str(e)) from e

    content = _read_source(gpx_file)

    try:
        gpx = gpxpy.parse(content)
    except gpxpy.gpx.GPXException as e:
        raise MalformedTrackError(f"Invalid GPX file format: {str(e)}") from e
    except Exception as e:
        raise MalformedTrackError(f"Failed to parse GPX file: {str(e)}") from e

    # Extract metadata
    metadata: Dict[str, Any] = {
        'name': None,
        'description': None,
        'time': None,
        'author': None
    }

    # Try to get the track name from GPX data
    if gpx.tracks and gpx.tracks[0].name:
        metadata['name'] = gpx.tracks[0].name
    elif isinstance(getattr(gpx_file, 'name', None), str):
        # Use the filename if available
        filename = os.path.basename(gpx_file.name)
        metadata['name'] = os.path.splitext(filename)[0]

    if gpx.description:
        metadata['description'] = gpx.description
    if gpx.time:
        metadata['time'] = gpx.time
    if gpx.author_name:
        metadata['author'] = gpx.author_name

    df = pd.DataFrame(_collect_points(gpx), columns=TRACK_COLUMNS)
    for column in NUMERIC_COLUMNS:
        df[column] = pd.to_numeric(df[column], errors='coerce')
    df['time'] = pd.to_datetime(df['time'], utc=True)

    validated_df = validate_track_dataframe(df, f"GPX file {metadata.get('name') or 'unknown'}")

    logger.info(f"Successfully loaded GPX file with {len(validated_df)} track points")
    return validated_df, metadata


def load_gpx_from_path(file_path: Union[str, os.PathLike]) -> Tuple[pd.DataFrame, Dict[str, Any]]:
    """
    Load a GPX file from disk path.

    Args:
        file_path: Path to the GPX file

    Returns:
        tuple: (DataFrame with track data, dict with metadata)

    Raises:
        UnreadableTrackError: If the file does not exist or cannot be opened
    """
    file_path = os.fspath(file_path)
    if not os.path.isfile(file_path) or not os.access(file_path, os.R_OK):
        raise UnreadableTrackError(f"GPX file is not readable: {file_path}")

    try:
        with open(file_path, 'rb') as f:
            data, metadata = load_gpx_file(f)
    except OSError as e:
        raise UnreadableTrackError(f"GPX file is not readable: {file_path}: {e}") from e

    # Use filename if no name was extracted
    if not metadata['name']:
        metadata['name'] = os.path.splitext(os.path.basename(file_path))[0]

    return data, metadata


def load_gpx_bytes(content: bytes, filename: Optional[str] = None) -> Tuple[pd.DataFrame, Dict[str, Any]]:
    """Load GPX content already held in memory (e.g. an HTTP upload)."""
    file_obj = io.BytesIO(content)
    if filename:
        file_obj.name = filename
    return load_gpx_file(file_obj)


def _optional_float(value: Any) -> Optional[float]:
    return None if pd.isna(value) else float(value)


def dataframe_to_points(df: pd.DataFrame) -> List[TrackPoint]:
    """Convert the parsed point table to immutable TrackPoint objects."""
    points = []
    for row in df.itertuples(index=False):
        points.append(TrackPoint(
            latitude=float(row.latitude),
            longitude=float(row.longitude),
            elevation=_optional_float(row.elevation),
            time=None if pd.isna(row.time) else to_unix(row.time.to_pydatetime()),
            heart_rate=_optional_float(row.heart_rate),
            cadence=_optional_float(row.cadence),
            temperature=_optional_float(row.temperature),
            power=_optional_float(row.power),
        ))
    return points
