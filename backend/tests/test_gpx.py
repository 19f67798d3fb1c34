"""
Tests for GPX loading, extensions and parse error classification.
"""

import io

import pandas as pd
import pytest

from core.gpx import load_gpx_bytes, load_gpx_file, load_gpx_from_path
from core.validation import (
    EmptyTrackError, MalformedTrackError, TrackParseError, UnreadableTrackError,
    validate_track_dataframe
)
from tests.conftest import GPX_HEADER, make_gpx, northbound_points


class TestLoadGpxFile:
    """Tests for load_gpx_file and friends."""

    def test_reads_points_and_metadata(self, three_point_gpx):
        """Track points become rows; the track name becomes metadata."""
        df, metadata = load_gpx_file(io.StringIO(three_point_gpx))
        assert len(df) == 3
        assert metadata['name'] == 'Test Ride'
        assert list(df['latitude']) == [0.0, 0.01, 0.02]
        assert df['elevation'].tolist() == [100.0, 100.0, 100.0]
        assert str(df['time'].dt.tz) == 'UTC'

    def test_accepts_bytes(self, three_point_gpx):
        """Binary file objects are decoded as UTF-8."""
        df, _ = load_gpx_bytes(three_point_gpx.encode('utf-8'), filename='ride.gpx')
        assert len(df) == 3

    def test_garmin_extensions(self):
        """Heart rate, cadence, temperature and power are read from extensions."""
        gpx = make_gpx(
            northbound_points(2),
            extensions=[
                {'hr': 120, 'cad': 85, 'atemp': 21.5, 'power': 210},
                {'hr': 125, 'cad': 88, 'atemp': 21.0, 'power': 230},
            ],
        )
        df, _ = load_gpx_file(io.StringIO(gpx))
        assert df['heart_rate'].tolist() == [120.0, 125.0]
        assert df['cadence'].tolist() == [85.0, 88.0]
        assert df['temperature'].tolist() == [21.5, 21.0]
        assert df['power'].tolist() == [210.0, 230.0]

    def test_missing_extensions_are_nan(self, three_point_gpx):
        """Points without extensions carry no biometrics."""
        df, _ = load_gpx_file(io.StringIO(three_point_gpx))
        assert df['heart_rate'].isna().all()

    def test_route_points_used_without_track(self):
        """A file with only a route is read from its route points."""
        gpx = (
            GPX_HEADER
            + '<rte><name>Planned</name>'
            + '<rtept lat="45.0" lon="7.0"><ele>300</ele></rtept>'
            + '<rtept lat="45.1" lon="7.1"><ele>320</ele></rtept>'
            + '</rte></gpx>'
        )
        df, _ = load_gpx_file(io.StringIO(gpx))
        assert len(df) == 2
        assert df['time'].isna().all()

    def test_malformed_xml(self):
        """Undecodable content is a MalformedTrackError."""
        with pytest.raises(MalformedTrackError):
            load_gpx_file(io.StringIO('<gpx><trk><trkseg><trkpt lat='))

    def test_invalid_utf8(self):
        """Bytes that are not UTF-8 are malformed."""
        with pytest.raises(MalformedTrackError):
            load_gpx_file(io.BytesIO(b'\xff\xfe\x00<gpx'))

    def test_empty_track(self):
        """A valid GPX document without points is an EmptyTrackError."""
        gpx = GPX_HEADER + '<trk><name>Nothing</name><trkseg></trkseg></trk></gpx>'
        with pytest.raises(EmptyTrackError):
            load_gpx_file(io.StringIO(gpx))

    def test_wrong_extension(self, three_point_gpx):
        """Files that are not .gpx are rejected as malformed."""
        file_obj = io.StringIO(three_point_gpx)
        file_obj.name = 'ride.fit'
        with pytest.raises(MalformedTrackError):
            load_gpx_file(file_obj)

    def test_all_parse_errors_share_base(self):
        """Callers can catch every parse failure with TrackParseError."""
        assert issubclass(UnreadableTrackError, TrackParseError)
        assert issubclass(MalformedTrackError, TrackParseError)
        assert issubclass(EmptyTrackError, TrackParseError)
        assert {UnreadableTrackError.code, MalformedTrackError.code, EmptyTrackError.code} == {
            'unreadable', 'malformed', 'empty'
        }


class TestLoadGpxFromPath:
    """Tests for load_gpx_from_path."""

    def test_missing_file_is_unreadable(self, tmp_path):
        """A path that does not exist is an UnreadableTrackError."""
        with pytest.raises(UnreadableTrackError):
            load_gpx_from_path(tmp_path / 'missing.gpx')

    def test_name_falls_back_to_file_stem(self, tmp_path):
        """Without a track name the file stem is used."""
        gpx = make_gpx(northbound_points(2)).replace('<name>Test Ride</name>', '')
        path = tmp_path / 'morning_loop.gpx'
        path.write_text(gpx, encoding='utf-8')
        _, metadata = load_gpx_from_path(path)
        assert metadata['name'] == 'morning_loop'


class TestValidateTrackDataframe:
    """Tests for validate_track_dataframe."""

    def test_out_of_range_latitude(self):
        """Latitudes beyond +-90 are malformed."""
        df = pd.DataFrame({'latitude': [10.0, 95.0], 'longitude': [0.0, 0.0]})
        with pytest.raises(MalformedTrackError):
            validate_track_dataframe(df)

    def test_out_of_range_longitude(self):
        """Longitudes beyond +-180 are malformed."""
        df = pd.DataFrame({'latitude': [10.0, 11.0], 'longitude': [0.0, 181.0]})
        with pytest.raises(MalformedTrackError):
            validate_track_dataframe(df)

    def test_empty(self):
        """No rows is an EmptyTrackError."""
        with pytest.raises(EmptyTrackError):
            validate_track_dataframe(pd.DataFrame(columns=['latitude', 'longitude']))
