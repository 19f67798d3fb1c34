"""
Tests for RDP simplification, target sizing and coordinate compression.
"""

import math

import numpy as np
import pytest

from core.simplification import (
    CompressedCoordinates, compress_coordinates, decompress_coordinates,
    simplify_at_tolerance, simplify_to_target, slice_series, snap_to_grid,
    target_for_size
)


def wiggly_line(count: int):
    """A meandering line with some elevation, in degrees."""
    return [
        [i * 0.001, 0.01 * math.sin(i / 7.0) + 0.003 * math.sin(i / 1.3), 200.0 + i % 17]
        for i in range(count)
    ]


def random_walk(count: int, seed: int = 7):
    """A seeded meander whose latitude spread stays within 0.02 degrees."""
    steps = np.random.default_rng(seed).normal(0.0, 1.0, count)
    walk = np.cumsum(steps)
    lats = 0.02 * (walk - walk.min()) / (walk.max() - walk.min())
    return [[i * 0.001, float(lat)] for i, lat in enumerate(lats)]


def max_deviation(coords, kept):
    """Largest distance from any point to the kept segment spanning it."""
    worst = 0.0
    for first, last in zip(kept, kept[1:]):
        (x1, y1), (x2, y2) = coords[first][:2], coords[last][:2]
        dx, dy = x2 - x1, y2 - y1
        for x, y in (c[:2] for c in coords[first + 1:last]):
            t = ((x - x1) * dx + (y - y1) * dy) / (dx * dx + dy * dy) if dx or dy else 0.0
            t = max(0.0, min(1.0, t))
            worst = max(worst, math.hypot(x - (x1 + t * dx), y - (y1 + t * dy)))
    return worst

class TestSimplifyAtTolerance:
    """Tests for the fixed-tolerance Douglas-Peucker pass."""

    def test_short_inputs(self):
        """Zero, one and two points come back untouched."""
        assert simplify_at_tolerance([], 1.0) == []
        assert simplify_at_tolerance([[0, 0]], 1.0) == [0]
        assert simplify_at_tolerance([[0, 0], [1, 1]], 1.0) == [0, 1]

    def test_keeps_corner(self):
        """The apex of a right angle is kept."""
        coords = [[0, 0], [0.5, 0], [1, 0], [1, 0.5], [1, 1]]
        assert simplify_at_tolerance(coords, 0.01) == [0, 2, 4]

    def test_zero_tolerance_drops_only_collinear(self):
        """Only exactly collinear points are dropped at zero tolerance."""
        coords = [[0, 0], [1, 0], [2, 0], [3, 1]]
        assert simplify_at_tolerance(coords, 0.0) == [0, 2, 3]


class TestSimplifyToTarget:
    """Tests for the tolerance binary search."""

    def test_straight_line_collapses_to_endpoints(self):
        """1000 collinear points with a budget of 50 keep only the ends."""
        coords = [[i * 0.001, 0.0] for i in range(1000)]
        assert simplify_to_target(coords, 50) == [0, 999]

    def test_endpoints_always_kept(self):
        """First and last indices survive any budget."""
        coords = wiggly_line(500)
        for target in (3, 20, 100, 400):
            indices = simplify_to_target(coords, target)
            assert indices[0] == 0
            assert indices[-1] == 499
            assert indices == sorted(set(indices))

    def test_count_does_not_grow_as_target_shrinks(self):
        """Smaller budgets never keep more points."""
        coords = wiggly_line(800)
        counts = [len(simplify_to_target(coords, target)) for target in (600, 300, 150, 60, 20)]
        assert counts == sorted(counts, reverse=True)

    def test_meets_reachable_budget(self):
        """A budget the search can reach is respected."""
        coords = wiggly_line(800)
        assert len(simplify_to_target(coords, 200)) <= 200

    @pytest.mark.parametrize("target", [300, 500, 800])
    def test_resimplifying_is_stable(self, target):
        """Simplifying a simplified walk again keeps a subset no less accurate."""
        coords = random_walk(3000)
        first = simplify_to_target(coords, target)
        assert len(first) <= target

        reduced = [coords[i] for i in first]
        second = [first[i] for i in simplify_to_target(reduced, target)]

        assert set(second) <= set(first)
        assert max_deviation(coords, second) <= max_deviation(coords, first) + 1e-12

    def test_tiny_target(self):
        """A budget of two or fewer means endpoints only."""
        assert simplify_to_target(wiggly_line(50), 2) == [0, 49]

    def test_degenerate_bbox(self):
        """All points identical still yields the endpoints."""
        coords = [[5.0, 5.0]] * 10
        assert simplify_to_target(coords, 4) == [0, 9]


class TestTargetForSize:
    """Tests for dynamic budget sizing."""

    @pytest.mark.parametrize('count,admin,expected', [
        (500, 1000, 500),
        (100, 1000, 300),
        (1500, 400, 400),
        (5000, 1000, 800),
        (9000, 1000, 1350),
        (20000, 1000, 1000),
        (45000, 1000, 2000),
        (100000, 1000, 2500),
    ])
    def test_tiers(self, count, admin, expected):
        assert target_for_size(count, admin) == expected


class TestSliceSeries:

    def test_reslice(self):
        assert slice_series(['a', 'b', 'c', 'd'], [0, 2, 3]) == ['a', 'c', 'd']

    def test_none_passes_through(self):
        assert slice_series(None, [0, 1]) is None


class TestCompression:
    """Tests for grid delta compression."""

    def test_roundtrip_within_grid(self):
        """Decompressed points are within half a grid step of the originals."""
        coords = wiggly_line(200)
        restored = decompress_coordinates(compress_coordinates(coords))
        assert len(restored) == len(coords)
        for original, back in zip(coords, restored):
            assert abs(original[0] - back[0]) <= 1e-5
            assert abs(original[1] - back[1]) <= 1e-5
            assert abs(original[2] - back[2]) <= 0.1

    def test_reference_untouched(self):
        """The first point is carried verbatim."""
        coords = [[7.123456789, 45.987654321, 312.345], [7.2, 46.0, 320.0]]
        compressed = compress_coordinates(coords)
        assert compressed.reference == coords[0]
        assert len(compressed) == 2
        assert compressed.offsets[0] == [7654, 1235, 77]

    def test_empty(self):
        compressed = compress_coordinates([])
        assert len(compressed) == 0
        assert decompress_coordinates(compressed) == []

    def test_missing_elevation(self):
        """Points without elevation keep a None slot."""
        compressed = compress_coordinates([[0.0, 0.0, 10.0], [0.001, 0.0, None]])
        assert compressed.offsets == [[100, 0, None]]
        assert decompress_coordinates(compressed)[1][2] is None

    def test_to_dict_and_reduction(self):
        """The transport form is smaller than the raw coordinates."""
        coords = wiggly_line(300)
        compressed = compress_coordinates(coords)
        data = compressed.to_dict()
        assert set(data) == {'reference', 'offsets', 'precision', 'elevation_precision'}
        assert isinstance(compressed, CompressedCoordinates)
        assert compressed.reduction(coords) > 0

    def test_snap_to_grid(self):
        """Snapped points sit on the grid around the first point."""
        snapped = snap_to_grid([[0.0, 0.0, 0.0], [0.0000123, 0.0000187, 1.26]])
        assert snapped[1][0] == pytest.approx(0.00001)
        assert snapped[1][1] == pytest.approx(0.00002)
        assert snapped[1][2] == pytest.approx(1.3)
