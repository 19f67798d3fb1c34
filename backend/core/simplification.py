"""
Geometry simplification.

Ramer-Douglas-Peucker over planar [x, y, ...] coordinates with a bounded
binary search for the tolerance that meets a point budget, dynamic budget
sizing by track length, and grid-based coordinate compression for transport.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from core.calculations import bounding_box_diagonal
from core.constants import (
    COORDINATE_PRECISION, ELEVATION_PRECISION,
    SIMPLIFY_HARD_CEILING, SIMPLIFY_HARD_FLOOR,
    SIMPLIFY_HUGE_BOUNDS, SIMPLIFY_HUGE_RATIO,
    SIMPLIFY_LARGE_BOUNDS, SIMPLIFY_LARGE_RATIO, SIMPLIFY_LARGE_TRACK_LIMIT,
    SIMPLIFY_MAX_TOLERANCE_FRACTION, SIMPLIFY_MEDIUM_BOUNDS, SIMPLIFY_MEDIUM_RATIO,
    SIMPLIFY_MEDIUM_TRACK_LIMIT, SIMPLIFY_MIN_TOLERANCE, SIMPLIFY_SEARCH_ITERATIONS,
    SIMPLIFY_SMALL_TRACK_LIMIT
)

logger = logging.getLogger(__name__)


# =============================================================================
# RAMER-DOUGLAS-PEUCKER
# =============================================================================

def _endpoint_indices(n: int) -> List[int]:
    if n <= 0:
        return []
    if n == 1:
        return [0]
    return [0, n - 1]


def _squared_segment_distances(points: np.ndarray, p1: np.ndarray, p2: np.ndarray) -> np.ndarray:
    """Squared distance from each point to the segment p1-p2 (not the infinite line)."""
    dx, dy = p2 - p1
    if dx == 0.0 and dy == 0.0:
        closest = np.broadcast_to(p1, points.shape)
    else:
        t = ((points[:, 0] - p1[0]) * dx + (points[:, 1] - p1[1]) * dy) / (dx * dx + dy * dy)
        t = np.clip(t, 0.0, 1.0)
        closest = p1 + t[:, None] * np.array([dx, dy])
    diff = points - closest
    return diff[:, 0] ** 2 + diff[:, 1] ** 2


def simplify_at_tolerance(coords: Sequence[Sequence[float]], sq_tolerance: float) -> List[int]:
    """
    Iterative Douglas-Peucker returning kept indices, first and last included.

    A point is kept when its squared distance to the chord of its local
    segment exceeds `sq_tolerance`. Uses an explicit stack of (first, last)
    pairs so very long tracks never hit the recursion limit.
    """
    n = len(coords)
    if n <= 2:
        return _endpoint_indices(n)

    xy = np.asarray([[float(c[0]), float(c[1])] for c in coords], dtype=float)
    markers = np.zeros(n, dtype=bool)
    markers[0] = markers[n - 1] = True
    stack = [(0, n - 1)]

    while stack:
        first, last = stack.pop()
        if last - first < 2:
            continue
        distances = _squared_segment_distances(xy[first + 1:last], xy[first], xy[last])
        offset = int(np.argmax(distances))
        max_sq = float(distances[offset])
        if max_sq > sq_tolerance:
            index = first + 1 + offset
            markers[index] = True
            stack.append((first, index))
            stack.append((index, last))

    return [int(i) for i in np.flatnonzero(markers)]


def simplify_to_target(coords: Sequence[Sequence[float]], target_count: int) -> List[int]:
    """
    Simplify to approximately `target_count` points.

    Binary-searches the tolerance over [0, bbox diagonal * 0.01] for a fixed
    number of iterations, keeping the smallest tolerance that meets the
    budget. If even the largest tolerance keeps more points than requested
    the result at that tolerance is returned.

    Returns:
        Sorted indices into `coords`, always including the first and last
    """
    n = len(coords)
    if n <= 2 or target_count <= 2:
        return _endpoint_indices(n)

    diagonal = bounding_box_diagonal(coords)
    low = 0.0
    high = max(SIMPLIFY_MIN_TOLERANCE, diagonal * SIMPLIFY_MAX_TOLERANCE_FRACTION)
    best_tolerance = high

    for _ in range(SIMPLIFY_SEARCH_ITERATIONS):
        mid = (low + high) / 2.0
        kept = simplify_at_tolerance(coords, mid * mid)
        if len(kept) > target_count:
            low = mid
        else:
            best_tolerance = mid
            high = mid

    indices = simplify_at_tolerance(coords, best_tolerance * best_tolerance)
    logger.debug(f"Simplified {n} -> {len(indices)} points (target {target_count}, tolerance {best_tolerance:.3g})")
    return indices


def target_for_size(original_count: int, admin_default: int) -> int:
    """
    Choose a point budget for a track of `original_count` points.

    Small tracks use the configured default without upsampling; larger
    tracks get a proportional budget within per-size bounds. The hard floor
    and ceiling are always applied.
    """
    if original_count <= SIMPLIFY_SMALL_TRACK_LIMIT:
        return max(SIMPLIFY_HARD_FLOOR, min(admin_default, original_count))

    if original_count <= SIMPLIFY_MEDIUM_TRACK_LIMIT:
        ratio, (lower, upper) = SIMPLIFY_MEDIUM_RATIO, SIMPLIFY_MEDIUM_BOUNDS
    elif original_count <= SIMPLIFY_LARGE_TRACK_LIMIT:
        ratio, (lower, upper) = SIMPLIFY_LARGE_RATIO, SIMPLIFY_LARGE_BOUNDS
    else:
        ratio, (lower, upper) = SIMPLIFY_HUGE_RATIO, SIMPLIFY_HUGE_BOUNDS

    dynamic_target = max(lower, min(upper, int(original_count * ratio)))
    return max(SIMPLIFY_HARD_FLOOR, min(SIMPLIFY_HARD_CEILING, dynamic_target))


def slice_series(values: Optional[Sequence[Any]], indices: Sequence[int]) -> Optional[List[Any]]:
    """Reslice an array co-indexed with the coordinates; None passes through."""
    if values is None:
        return None
    return [values[i] for i in indices]


# =============================================================================
# COORDINATE COMPRESSION
# =============================================================================

@dataclass
class CompressedCoordinates:
    """
    Delta-encoded coordinates on a fixed grid.

    `offsets[i]` holds integer grid steps of point i+1 relative to
    `reference` (the untouched first point). Elevation offsets are None when
    either the point or the reference has no elevation.
    """
    reference: List[float]
    offsets: List[List[Optional[int]]] = field(default_factory=list)
    precision: int = COORDINATE_PRECISION
    elevation_precision: int = ELEVATION_PRECISION

    def __len__(self) -> int:
        return (1 if self.reference else 0) + len(self.offsets)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'reference': list(self.reference),
            'offsets': [list(o) for o in self.offsets],
            'precision': self.precision,
            'elevation_precision': self.elevation_precision,
        }

    def reduction(self, original: Sequence[Sequence[float]]) -> float:
        """Payload size reduction versus the raw coordinates, as a fraction."""
        original_size = len(json.dumps([list(c) for c in original]))
        compressed_size = len(json.dumps(self.to_dict()))
        return 1 - compressed_size / original_size if original_size else 0.0


def compress_coordinates(coords: Sequence[Sequence[float]]) -> CompressedCoordinates:
    """Express every point after the first as rounded grid offsets from the first."""
    if not coords:
        return CompressedCoordinates(reference=[])

    reference = [float(v) for v in coords[0]]
    ref_elevation = reference[2] if len(reference) > 2 else None
    offsets = []
    for coord in coords[1:]:
        offset: List[Optional[int]] = [
            int(round((float(coord[0]) - reference[0]) * COORDINATE_PRECISION)),
            int(round((float(coord[1]) - reference[1]) * COORDINATE_PRECISION)),
        ]
        if len(coord) > 2:
            if coord[2] is not None and ref_elevation is not None:
                offset.append(int(round((float(coord[2]) - ref_elevation) * ELEVATION_PRECISION)))
            else:
                offset.append(None)
        offsets.append(offset)
    return CompressedCoordinates(reference=reference, offsets=offsets)


def decompress_coordinates(compressed: CompressedCoordinates) -> List[List[Optional[float]]]:
    """Restore absolute coordinates, accurate to the compression grid."""
    if not compressed.reference:
        return []

    reference = compressed.reference
    ref_elevation = reference[2] if len(reference) > 2 else None
    coords: List[List[Optional[float]]] = [list(reference)]
    for offset in compressed.offsets:
        coord: List[Optional[float]] = [
            reference[0] + offset[0] / compressed.precision,
            reference[1] + offset[1] / compressed.precision,
        ]
        if len(offset) > 2:
            if offset[2] is not None and ref_elevation is not None:
                coord.append(ref_elevation + offset[2] / compressed.elevation_precision)
            else:
                coord.append(None)
        coords.append(coord)
    return coords


def snap_to_grid(coords: Sequence[Sequence[float]]) -> List[List[Optional[float]]]:
    """Absolute coordinates snapped to the compression grid around the first point."""
    return decompress_coordinates(compress_coordinates(coords))
