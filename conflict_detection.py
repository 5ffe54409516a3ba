"""
Conflict Detection Module
Finds admitted flights that overlap a candidate in time, altitude and space:
1. Time window overlap (half-open intervals)
2. Vertical separation below the minimum
3. Bounding box overlap (fast reject)
4. Detailed geometry test
"""

import logging
from typing import List, Optional

from flight_registry import FlightRegistry
from models import CircleArea, ConflictRecord, FlightRequest
import config
import path_sampling

logger = logging.getLogger(__name__)


def flight_bounds(flight: FlightRequest) -> Optional[dict]:
    """Bounding box of a flight's geometry in degrees"""
    if flight.operation_area is not None:
        return path_sampling.area_bounds(flight.operation_area)
    return path_sampling.path_bounds(flight.path_points)


class ConflictIndex:
    """
    Queries the registry for flights conflicting with a candidate

    Each check is O(N * S1 * S2) for N live flights and S1, S2 path samples.
    This is fine for tens of flights. Hundreds of concurrent flights need a
    spatial index (grid or R-tree) alongside an interval tree.
    """

    def __init__(self, registry: FlightRegistry,
                 min_vertical_separation: float = config.MIN_VERTICAL_SEPARATION,
                 min_horizontal_separation: float = config.MIN_HORIZONTAL_SEPARATION,
                 sample_spacing: float = config.SAMPLE_SPACING,
                 bounds_buffer: float = config.BOUNDS_BUFFER_DEG):
        self.registry = registry
        self.min_vertical_separation = min_vertical_separation
        self.min_horizontal_separation = min_horizontal_separation
        self.sample_spacing = sample_spacing
        self.bounds_buffer = bounds_buffer

    def find_conflicts(self, candidate: FlightRequest, exclude_id: Optional[str] = None) -> List[ConflictRecord]:
        """
        Detect conflicts between a candidate and live registry flights

        Args:
            candidate: Proposed flight
            exclude_id: Registry entry to ignore (e.g. the candidate itself)

        Returns:
            One ConflictRecord per conflicting flight
        """
        conflicts = []

        for other in self.registry.active_conflict_candidates(candidate.time_window, exclude_id=exclude_id):
            conflict = self.check_pair(candidate, other)
            if conflict:
                conflicts.append(conflict)

        return conflicts

    def check_pair(self, candidate: FlightRequest, other) -> Optional[ConflictRecord]:
        """
        Check altitude and spatial conflict between a candidate and one flight

        Each flight is represented by its max_altitude.

        Returns:
            ConflictRecord if the flights conflict, None otherwise
        """
        other_id = getattr(other, 'flight_id', 'unknown')

        vertical = abs(candidate.max_altitude - other.max_altitude)
        if vertical >= self.min_vertical_separation:
            logger.debug(f"No conflict with {other_id}: {vertical:.0f}m vertical separation")
            return None

        result = self.spatial_conflict(candidate, other)
        if result is None:
            return None

        conflict_type, min_distance = result
        return ConflictRecord(
            other_flight_id=other_id,
            flight_number=getattr(other, 'flight_number', None),
            conflict_type=conflict_type,
            min_distance=min_distance,
            scheduled_start=other.scheduled_start,
            scheduled_end=other.scheduled_end
        )

    def spatial_conflict(self, flight_1: FlightRequest, flight_2: FlightRequest):
        """
        Detailed spatial test

        Returns:
            (conflict_type, min_distance) or None
        """
        if not path_sampling.bounds_overlap(flight_bounds(flight_1), flight_bounds(flight_2), self.bounds_buffer):
            return None

        area_1 = flight_1.operation_area
        area_2 = flight_2.operation_area

        if area_1 is not None and area_2 is not None:
            if isinstance(area_1, CircleArea) and isinstance(area_2, CircleArea):
                distance = path_sampling.point_distance(area_1.center, area_2.center)
                if distance < area_1.radius + area_2.radius:
                    return 'area_overlap', distance
                return None
            # Rectangles: padded bounding box overlap counts as a conflict
            return 'area_overlap', 0.0

        if area_1 is not None or area_2 is not None:
            area = area_1 if area_1 is not None else area_2
            path = flight_2 if area_1 is not None else flight_1
            for sample in path_sampling.sample_path(path.path_points, self.sample_spacing):
                if path_sampling.is_point_in_area(sample, area):
                    return 'path_enters_area', 0.0
            return None

        min_distance = self.min_path_distance(flight_1, flight_2)
        if min_distance < self.min_horizontal_separation:
            return 'path_proximity', min_distance
        return None

    def min_path_distance(self, flight_1: FlightRequest, flight_2: FlightRequest) -> float:
        """Minimum pairwise distance between the sampled paths of two flights"""
        samples_1 = path_sampling.sample_path(flight_1.path_points, self.sample_spacing)
        samples_2 = path_sampling.sample_path(flight_2.path_points, self.sample_spacing)

        min_distance = float('inf')
        for s1 in samples_1:
            for s2 in samples_2:
                distance = path_sampling.point_distance(s1, s2)
                if distance < min_distance:
                    min_distance = distance
        return min_distance
