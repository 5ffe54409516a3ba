"""
Geofencing Module
Handles the national border, restricted zones and airports
Uses ray-casting algorithm for point-in-polygon tests
"""

import logging
from typing import Dict, List, Optional, Sequence, Tuple

from exceptions import InvalidGeometryError
from models import (
    AirportDefinition, GeoPoint, NearestAirport, ZoneClassification,
    ZoneDefinition, ZoneSeverity
)
from path_sampling import haversine_distance

logger = logging.getLogger(__name__)


def point_in_polygon(point: Tuple[float, float], polygon: Sequence[Tuple[float, float]]) -> bool:
    """
    Ray-casting algorithm to determine if a point is inside a polygon

    A horizontal ray is cast from the point towards increasing longitude.
    Latitude comparisons are half-open (a vertex level with the ray counts
    as lying below it), so the result does not depend on where the ring
    starts. A point exactly on an edge is inside only if the crossing
    longitude is strictly east of it.

    Args:
        point: (latitude, longitude)
        polygon: List of (latitude, longitude) vertices

    Returns:
        True if point is inside polygon, False otherwise
    """
    lat, lon = point
    n = len(polygon)
    inside = False

    j = n - 1
    for i in range(n):
        lat_i, lon_i = polygon[i]
        lat_j, lon_j = polygon[j]

        if (lat_i > lat) != (lat_j > lat):
            crossing_lon = (lon_j - lon_i) * (lat - lat_i) / (lat_j - lat_i) + lon_i
            if lon < crossing_lon:
                inside = not inside

        j = i

    return inside


class BorderGeometry:
    """
    Immutable national boundary

    Works in one of two explicit modes:
    - "polygon": ray casting over the border ring
    - "bounding_box": degraded mode used when no border polygon is loaded
    """

    def __init__(self, polygon: Sequence[Tuple[float, float]]):
        if polygon is None or len(polygon) < 3:
            raise InvalidGeometryError("Border polygon needs at least 3 vertices")

        self._polygon: Tuple[Tuple[float, float], ...] = tuple((float(lat), float(lon)) for lat, lon in polygon)
        self.mode = "polygon"

        lats = [v[0] for v in self._polygon]
        lons = [v[1] for v in self._polygon]
        self._bounds = {
            'north': max(lats),
            'south': min(lats),
            'east': max(lons),
            'west': min(lons)
        }

    @classmethod
    def from_bounding_box(cls, bounds: Dict[str, float]) -> 'BorderGeometry':
        """
        Degraded-mode border: an axis-aligned box over the expected region

        Args:
            bounds: dict with 'north', 'south', 'east', 'west'
        """
        try:
            north, south = float(bounds['north']), float(bounds['south'])
            east, west = float(bounds['east']), float(bounds['west'])
        except (KeyError, TypeError, ValueError) as e:
            raise InvalidGeometryError(f"Invalid fallback bounds: {bounds}") from e

        if north <= south or east <= west:
            raise InvalidGeometryError(f"Inverted fallback bounds: {bounds}")

        border = cls.__new__(cls)
        border._polygon = ()
        border.mode = "bounding_box"
        border._bounds = {'north': north, 'south': south, 'east': east, 'west': west}
        logger.warning("Border polygon not loaded, using bounding box fallback")
        return border

    @property
    def polygon(self) -> Tuple[Tuple[float, float], ...]:
        return self._polygon

    @property
    def bounds(self) -> Dict[str, float]:
        return dict(self._bounds)

    def in_bounds(self, point: GeoPoint) -> bool:
        """Inclusive bounding-box test"""
        b = self._bounds
        return (b['south'] <= point.latitude <= b['north'] and
                b['west'] <= point.longitude <= b['east'])

    def is_inside(self, point: GeoPoint) -> bool:
        """
        Check if a point lies within the border

        Args:
            point: Point to check

        Returns:
            True if inside, False otherwise
        """
        if self.mode == "bounding_box":
            return self.in_bounds(point)

        if not self.in_bounds(point):
            return False

        return point_in_polygon(point.as_tuple(), self._polygon)


class ZoneRegistry:
    """Immutable set of restricted zones and airports"""

    def __init__(self, zones: Sequence[ZoneDefinition] = (), airports: Sequence[AirportDefinition] = ()):
        self._zones: Tuple[ZoneDefinition, ...] = tuple(zones)
        self._airports: Tuple[AirportDefinition, ...] = tuple(airports)

    @property
    def zones(self) -> Tuple[ZoneDefinition, ...]:
        return self._zones

    @property
    def airports(self) -> Tuple[AirportDefinition, ...]:
        return self._airports

    def classify(self, point: GeoPoint) -> ZoneClassification:
        """
        Classify a point against airports and restricted zones

        Airports are checked first, then restricted zones, then airport
        caution rings. The first match wins.

        Args:
            point: Point to classify

        Returns:
            ZoneClassification (severity none if nothing matched)
        """
        lat, lon = point.latitude, point.longitude

        for airport in self._airports:
            distance = haversine_distance(lat, lon, airport.center.latitude, airport.center.longitude)
            if distance <= airport.restricted_radius:
                return ZoneClassification(
                    restricted=True,
                    severity=ZoneSeverity.NO_FLY,
                    zone_name=airport.name,
                    zone_type='airport',
                    altitude_cap=0.0,
                    distance=distance
                )

        for zone in self._zones:
            distance = haversine_distance(lat, lon, zone.center.latitude, zone.center.longitude)
            if distance <= zone.radius:
                if zone.max_altitude == 0:
                    return ZoneClassification(
                        restricted=True,
                        severity=ZoneSeverity.NO_FLY,
                        zone_name=zone.name,
                        zone_type=zone.type,
                        altitude_cap=0.0,
                        distance=distance
                    )
                return ZoneClassification(
                    restricted=True,
                    severity=ZoneSeverity.CAUTION,
                    zone_name=zone.name,
                    zone_type=zone.type,
                    altitude_cap=zone.max_altitude,
                    distance=distance
                )

        for airport in self._airports:
            distance = haversine_distance(lat, lon, airport.center.latitude, airport.center.longitude)
            if distance <= airport.caution_radius:
                return ZoneClassification(
                    restricted=True,
                    severity=ZoneSeverity.CAUTION,
                    zone_name=airport.name,
                    zone_type='airport_vicinity',
                    distance=distance
                )

        return ZoneClassification()

    def nearest_airport(self, point: GeoPoint) -> Optional[NearestAirport]:
        """Closest airport to a point, or None when no airports are defined"""
        best: Optional[NearestAirport] = None
        for airport in self._airports:
            distance = haversine_distance(point.latitude, point.longitude,
                                          airport.center.latitude, airport.center.longitude)
            if best is None or distance < best.distance:
                best = NearestAirport(name=airport.name, code=airport.code, distance=round(distance))
        return best

    def get_geofence_info(self) -> Dict[str, List[dict]]:
        """
        Get all zones and airports for visualization

        Returns:
            Dictionary containing zones and airports
        """
        return {
            'restricted_zones': [z.model_dump() for z in self._zones],
            'airports': [a.model_dump() for a in self._airports]
        }
