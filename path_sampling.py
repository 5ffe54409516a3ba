"""
Path Sampling Module
Discretizes waypoint paths and operation areas into point samples

Interpolation is linear in latitude/longitude, not geodesic. This is
adequate because the operating region spans only a few hundred kilometers.
"""

import math
from typing import Dict, List, Optional, Sequence

from models import CircleArea, GeoPoint, RectangleArea
import config


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Calculate great circle distance between two points on Earth

    Args:
        lat1, lon1: First point coordinates
        lat2, lon2: Second point coordinates

    Returns:
        Distance in meters
    """
    R = 6371000  # Earth radius in meters

    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    delta_phi = math.radians(lat2 - lat1)
    delta_lambda = math.radians(lon2 - lon1)

    a = (math.sin(delta_phi / 2) ** 2 +
         math.cos(phi1) * math.cos(phi2) * math.sin(delta_lambda / 2) ** 2)
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return R * c


def point_distance(p1: GeoPoint, p2: GeoPoint) -> float:
    """Great circle distance between two GeoPoints in meters"""
    return haversine_distance(p1.latitude, p1.longitude, p2.latitude, p2.longitude)


def interpolate(p1: GeoPoint, p2: GeoPoint, t: float) -> GeoPoint:
    return GeoPoint(
        latitude=p1.latitude + t * (p2.latitude - p1.latitude),
        longitude=p1.longitude + t * (p2.longitude - p1.longitude)
    )


def sample_segment(p1: GeoPoint, p2: GeoPoint, spacing: float = config.SAMPLE_SPACING) -> List[GeoPoint]:
    """
    Sample a straight segment at (at most) the given spacing

    Args:
        p1, p2: Segment endpoints
        spacing: Maximum distance between consecutive samples in meters

    Returns:
        Ordered samples, both endpoints included
    """
    if spacing <= 0:
        raise ValueError("spacing must be positive")

    steps = max(1, math.ceil(point_distance(p1, p2) / spacing))
    return [p1] + [interpolate(p1, p2, i / steps) for i in range(1, steps)] + [p2]


def sample_path(points: Sequence[GeoPoint], spacing: float = config.SAMPLE_SPACING) -> List[GeoPoint]:
    """
    Sample a polyline by chaining its segments

    Shared vertices appear once. A single-point path yields that point.
    """
    if not points:
        return []

    samples = [points[0]]
    for i in range(len(points) - 1):
        samples.extend(sample_segment(points[i], points[i + 1], spacing)[1:])
    return samples


def sample_area(area) -> List[GeoPoint]:
    """
    Representative points of an operation area

    Circle: center + perimeter points every 45 degrees
    Rectangle: center + 4 corners + 4 edge midpoints

    Returns:
        9 points for either shape, fewer for a circle that reaches past
        a pole or the antimeridian
    """
    if isinstance(area, CircleArea):
        center = area.center
        radius_deg = area.radius / config.METERS_PER_DEGREE
        # Longitude degrees shrink with latitude
        lon_scale = math.cos(math.radians(center.latitude))
        samples = [center]
        for k in range(config.AREA_PERIMETER_POINTS):
            angle = math.radians(k * 360.0 / config.AREA_PERIMETER_POINTS)
            lat = center.latitude + radius_deg * math.cos(angle)
            lon = center.longitude + radius_deg * math.sin(angle) / lon_scale
            # Points past a pole or the antimeridian are dropped
            if -90 <= lat <= 90 and -180 <= lon <= 180:
                samples.append(GeoPoint(latitude=lat, longitude=lon))
        return samples

    if isinstance(area, RectangleArea):
        b = area.bounds
        mid_lat = (b.north + b.south) / 2
        mid_lon = (b.east + b.west) / 2
        return [
            GeoPoint(latitude=mid_lat, longitude=mid_lon),
            GeoPoint(latitude=b.north, longitude=b.west),
            GeoPoint(latitude=b.north, longitude=b.east),
            GeoPoint(latitude=b.south, longitude=b.east),
            GeoPoint(latitude=b.south, longitude=b.west),
            GeoPoint(latitude=mid_lat, longitude=b.west),
            GeoPoint(latitude=mid_lat, longitude=b.east),
            GeoPoint(latitude=b.north, longitude=mid_lon),
            GeoPoint(latitude=b.south, longitude=mid_lon),
        ]

    raise TypeError(f"Unsupported operation area: {type(area).__name__}")


def crosses_border(p1: GeoPoint, p2: GeoPoint, border,
                   steps: int = config.BORDER_CROSSING_STEPS) -> Optional[GeoPoint]:
    """
    Check whether the straight segment p1 -> p2 leaves the border

    Only intermediate points are tested (t = 1/steps .. (steps-1)/steps).

    Args:
        p1, p2: Segment endpoints
        border: BorderGeometry
        steps: Number of fractional steps

    Returns:
        First sample outside the border, or None
    """
    for i in range(1, steps):
        sample = interpolate(p1, p2, i / steps)
        if not border.is_inside(sample):
            return sample
    return None


def is_point_in_area(point: GeoPoint, area) -> bool:
    """Inclusive containment test for a circle or rectangle"""
    if isinstance(area, CircleArea):
        return point_distance(point, area.center) <= area.radius

    b = area.bounds
    return b.south <= point.latitude <= b.north and b.west <= point.longitude <= b.east


def area_bounds(area) -> Dict[str, float]:
    """Bounding box of an operation area in degrees"""
    if isinstance(area, CircleArea):
        radius_deg = area.radius / config.METERS_PER_DEGREE
        lon_radius = radius_deg / math.cos(math.radians(area.center.latitude))
        return {
            'north': area.center.latitude + radius_deg,
            'south': area.center.latitude - radius_deg,
            'east': area.center.longitude + lon_radius,
            'west': area.center.longitude - lon_radius
        }

    return area.bounds.model_dump()


def path_bounds(points: Sequence[GeoPoint]) -> Optional[Dict[str, float]]:
    """Bounding box of a set of points, or None if empty"""
    if not points:
        return None

    lats = [p.latitude for p in points]
    lons = [p.longitude for p in points]
    return {
        'north': max(lats),
        'south': min(lats),
        'east': max(lons),
        'west': min(lons)
    }


def bounds_overlap(bounds1: Optional[Dict[str, float]], bounds2: Optional[Dict[str, float]],
                   buffer: float = config.BOUNDS_BUFFER_DEG) -> bool:
    """
    Check if two bounding boxes overlap once each is padded by buffer degrees

    Returns:
        True if they overlap, False otherwise (or if either is missing)
    """
    if bounds1 is None or bounds2 is None:
        return False

    return not (bounds1['east'] + buffer < bounds2['west'] - buffer or
                bounds1['west'] - buffer > bounds2['east'] + buffer or
                bounds1['north'] + buffer < bounds2['south'] - buffer or
                bounds1['south'] - buffer > bounds2['north'] + buffer)


def path_length(points: Sequence[GeoPoint]) -> float:
    """Total great circle length of a polyline in meters"""
    return sum(point_distance(points[i], points[i + 1]) for i in range(len(points) - 1))
