"""
Shared fixtures for admission engine tests.
Run from the project root: python -m pytest tests/
"""
from datetime import datetime, timedelta, timezone

import pytest

from admission import AirspaceService
from models import FlightPlan
import config

# 10:00 local (Europe/Belgrade, summer time)
NOW = datetime(2030, 6, 1, 8, 0, tzinfo=timezone.utc)

# Open countryside west of Pristina, clear of every zone and airport
BASE_LAT = 42.60
BASE_LNG = 20.90

# One degree of latitude on the haversine sphere
METERS_PER_DEG_LAT = 111194.93


def at(hour, minute=0, day=1):
    return datetime(2030, 6, day, hour, minute, tzinfo=timezone.utc)


def waypoint(lat, lng, order=0, altitude=100.0):
    return {'position': {'latitude': lat, 'longitude': lng}, 'altitude': altitude, 'order': order}


def path_request(points, start, end, max_altitude=100.0):
    return {
        'waypoints': [waypoint(lat, lng, order=i) for i, (lat, lng) in enumerate(points)],
        'scheduled_start': start,
        'scheduled_end': end,
        'max_altitude': max_altitude
    }


def circle_request(lat, lng, radius, start, end, max_altitude=100.0):
    return {
        'operation_area': {'type': 'circle', 'center': {'latitude': lat, 'longitude': lng}, 'radius': radius},
        'scheduled_start': start,
        'scheduled_end': end,
        'max_altitude': max_altitude
    }


def rectangle_request(north, south, east, west, start, end, max_altitude=100.0):
    return {
        'operation_area': {'type': 'rectangle',
                           'bounds': {'north': north, 'south': south, 'east': east, 'west': west}},
        'scheduled_start': start,
        'scheduled_end': end,
        'max_altitude': max_altitude
    }


class FixedClock:
    """Settable clock for deterministic time checks"""

    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def clock():
    return FixedClock(NOW)


@pytest.fixture
def airspace():
    return config.default_airspace_config()


@pytest.fixture
def service(airspace, clock):
    return AirspaceService(airspace, clock=clock)


def flight_plan(flight_id, start, end, status='pending', max_altitude=100.0, points=None):
    """Registry entry built directly, bypassing admission"""
    points = points or [(BASE_LAT, BASE_LNG), (BASE_LAT, BASE_LNG + 0.01)]
    return FlightPlan.model_validate({
        **path_request(points, start, end, max_altitude),
        'flight_id': flight_id,
        'flight_number': f"KS-TEST00-{flight_id[-3:].upper()}",
        'status': status,
        'created_at': NOW,
        'updated_at': NOW
    })
