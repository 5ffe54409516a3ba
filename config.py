"""
Airspace Admission Configuration
Defines regulatory constants, the national border, restricted zones and airports
"""

import json
import logging
import os
from datetime import time
from typing import List, Optional, Tuple

from pydantic import BaseModel, Field, ValidationError

from exceptions import ConfigurationError
from models import AirportDefinition, GeoPoint, ZoneDefinition

logger = logging.getLogger(__name__)

# ============================================================================
# REGULATORY PARAMETERS
# ============================================================================

MAX_ALTITUDE_AGL = 120.0          # meters (regulatory ceiling)
MIN_VERTICAL_SEPARATION = 30.0    # meters
MIN_HORIZONTAL_SEPARATION = 200.0  # meters

# Daylight operations window, local time
DAYLIGHT_START = time(6, 0)
DAYLIGHT_END = time(20, 0)
LOCAL_TIMEZONE = "Europe/Belgrade"

# ============================================================================
# SAMPLING PARAMETERS
# ============================================================================
# Interpolation is linear in lat/lng. This is only valid because the
# operating region spans a few hundred kilometers.

SAMPLE_SPACING = 50.0            # meters between path samples
BORDER_CROSSING_STEPS = 20       # fractional steps for border crossing checks
PATH_VALIDATION_SPACING = 500.0  # meters, for read-only path validation
AREA_PERIMETER_POINTS = 8        # perimeter samples on a circular area
BOUNDS_BUFFER_DEG = 0.005        # ~550 m padding for bounding box rejection
METERS_PER_DEGREE = 111320.0     # meters per degree of latitude

# ============================================================================
# NATIONAL BORDER
# ============================================================================
# Closed ring of (latitude, longitude) vertices; last vertex joins the first

BORDER_POLYGON = [
    (43.268, 20.800),
    (43.205, 20.985),
    (43.105, 21.200),
    (42.985, 21.435),
    (42.860, 21.655),
    (42.745, 21.780),
    (42.555, 21.745),
    (42.440, 21.625),
    (42.320, 21.570),
    (42.205, 21.405),
    (42.100, 21.250),
    (41.985, 21.010),
    (41.860, 20.590),
    (41.950, 20.520),
    (42.085, 20.480),
    (42.205, 20.345),
    (42.350, 20.225),
    (42.520, 20.070),
    (42.650, 20.020),
    (42.800, 20.180),
    (42.905, 20.350),
    (43.020, 20.450),
    (43.105, 20.555),
    (43.220, 20.700),
]

# Bounding box used when no border polygon is loaded
FALLBACK_BOUNDS = {
    'north': 43.27,
    'south': 41.85,
    'east': 21.80,
    'west': 19.91
}

# ============================================================================
# AIRPORTS
# ============================================================================
# No-fly inside restricted_radius, caution up to caution_radius (meters)

AIRPORTS = [
    {
        'name': 'Pristina International Airport Adem Jashari',
        'code': 'PRN',
        'center': (42.5728, 21.0358),
        'restricted_radius': 5000.0,
        'caution_radius': 8000.0
    },
    {
        'name': 'Gjakova Airport',
        'code': 'GJK',
        'center': (42.4342, 20.4225),
        'restricted_radius': 3000.0,
        'caution_radius': 6000.0
    }
]

# ============================================================================
# RESTRICTED ZONES
# ============================================================================
# max_altitude == 0 means full no-fly, otherwise flights are capped

RESTRICTED_ZONES = [
    {
        'name': 'Camp Bondsteel',
        'type': 'military',
        'center': (42.3633, 21.2486),
        'radius': 3000.0,
        'max_altitude': 0.0
    },
    {
        'name': 'Government Quarter Pristina',
        'type': 'government',
        'center': (42.6629, 21.1655),
        'radius': 1000.0,
        'max_altitude': 0.0
    },
    {
        'name': 'Visoki Decani Monastery',
        'type': 'protected_site',
        'center': (42.5466, 20.2665),
        'radius': 1000.0,
        'max_altitude': 0.0
    },
    {
        'name': 'Kosovo Power Plants Obiliq',
        'type': 'critical_infrastructure',
        'center': (42.6842, 21.0730),
        'radius': 1500.0,
        'max_altitude': 50.0
    },
    {
        'name': 'Gazivoda Dam',
        'type': 'critical_infrastructure',
        'center': (42.9300, 20.6300),
        'radius': 1000.0,
        'max_altitude': 60.0
    },
    {
        'name': 'Prizren Historic Center',
        'type': 'heritage',
        'center': (42.2139, 20.7397),
        'radius': 800.0,
        'max_altitude': 60.0
    },
    {
        'name': 'Sharr Mountains National Park',
        'type': 'national_park',
        'center': (42.1500, 20.9500),
        'radius': 8000.0,
        'max_altitude': 90.0
    }
]

# ============================================================================
# API CONFIGURATION
# ============================================================================

API_HOST = os.getenv("AIRSPACE_API_HOST", "127.0.0.1")
API_PORT = int(os.getenv("AIRSPACE_API_PORT", "8000"))
CORS_ORIGINS = ["*"]

AIRSPACE_CONFIG_FILE = os.getenv("AIRSPACE_CONFIG_FILE")

# Maintenance sweep
TICK_INTERVAL = float(os.getenv("AIRSPACE_TICK_INTERVAL", "30"))  # seconds

FLIGHT_NUMBER_PREFIX = "KS"


class RegulatoryLimits(BaseModel):
    """Regulatory constants injected into the admission pipeline"""
    max_altitude: float = MAX_ALTITUDE_AGL
    min_vertical_separation: float = MIN_VERTICAL_SEPARATION
    min_horizontal_separation: float = MIN_HORIZONTAL_SEPARATION
    daylight_start: time = DAYLIGHT_START
    daylight_end: time = DAYLIGHT_END
    local_timezone: str = LOCAL_TIMEZONE
    sample_spacing: float = Field(SAMPLE_SPACING, gt=0)
    path_validation_spacing: float = Field(PATH_VALIDATION_SPACING, gt=0)
    bounds_buffer_deg: float = Field(BOUNDS_BUFFER_DEG, ge=0)


class AirspaceConfig(BaseModel):
    """
    Static airspace definition, immutable for the process lifetime.

    border_polygon set to None selects the bounding-box degraded mode.
    """
    model_config = {'frozen': True}

    border_polygon: Optional[List[Tuple[float, float]]] = None
    fallback_bounds: dict = Field(default_factory=lambda: dict(FALLBACK_BOUNDS))
    airports: List[AirportDefinition] = Field(default_factory=list)
    zones: List[ZoneDefinition] = Field(default_factory=list)
    limits: RegulatoryLimits = Field(default_factory=RegulatoryLimits)

    @property
    def border_mode(self) -> str:
        return "polygon" if self.border_polygon is not None else "bounding_box"


def _airport_from_entry(entry: dict) -> AirportDefinition:
    lat, lon = entry['center']
    return AirportDefinition(
        name=entry['name'],
        code=entry.get('code'),
        center=GeoPoint(latitude=lat, longitude=lon),
        restricted_radius=entry['restricted_radius'],
        caution_radius=entry['caution_radius']
    )


def _zone_from_entry(entry: dict) -> ZoneDefinition:
    lat, lon = entry['center']
    return ZoneDefinition(
        name=entry['name'],
        type=entry['type'],
        center=GeoPoint(latitude=lat, longitude=lon),
        radius=entry['radius'],
        max_altitude=entry['max_altitude']
    )


def build_airspace_config(data: dict) -> AirspaceConfig:
    """
    Build an AirspaceConfig from a plain dictionary

    Args:
        data: Mapping with the same keys as the module constants
              ('border_polygon', 'fallback_bounds', 'airports',
              'restricted_zones', 'limits')

    Returns:
        Validated configuration
    """
    try:
        polygon = data.get('border_polygon')
        return AirspaceConfig(
            border_polygon=[tuple(v) for v in polygon] if polygon is not None else None,
            fallback_bounds=data.get('fallback_bounds', FALLBACK_BOUNDS),
            airports=[_airport_from_entry(a) for a in data.get('airports', [])],
            zones=[_zone_from_entry(z) for z in data.get('restricted_zones', [])],
            limits=RegulatoryLimits(**data.get('limits', {}))
        )
    except (KeyError, TypeError, ValueError, ValidationError) as e:
        raise ConfigurationError("airspace", f"Invalid airspace definition ({e})") from e


def default_airspace_config() -> AirspaceConfig:
    """Airspace built from the constants in this module"""
    return build_airspace_config({
        'border_polygon': BORDER_POLYGON,
        'fallback_bounds': FALLBACK_BOUNDS,
        'airports': AIRPORTS,
        'restricted_zones': RESTRICTED_ZONES
    })


def load_airspace_config(path: Optional[str] = None) -> AirspaceConfig:
    """
    Load the airspace definition

    Args:
        path: JSON file with the airspace definition. Falls back to
              AIRSPACE_CONFIG_FILE, then to the module constants.

    Returns:
        Validated configuration
    """
    path = path or AIRSPACE_CONFIG_FILE
    if not path:
        return default_airspace_config()

    try:
        with open(path, 'r') as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(path, f"Could not read airspace file ({e})") from e

    config = build_airspace_config(data)
    logger.info(f"Loaded airspace from {path}: {len(config.zones)} zones, "
                f"{len(config.airports)} airports, border mode {config.border_mode}")
    return config
