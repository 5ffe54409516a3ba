"""
Data Models for the Airspace Admission Engine
Uses Pydantic for validation and serialization
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, Field, field_validator, model_validator

from exceptions import InvalidGeometryError


def _as_utc(value: datetime) -> datetime:
    """Naive datetimes are read as UTC"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class FlightStatus(str, Enum):
    """Flight plan lifecycle states"""
    PENDING = "pending"
    APPROVED = "approved"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    REJECTED = "rejected"


# Statuses that reserve airspace and take part in conflict checks
LIVE_STATUSES = frozenset({FlightStatus.PENDING, FlightStatus.APPROVED, FlightStatus.ACTIVE})
TERMINAL_STATUSES = frozenset({FlightStatus.COMPLETED, FlightStatus.CANCELLED, FlightStatus.REJECTED})


class FlightPurpose(str, Enum):
    RECREATIONAL = "recreational"
    COMMERCIAL = "commercial"
    PHOTOGRAPHY = "photography"
    SURVEY = "survey"
    INSPECTION = "inspection"
    AGRICULTURE = "agriculture"
    EMERGENCY = "emergency"
    RESEARCH = "research"


class CheckSeverity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class ZoneSeverity(str, Enum):
    NONE = "none"
    CAUTION = "caution"
    NO_FLY = "no_fly"


# ============================================================================
# GEOMETRY
# ============================================================================

class GeoPoint(BaseModel):
    """2D position in degrees (no altitude)"""
    model_config = {'frozen': True}

    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)

    def as_tuple(self) -> Tuple[float, float]:
        return (self.latitude, self.longitude)


class CircleArea(BaseModel):
    """Circular operation area"""
    type: Literal['circle'] = 'circle'
    center: GeoPoint
    radius: float = Field(..., gt=0)  # meters


class RectangleBounds(BaseModel):
    north: float = Field(..., ge=-90, le=90)
    south: float = Field(..., ge=-90, le=90)
    east: float = Field(..., ge=-180, le=180)
    west: float = Field(..., ge=-180, le=180)

    @model_validator(mode='after')
    def _check_orientation(self):
        if self.north <= self.south:
            raise InvalidGeometryError(f"north ({self.north}) must be greater than south ({self.south})")
        if self.east <= self.west:
            raise InvalidGeometryError(f"east ({self.east}) must be greater than west ({self.west})")
        return self


class RectangleArea(BaseModel):
    """Axis-aligned rectangular operation area"""
    type: Literal['rectangle'] = 'rectangle'
    bounds: RectangleBounds

    @property
    def center(self) -> GeoPoint:
        return GeoPoint(
            latitude=(self.bounds.north + self.bounds.south) / 2,
            longitude=(self.bounds.east + self.bounds.west) / 2
        )


OperationArea = Annotated[Union[CircleArea, RectangleArea], Field(discriminator='type')]


class Waypoint(BaseModel):
    """Single waypoint in a flight path"""
    position: GeoPoint
    altitude: float = Field(100.0, ge=0)  # meters AGL
    order: int


class TimeWindow(BaseModel):
    """Half-open interval [start, end)"""
    start: datetime
    end: datetime

    @field_validator('start', 'end')
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        return _as_utc(value)

    @model_validator(mode='after')
    def _check_order(self):
        if self.end <= self.start:
            raise ValueError("time window end must be after start")
        return self

    def overlaps(self, other: 'TimeWindow') -> bool:
        return self.start < other.end and self.end > other.start


# ============================================================================
# STATIC AIRSPACE
# ============================================================================

class ZoneDefinition(BaseModel):
    """Circular restricted zone; max_altitude 0 means full no-fly"""
    name: str
    type: str
    center: GeoPoint
    radius: float = Field(..., gt=0)
    max_altitude: float = Field(0.0, ge=0)


class AirportDefinition(BaseModel):
    """Airport with a no-fly core and a surrounding caution ring"""
    name: str
    code: Optional[str] = None
    center: GeoPoint
    restricted_radius: float = Field(..., gt=0)
    caution_radius: float = Field(..., gt=0)

    @model_validator(mode='after')
    def _check_radii(self):
        if self.caution_radius < self.restricted_radius:
            raise InvalidGeometryError(f"{self.name}: caution radius smaller than restricted radius")
        return self


class ZoneClassification(BaseModel):
    """Result of classifying a point against zones and airports"""
    restricted: bool = False
    severity: ZoneSeverity = ZoneSeverity.NONE
    zone_name: Optional[str] = None
    zone_type: Optional[str] = None
    altitude_cap: Optional[float] = None
    distance: Optional[float] = None  # meters from the zone center


# ============================================================================
# FLIGHT REQUESTS AND PLANS
# ============================================================================

class DroneInfo(BaseModel):
    """Descriptive aircraft metadata; not used by admission"""
    type: Optional[str] = None
    model: Optional[str] = None
    manufacturer: Optional[str] = None
    serial_number: Optional[str] = None
    registration_number: Optional[str] = None
    weight: Optional[float] = None  # kg
    max_speed: Optional[float] = None  # km/h


class FlightRequest(BaseModel):
    """Proposed flight submitted for admission"""
    waypoints: Optional[List[Waypoint]] = None
    operation_area: Optional[OperationArea] = None
    scheduled_start: datetime
    scheduled_end: datetime
    max_altitude: float = Field(100.0, ge=0)  # meters AGL
    purpose: Optional[FlightPurpose] = None
    description: Optional[str] = None
    drone: Optional[DroneInfo] = None

    @field_validator('scheduled_start', 'scheduled_end')
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        return _as_utc(value)

    @model_validator(mode='after')
    def _check_request(self):
        if (self.waypoints is None) == (self.operation_area is None):
            raise ValueError("exactly one of waypoints or operation_area is required")

        if self.waypoints is not None:
            if not self.waypoints:
                raise ValueError("waypoint path must contain at least one waypoint")
            orders = [w.order for w in self.waypoints]
            if orders != list(range(orders[0], orders[0] + len(orders))):
                raise ValueError(f"waypoint order must be unique, ascending and contiguous, got {orders}")

        if self.scheduled_end <= self.scheduled_start:
            raise ValueError("scheduled_end must be after scheduled_start")
        return self

    @property
    def flight_type(self) -> str:
        return 'area' if self.operation_area is not None else 'waypoint'

    @property
    def time_window(self) -> TimeWindow:
        return TimeWindow(start=self.scheduled_start, end=self.scheduled_end)

    @property
    def path_points(self) -> List[GeoPoint]:
        """Waypoint positions in flight order (empty for area flights)"""
        return [w.position for w in self.waypoints or []]


class ConflictRecord(BaseModel):
    """Detected conflict with an admitted flight"""
    other_flight_id: str
    flight_number: Optional[str] = None
    conflict_type: str  # "area_overlap", "path_enters_area", "path_proximity"
    min_distance: float  # meters
    scheduled_start: Optional[datetime] = None
    scheduled_end: Optional[datetime] = None


class ValidationCheck(BaseModel):
    name: str
    passed: bool
    message: str
    severity: CheckSeverity
    altitude_cap: Optional[float] = None
    conflicting_flight: Optional[ConflictRecord] = None


class ValidationReport(BaseModel):
    is_valid: bool
    checks: List[ValidationCheck] = []
    validated_at: datetime


class StatusChange(BaseModel):
    status: FlightStatus
    changed_at: datetime
    reason: Optional[str] = None


class FlightPlan(FlightRequest):
    """Submitted flight with identity, lifecycle state and validation report"""
    flight_id: str
    flight_number: str
    status: FlightStatus = FlightStatus.PENDING
    validation: Optional[ValidationReport] = None
    status_history: List[StatusChange] = []
    created_at: datetime
    updated_at: datetime


class SubmitFlightResponse(BaseModel):
    flight_id: str
    flight_number: str
    status: FlightStatus
    validation: ValidationReport


# ============================================================================
# READ-ONLY ZONE QUERIES
# ============================================================================

class PathIssue(BaseModel):
    type: str  # "border_violation", "path_crosses_border", zone types...
    message: str
    severity: CheckSeverity
    waypoint_index: Optional[int] = None
    segment_index: Optional[int] = None
    zone: Optional[str] = None


class SegmentReport(BaseModel):
    from_index: int
    to_index: int
    distance: float  # meters
    valid: bool


class PathValidation(BaseModel):
    """Border and zone validation of a waypoint path, without admission"""
    is_valid: bool
    issues: List[PathIssue] = []
    segments: List[SegmentReport] = []
    total_distance: float = 0.0
    waypoint_count: int


class NearestAirport(BaseModel):
    name: str
    code: Optional[str] = None
    distance: float  # meters


class PointCheck(BaseModel):
    point: GeoPoint
    altitude: float
    within_border: bool
    classification: ZoneClassification
    is_valid_for_flight: bool
    nearest_airport: Optional[NearestAirport] = None
