"""
Admission Module
Validates proposed flights against the border, zones, regulations and
admitted traffic, and admits them into the shared airspace.

The validator runs every check and returns the full list; only checks with
error severity block admission. AirspaceService holds the registry lock
across validation and insertion, so two overlapping submissions can never
both be admitted.
"""

import logging
import random
import uuid
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Sequence, Union
from zoneinfo import ZoneInfo

from pydantic import ValidationError

from conflict_detection import ConflictIndex
from exceptions import InvalidFlightRequestError, InvalidStatusTransitionError
from flight_registry import FlightRegistry
from geofencing import BorderGeometry, ZoneRegistry
from models import (
    CheckSeverity, FlightPlan, FlightRequest, FlightStatus, GeoPoint, PathIssue,
    PathValidation, PointCheck, SegmentReport, StatusChange, SubmitFlightResponse,
    TERMINAL_STATUSES, TimeWindow, ValidationCheck, ValidationReport, Waypoint,
    ZoneClassification, ZoneSeverity
)
import config
import path_sampling

logger = logging.getLogger(__name__)

_BASE36 = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _to_base36(value: int) -> str:
    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(_BASE36[remainder])
    return ''.join(reversed(digits)) or '0'


def generate_flight_number(now: datetime) -> str:
    """Human-readable flight number, e.g. KS-LQ3F2A-7XK"""
    stamp = _to_base36(int(now.timestamp() * 1000))[-6:]
    suffix = ''.join(random.choices(_BASE36, k=3))
    return f"{config.FLIGHT_NUMBER_PREFIX}-{stamp}-{suffix}"


def parse_request(request: Union[FlightRequest, dict]) -> FlightRequest:
    """
    Coerce raw input into a FlightRequest

    Raises:
        InvalidFlightRequestError: degenerate geometry, bad waypoint order,
            inverted time window or missing fields
    """
    if isinstance(request, FlightRequest):
        return request

    try:
        return FlightRequest.model_validate(request)
    except ValidationError as e:
        raise InvalidFlightRequestError(str(e), errors=e.errors(include_url=False)) from e


def _check(name: str, passed: bool, message: str, severity: CheckSeverity, **extra) -> ValidationCheck:
    return ValidationCheck(name=name, passed=passed, message=message, severity=severity, **extra)


class AdmissionValidator:
    """Runs border, altitude, zone, time, daylight and conflict checks"""

    def __init__(self, border: BorderGeometry, zones: ZoneRegistry, conflict_index: ConflictIndex,
                 limits: Optional[config.RegulatoryLimits] = None,
                 clock: Callable[[], datetime] = utc_now):
        self.border = border
        self.zones = zones
        self.conflict_index = conflict_index
        self.limits = limits or config.RegulatoryLimits()
        self.clock = clock
        self._local_tz = ZoneInfo(self.limits.local_timezone)

    def validate(self, request: FlightRequest, now: Optional[datetime] = None,
                 exclude_id: Optional[str] = None) -> ValidationReport:
        """
        Validate a flight request against every admission rule

        Args:
            request: Proposed flight
            now: Reference time for the time check (defaults to the clock)
            exclude_id: Registry flight to ignore in the conflict check

        Returns:
            ValidationReport with every check, in a fixed order
        """
        now = now or self.clock()

        checks: List[ValidationCheck] = []
        checks.extend(self.check_border(request))
        checks.append(self.check_altitude(request))
        checks.extend(self.check_zones(request))
        checks.append(self.check_time(request, now))
        checks.append(self.check_daylight(request))
        checks.extend(self.check_conflicts(request, exclude_id))

        is_valid = not any(c.severity == CheckSeverity.ERROR and not c.passed for c in checks)
        return ValidationReport(is_valid=is_valid, checks=checks, validated_at=now)

    def check_border(self, request: FlightRequest) -> List[ValidationCheck]:
        if request.operation_area is not None:
            if self.border.is_inside(request.operation_area.center):
                return [_check('border_check', True, "Operation area within the national border",
                               CheckSeverity.INFO)]
            return [_check('border_check', False, "Operation area center is outside the national border",
                           CheckSeverity.ERROR)]

        checks = []
        for i, point in enumerate(request.path_points):
            if not self.border.is_inside(point):
                checks.append(_check('border_check', False, f"Waypoint {i + 1} is outside the national border",
                                     CheckSeverity.ERROR))
        if not checks:
            checks.append(_check('border_check', True, "All waypoints within the national border",
                                 CheckSeverity.INFO))
        return checks

    def check_altitude(self, request: FlightRequest) -> ValidationCheck:
        ceiling = self.limits.max_altitude
        if request.max_altitude > ceiling:
            return _check('altitude_check', False,
                          f"Maximum altitude {request.max_altitude:g}m exceeds legal limit of {ceiling:g}m AGL",
                          CheckSeverity.ERROR)
        return _check('altitude_check', True, f"Altitude {request.max_altitude:g}m within legal limits",
                      CheckSeverity.INFO)

    def zone_points(self, request: FlightRequest) -> List[GeoPoint]:
        """Area samples, or the waypoint path sampled every PATH_VALIDATION_SPACING meters"""
        if request.operation_area is not None:
            return path_sampling.sample_area(request.operation_area)
        return path_sampling.sample_path(request.path_points, self.limits.path_validation_spacing)

    def check_zones(self, request: FlightRequest) -> List[ValidationCheck]:
        # One entry per zone, in order of first contact
        hits: Dict[str, ZoneClassification] = {}
        for point in self.zone_points(request):
            classification = self.zones.classify(point)
            if classification.severity != ZoneSeverity.NONE and classification.zone_name not in hits:
                hits[classification.zone_name] = classification

        if not hits:
            return [_check('zone_check', True, "No restricted zone violations", CheckSeverity.INFO)]

        return [self._zone_check(c, request.max_altitude) for c in hits.values()]

    def _zone_check(self, classification: ZoneClassification, max_altitude: float) -> ValidationCheck:
        name = classification.zone_name
        cap = classification.altitude_cap

        if classification.severity == ZoneSeverity.NO_FLY:
            return _check('zone_check', False, f"Flight enters no-fly zone: {name}", CheckSeverity.ERROR,
                          altitude_cap=cap)

        if cap is None:
            return _check('zone_check', True, f"Flight passes through the caution area of {name}",
                          CheckSeverity.WARNING)

        if max_altitude > cap:
            return _check('zone_check', False,
                          f"Maximum altitude {max_altitude:g}m exceeds the {cap:g}m limit in {name}",
                          CheckSeverity.ERROR, altitude_cap=cap)

        return _check('zone_check', True, f"{name}: maximum altitude {cap:g}m in this area",
                      CheckSeverity.WARNING, altitude_cap=cap)

    def check_time(self, request: FlightRequest, now: datetime) -> ValidationCheck:
        if request.scheduled_start <= now:
            return _check('time_check', False, "Scheduled start time is in the past", CheckSeverity.ERROR)
        return _check('time_check', True, "Flight scheduled for future time", CheckSeverity.INFO)

    def check_daylight(self, request: FlightRequest) -> ValidationCheck:
        start, end = self.limits.daylight_start, self.limits.daylight_end
        # Whole-hour comparison: any start within the closing hour passes
        local_hour = request.scheduled_start.astimezone(self._local_tz).hour
        if local_hour < start.hour or local_hour > end.hour:
            return _check('daylight_check', False,
                          f"Regulations require daylight operations "
                          f"({start.strftime('%H:%M')}-{end.strftime('%H:%M')})",
                          CheckSeverity.WARNING)
        return _check('daylight_check', True, "Flight scheduled during daylight hours", CheckSeverity.INFO)

    def check_conflicts(self, request: FlightRequest, exclude_id: Optional[str] = None) -> List[ValidationCheck]:
        conflicts = self.conflict_index.find_conflicts(request, exclude_id=exclude_id)
        if not conflicts:
            return [_check('traffic_conflict', True, "No traffic conflicts detected - airspace clear",
                           CheckSeverity.INFO)]

        return [
            _check('traffic_conflict', False,
                   f"Conflict with flight {c.flight_number or c.other_flight_id}: "
                   f"{c.conflict_type} ({round(c.min_distance)}m separation)",
                   CheckSeverity.ERROR, conflicting_flight=c)
            for c in conflicts
        ]

    def validate_path(self, waypoints: Sequence[Waypoint], max_altitude: float) -> PathValidation:
        """
        Validate a waypoint path against the border and zones, without admission

        Each segment is sampled every PATH_VALIDATION_SPACING meters and
        checked for border crossings and no-fly entry.

        Raises:
            InvalidFlightRequestError: fewer than 2 waypoints
        """
        if len(waypoints) < 2:
            raise InvalidFlightRequestError("At least 2 waypoints required")

        points = [w.position for w in waypoints]
        issues: List[PathIssue] = []
        segments: List[SegmentReport] = []

        for i, point in enumerate(points):
            if not self.border.is_inside(point):
                issues.append(PathIssue(type='border_violation', waypoint_index=i,
                                        message=f"Waypoint {i + 1} is outside the national border",
                                        severity=CheckSeverity.ERROR))
            classification = self.zones.classify(point)
            if classification.severity != ZoneSeverity.NONE:
                check = self._zone_check(classification, max_altitude)
                issues.append(PathIssue(type=classification.zone_type, waypoint_index=i,
                                        zone=classification.zone_name, message=check.message,
                                        severity=check.severity))

        for i in range(len(points) - 1):
            p1, p2 = points[i], points[i + 1]
            valid = True

            crossing = path_sampling.crosses_border(p1, p2, self.border)
            if crossing is not None:
                valid = False
                issues.append(PathIssue(type='path_crosses_border', segment_index=i,
                                        message=f"Flight path between waypoints {i + 1} and {i + 2} "
                                                f"crosses the national border",
                                        severity=CheckSeverity.ERROR))

            for sample in path_sampling.sample_segment(p1, p2, self.limits.path_validation_spacing)[1:-1]:
                classification = self.zones.classify(sample)
                if classification.severity == ZoneSeverity.NO_FLY:
                    valid = False
                    issues.append(PathIssue(type='path_crosses_restricted', segment_index=i,
                                            zone=classification.zone_name,
                                            message=f"Flight path crosses restricted zone: "
                                                    f"{classification.zone_name}",
                                            severity=CheckSeverity.ERROR))
                    break

            segments.append(SegmentReport(from_index=i, to_index=i + 1,
                                          distance=round(path_sampling.point_distance(p1, p2)), valid=valid))

        return PathValidation(
            is_valid=not any(issue.severity == CheckSeverity.ERROR for issue in issues),
            issues=issues,
            segments=segments,
            total_distance=sum(s.distance for s in segments),
            waypoint_count=len(points)
        )

    def check_point(self, point: GeoPoint, altitude: float = 0.0) -> PointCheck:
        """Border membership, zone classification and nearest airport for one point"""
        within_border = self.border.is_inside(point)
        classification = self.zones.classify(point)

        blocked = classification.severity == ZoneSeverity.NO_FLY or (
            classification.altitude_cap is not None and altitude > classification.altitude_cap)

        return PointCheck(
            point=point,
            altitude=altitude,
            within_border=within_border,
            classification=classification,
            is_valid_for_flight=within_border and not blocked,
            nearest_airport=self.zones.nearest_airport(point)
        )


class AirspaceService:
    """
    Entry point for submitting, listing, cancelling and advancing flights

    Admission, cancellation and the maintenance tick all run under the
    registry lock.
    """

    def __init__(self, airspace: Optional[config.AirspaceConfig] = None,
                 registry: Optional[FlightRegistry] = None,
                 clock: Callable[[], datetime] = utc_now):
        self.airspace = airspace or config.load_airspace_config()
        self.clock = clock

        if self.airspace.border_polygon is not None:
            self.border = BorderGeometry(self.airspace.border_polygon)
        else:
            self.border = BorderGeometry.from_bounding_box(self.airspace.fallback_bounds)

        limits = self.airspace.limits
        self.zones = ZoneRegistry(self.airspace.zones, self.airspace.airports)
        self.registry = registry or FlightRegistry()
        self.conflict_index = ConflictIndex(
            self.registry,
            min_vertical_separation=limits.min_vertical_separation,
            min_horizontal_separation=limits.min_horizontal_separation,
            sample_spacing=limits.sample_spacing,
            bounds_buffer=limits.bounds_buffer_deg
        )
        self.validator = AdmissionValidator(self.border, self.zones, self.conflict_index, limits, clock)

        # Rejected plans, kept for audit only; they never occupy airspace
        self._rejected: Dict[str, FlightPlan] = {}

    def _new_flight_number(self, now: datetime) -> str:
        taken = {f.flight_number for f in self.registry.all()} | {f.flight_number for f in self._rejected.values()}
        while True:
            number = generate_flight_number(now)
            if number not in taken:
                return number

    def submit_flight(self, request: Union[FlightRequest, dict],
                      now: Optional[datetime] = None) -> SubmitFlightResponse:
        """
        Validate a flight and admit it as pending if every error check passes

        Args:
            request: FlightRequest or equivalent dict
            now: Reference time (defaults to the clock)

        Returns:
            SubmitFlightResponse with the assigned identity and full report

        Raises:
            InvalidFlightRequestError: input fault, nothing is recorded
        """
        request = parse_request(request)

        with self.registry.lock:
            now = now or self.clock()
            report = self.validator.validate(request, now=now)
            status = FlightStatus.PENDING if report.is_valid else FlightStatus.REJECTED

            plan = FlightPlan.model_validate({
                **request.model_dump(),
                'flight_id': f"flight_{uuid.uuid4().hex[:12]}",
                'flight_number': self._new_flight_number(now),
                'status': status,
                'validation': report.model_dump(),
                'status_history': [StatusChange(status=status, changed_at=now).model_dump()],
                'created_at': now,
                'updated_at': now
            })

            if report.is_valid:
                self.registry.insert(plan)
            else:
                self._rejected[plan.flight_id] = plan

        if report.is_valid:
            logger.info(f"Flight {plan.flight_number} admitted as pending")
        else:
            failed = sorted({c.name for c in report.checks if c.severity == CheckSeverity.ERROR and not c.passed})
            logger.info(f"Flight {plan.flight_number} rejected: {', '.join(failed)}")

        return SubmitFlightResponse(
            flight_id=plan.flight_id,
            flight_number=plan.flight_number,
            status=plan.status,
            validation=report
        )

    def list_active_conflict_candidates(self, time_window: TimeWindow) -> List[FlightPlan]:
        return self.registry.active_conflict_candidates(time_window)

    def get_flight(self, flight_id: str) -> FlightPlan:
        with self.registry.lock:
            if flight_id in self._rejected:
                return self._rejected[flight_id].model_copy(deep=True)
            return self.registry.get(flight_id)

    def list_flights(self, status: Optional[FlightStatus] = None) -> List[FlightPlan]:
        """All known flights, newest first"""
        with self.registry.lock:
            flights = self.registry.all(status)
            if status in (None, FlightStatus.REJECTED):
                flights.extend(f.model_copy(deep=True) for f in self._rejected.values())
        return sorted(flights, key=lambda f: f.created_at, reverse=True)

    def approve_flight(self, flight_id: str, reason: Optional[str] = None) -> FlightPlan:
        """External authority action: pending -> approved"""
        with self.registry.lock:
            if flight_id in self._rejected:
                raise InvalidStatusTransitionError(flight_id, FlightStatus.REJECTED.value,
                                                   FlightStatus.APPROVED.value)
            flight = self.registry.update_status(flight_id, FlightStatus.APPROVED,
                                                 reason=reason or "approved", now=self.clock())

        logger.info(f"Flight {flight.flight_number} approved")
        return flight

    def cancel_flight(self, flight_id: str, reason: Optional[str] = None) -> bool:
        """
        Cancel a flight that has not reached a terminal status

        Returns:
            True if the flight was cancelled, False if unknown or terminal
        """
        with self.registry.lock:
            if flight_id not in self.registry:
                return False
            flight = self.registry.get(flight_id)
            if flight.status in TERMINAL_STATUSES:
                return False
            self.registry.update_status(flight_id, FlightStatus.CANCELLED,
                                        reason=reason or "cancelled by owner", now=self.clock())

        logger.info(f"Flight {flight.flight_number} cancelled")
        return True

    def tick(self, now: Optional[datetime] = None) -> int:
        """
        Maintenance sweep: approved -> active once started, active -> completed once ended

        Returns:
            Number of flights whose status changed
        """
        transitioned = 0

        with self.registry.lock:
            now = now or self.clock()
            for flight in self.registry.all():
                status = flight.status
                if status == FlightStatus.APPROVED and flight.scheduled_start <= now:
                    self.registry.update_status(flight.flight_id, FlightStatus.ACTIVE,
                                                reason="scheduled start reached", now=now)
                    status = FlightStatus.ACTIVE
                if status == FlightStatus.ACTIVE and flight.scheduled_end <= now:
                    self.registry.update_status(flight.flight_id, FlightStatus.COMPLETED,
                                                reason="scheduled end reached", now=now)
                    status = FlightStatus.COMPLETED
                if status != flight.status:
                    transitioned += 1

        if transitioned:
            logger.info(f"Tick transitioned {transitioned} flights")
        return transitioned
