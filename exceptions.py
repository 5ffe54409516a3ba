"""
Airspace Admission Exceptions
Input faults and lifecycle errors. Regulatory rejections are not exceptions,
they are reported as failed checks in a ValidationReport.
"""


class AirspaceError(Exception):
    """Base class for all airspace admission errors"""
    pass


class InvalidGeometryError(AirspaceError, ValueError):
    """Degenerate geometry (empty polygon, non-positive radius, inverted box)"""
    pass


class InvalidFlightRequestError(AirspaceError, ValueError):
    """Flight request failed input validation"""
    def __init__(self, message="Invalid flight request", errors=None):
        self.errors = errors or []
        super().__init__(message)


class FlightNotFoundError(AirspaceError, LookupError):
    """No flight with the given identifier"""
    def __init__(self, flight_id):
        self.flight_id = flight_id
        super().__init__(f"Flight not found: {flight_id}")


class DuplicateFlightError(AirspaceError):
    """Flight identifier already present in the registry"""
    def __init__(self, flight_id):
        self.flight_id = flight_id
        super().__init__(f"Flight already registered: {flight_id}")


class InvalidStatusTransitionError(AirspaceError):
    """Lifecycle transition not permitted from the current status"""
    def __init__(self, flight_id, current, requested):
        self.flight_id = flight_id
        self.current = current
        self.requested = requested
        super().__init__(f"Flight {flight_id} cannot move from {current} to {requested}")


class ConfigurationError(AirspaceError):
    """Invalid static airspace configuration"""
    def __init__(self, config_name, message="Configuration error"):
        self.config_name = config_name
        super().__init__(f"{message}: {config_name}")
