"""
Flight Registry Module
Authoritative store of admitted flight plans and their lifecycle state
"""

import logging
import threading
from datetime import datetime, timezone
from typing import Dict, List, Optional

from exceptions import DuplicateFlightError, FlightNotFoundError, InvalidStatusTransitionError
from models import FlightPlan, FlightStatus, LIVE_STATUSES, StatusChange, TimeWindow

logger = logging.getLogger(__name__)


# Permitted lifecycle moves; terminal states have none
ALLOWED_TRANSITIONS = {
    FlightStatus.PENDING: {FlightStatus.APPROVED, FlightStatus.ACTIVE, FlightStatus.CANCELLED},
    FlightStatus.APPROVED: {FlightStatus.ACTIVE, FlightStatus.CANCELLED},
    FlightStatus.ACTIVE: {FlightStatus.COMPLETED, FlightStatus.CANCELLED},
    FlightStatus.COMPLETED: set(),
    FlightStatus.CANCELLED: set(),
    FlightStatus.REJECTED: set(),
}


class FlightRegistry:
    """
    Single owner of flight plan mutation

    Every method takes `lock`, a re-entrant mutex. Callers that need a
    query-then-insert to be atomic hold `lock` around both calls.
    Plans are returned as copies; stored entries never leave the registry.
    """

    def __init__(self):
        self.lock = threading.RLock()
        self._flights: Dict[str, FlightPlan] = {}

    def __len__(self) -> int:
        with self.lock:
            return len(self._flights)

    def __contains__(self, flight_id: str) -> bool:
        with self.lock:
            return flight_id in self._flights

    def insert(self, plan: FlightPlan) -> FlightPlan:
        """
        Add an admitted plan

        Raises:
            DuplicateFlightError: if the id is already registered
        """
        with self.lock:
            if plan.flight_id in self._flights:
                raise DuplicateFlightError(plan.flight_id)
            stored = plan.model_copy(deep=True)
            self._flights[plan.flight_id] = stored
            return stored.model_copy(deep=True)

    def get(self, flight_id: str) -> FlightPlan:
        with self.lock:
            if flight_id not in self._flights:
                raise FlightNotFoundError(flight_id)
            return self._flights[flight_id].model_copy(deep=True)

    def all(self, status: Optional[FlightStatus] = None) -> List[FlightPlan]:
        with self.lock:
            return [f.model_copy(deep=True) for f in self._flights.values()
                    if status is None or f.status == status]

    def update_status(self, flight_id: str, new_status: FlightStatus,
                      reason: Optional[str] = None, now: Optional[datetime] = None) -> FlightPlan:
        """
        Move a flight to a new lifecycle status

        Args:
            flight_id: Flight to update
            new_status: Target status
            reason: Free text stored in the status history
            now: Timestamp for the change (defaults to current UTC time)

        Returns:
            Updated plan

        Raises:
            FlightNotFoundError: unknown flight
            InvalidStatusTransitionError: move not allowed from current status
        """
        now = now or datetime.now(timezone.utc)

        with self.lock:
            if flight_id not in self._flights:
                raise FlightNotFoundError(flight_id)

            flight = self._flights[flight_id]
            if new_status not in ALLOWED_TRANSITIONS[flight.status]:
                raise InvalidStatusTransitionError(flight_id, flight.status.value, new_status.value)

            flight.status = new_status
            flight.updated_at = now
            flight.status_history.append(StatusChange(status=new_status, changed_at=now, reason=reason))
            logger.debug(f"Flight {flight.flight_number} -> {new_status.value}")
            return flight.model_copy(deep=True)

    def remove(self, flight_id: str) -> FlightPlan:
        with self.lock:
            if flight_id not in self._flights:
                raise FlightNotFoundError(flight_id)
            return self._flights.pop(flight_id)

    def active_conflict_candidates(self, time_window: TimeWindow,
                                   exclude_id: Optional[str] = None) -> List[FlightPlan]:
        """
        Live flights (pending, approved, active) whose window overlaps time_window

        Linear scan over all entries; a larger deployment needs an
        interval tree over time windows here.
        """
        with self.lock:
            return [
                f.model_copy(deep=True) for f in self._flights.values()
                if f.status in LIVE_STATUSES
                and f.flight_id != exclude_id
                and time_window.overlaps(f.time_window)
            ]
