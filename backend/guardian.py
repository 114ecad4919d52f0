"""SafeStep Backend — Guardian Mode Trip Lifecycle

Single-trip state machine:

    idle ──start_trip──▶ active ──deadline passes──▶ overdue
                           ▲ │                          │
                           │ └──────check_in◀───────────┘
                           │
    active | overdue ──complete_trip──▶ completed (terminal)
    active | overdue ──cancel_trip────▶ idle

Time only moves through tick(now) against checkInDeadline, so the manager
is deterministic under an injected clock. Events go to a fire-and-forget
notifier; a trip with no guardian contacts emits nothing.
"""

import logging
import math
import threading
import uuid
from collections import deque
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, Protocol

from config import CHECK_IN_INTERVAL_SECONDS, MAX_TRAVEL_MINUTES
from errors import InvalidInput, NoActiveTrip, TripAlreadyActive
from models import GuardianTrip, LastLocation, TripEvent

logger = logging.getLogger("safestep.guardian")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Notifier(Protocol):
    def notify(self, event: TripEvent) -> None: ...


class LoggingNotifier:
    """Default sink: logs each event and keeps the most recent ones for inspection."""

    def __init__(self, history: int = 100):
        self.events: deque[TripEvent] = deque(maxlen=history)

    def notify(self, event: TripEvent) -> None:
        self.events.append(event)
        contacts = event.payload.get("guardianContacts", [])
        logger.info(f"Guardian event {event.kind} for trip {event.tripId} → {len(contacts)} contact(s)")


class GuardianTripManager:
    """Owns at most one guardian trip and drives its check-in timer."""

    def __init__(
        self,
        notifier: Optional[Notifier] = None,
        clock: Optional[Callable[[], datetime]] = None,
        check_in_interval_seconds: int = CHECK_IN_INTERVAL_SECONDS,
    ):
        if check_in_interval_seconds <= 0:
            raise InvalidInput("check-in interval must be positive")
        self._notifier = notifier if notifier is not None else LoggingNotifier()
        self._clock = clock or _utcnow
        self._interval = timedelta(seconds=check_in_interval_seconds)
        self._trip: Optional[GuardianTrip] = None
        self._lock = threading.RLock()

    # ─────────────────────────── Accessors ──────────────────────

    @property
    def check_in_interval(self) -> timedelta:
        return self._interval

    @property
    def current_trip(self) -> Optional[GuardianTrip]:
        with self._lock:
            return self._snapshot()

    @property
    def state(self) -> str:
        """'idle' when no trip is held, otherwise the trip status."""
        with self._lock:
            return self._trip.status if self._trip else "idle"

    def _snapshot(self) -> Optional[GuardianTrip]:
        return self._trip.model_copy(deep=True) if self._trip else None

    def _require_open_trip(self) -> GuardianTrip:
        if self._trip is None or self._trip.status == "completed":
            raise NoActiveTrip("No active trip")
        return self._trip

    def _emit(self, kind: str, trip: GuardianTrip, now: datetime, **payload):
        if not trip.guardianContacts:
            return
        event = TripEvent(
            kind=kind,
            tripId=trip.id,
            timestamp=now,
            payload={"guardianContacts": list(trip.guardianContacts), "destination": trip.destination, **payload},
        )
        try:
            self._notifier.notify(event)
        except Exception as e:
            # Delivery is fire-and-forget; the transition has already happened
            logger.warning(f"Guardian notification {kind} failed for trip {trip.id}: {e}")

    # ─────────────────────────── Lifecycle ──────────────────────

    def start_trip(
        self,
        destination: str,
        estimated_travel_minutes: float,
        guardian_contacts,
        now: Optional[datetime] = None,
    ) -> GuardianTrip:
        if not destination or not str(destination).strip():
            raise InvalidInput("destination is required")
        if estimated_travel_minutes is None or not math.isfinite(estimated_travel_minutes):
            raise InvalidInput("estimated travel time must be a finite number")
        if not 0 <= estimated_travel_minutes <= MAX_TRAVEL_MINUTES:
            raise InvalidInput(f"estimated travel time must be between 0 and {MAX_TRAVEL_MINUTES} minutes")
        now = now or self._clock()

        with self._lock:
            if self._trip is not None and self._trip.status in ("active", "overdue"):
                raise TripAlreadyActive("You already have an active trip")

            # Contacts form a set; keep first-seen order for display
            contacts = list(dict.fromkeys(guardian_contacts or []))
            trip = GuardianTrip(
                id=str(uuid.uuid4())[:8],
                destination=str(destination).strip(),
                startTime=now,
                estimatedArrival=now + timedelta(minutes=estimated_travel_minutes),
                status="active",
                guardianContacts=contacts,
                checkInDeadline=now + self._interval,
            )
            self._trip = trip
            logger.info(f"Trip {trip.id} started to {trip.destination} ({len(contacts)} guardian(s))")
            self._emit("trip_started", trip, now, estimatedArrival=trip.estimatedArrival.isoformat())
            return self._snapshot()

    def tick(self, now: Optional[datetime] = None) -> Optional[GuardianTrip]:
        """Evaluate the check-in deadline. Called periodically by a scheduler."""
        now = now or self._clock()
        with self._lock:
            trip = self._trip
            if trip is None or trip.status == "completed":
                return self._snapshot()
            if now < trip.checkInDeadline:
                return self._snapshot()

            missed = trip.checkInDeadline
            if trip.status == "active":
                trip.status = "overdue"
                logger.warning(f"Trip {trip.id} check-in overdue (deadline {missed.isoformat()})")
            else:
                logger.warning(f"Trip {trip.id} still overdue, repeating reminder")
            # Reset so the reminder repeats once per interval, not on every tick
            trip.checkInDeadline = now + self._interval
            self._emit("check_in_overdue", trip, now, missedDeadline=missed.isoformat())
            return self._snapshot()

    def check_in(self, now: Optional[datetime] = None) -> GuardianTrip:
        now = now or self._clock()
        with self._lock:
            trip = self._require_open_trip()
            was_overdue = trip.status == "overdue"
            trip.status = "active"
            trip.checkInDeadline = now + self._interval
            trip.checkInCount += 1
            logger.info(f"Trip {trip.id} check-in received{' (was overdue)' if was_overdue else ''}")
            self._emit("check_in_confirmed", trip, now, wasOverdue=was_overdue)
            return self._snapshot()

    def complete_trip(self, now: Optional[datetime] = None) -> GuardianTrip:
        """'I've arrived safely'. Terminal: a new trip needs start_trip."""
        now = now or self._clock()
        with self._lock:
            trip = self._require_open_trip()
            trip.status = "completed"
            logger.info(f"Trip {trip.id} completed, arrived safely")
            self._emit("arrived_safely", trip, now)
            return self._snapshot()

    def cancel_trip(self, now: Optional[datetime] = None) -> GuardianTrip:
        """Drop the trip without an arrival. The manager returns to idle.

        Returns the trip as it was just before cancelling, so its status is
        still active or overdue.
        """
        now = now or self._clock()
        with self._lock:
            trip = self._require_open_trip()
            self._trip = None
            logger.info(f"Trip {trip.id} cancelled")
            self._emit("trip_cancelled", trip, now, statusAtCancel=trip.status)
            return trip

    def update_location(self, lat: float, lng: float, now: Optional[datetime] = None) -> GuardianTrip:
        """Record the traveller's latest position on the open trip."""
        now = now or self._clock()
        with self._lock:
            trip = self._require_open_trip()
            try:
                trip.lastLocation = LastLocation(lat=lat, lng=lng, timestamp=now)
            except ValueError as e:
                raise InvalidInput(f"invalid location: {e}") from e
            return self._snapshot()
