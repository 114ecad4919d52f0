"""SafeStep Backend — Domain errors

All errors are local precondition violations raised synchronously;
none are retried. routes.py maps them onto HTTP status codes.
"""


class SafetyError(Exception):
    """Base class for recoverable safety-core errors."""

    status_code = 400


class InvalidInput(SafetyError):
    """Missing or malformed coordinate, report or trip data."""


class TripAlreadyActive(SafetyError):
    """start_trip called while a trip is active or overdue."""

    status_code = 409


class NoActiveTrip(SafetyError):
    """Trip operation called with no active or overdue trip."""

    status_code = 409


class DegenerateRoute(SafetyError):
    """Origin and destination coincide."""
