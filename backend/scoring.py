"""SafeStep Backend — Risk Scoring Logic

Rule-based classifier over community reports. Everything here is a pure
function of its inputs: no store access, no clock, no logging side effects
that change results.
"""

import logging
import math
from typing import Iterable, Optional, Sequence

from config import DANGEROUS_REPORT_TYPES, DEGREES_PER_KM, RISK_FACTORS, RISK_RADIUS_KM, ROUTE_PROFILES
from errors import InvalidInput
from models import Location, LocationSafety, RiskLevel, RouteScore, SafetyReport

logger = logging.getLogger("safestep.scoring")

_EARTH_RADIUS_KM = 6371.0


def validate_location(location: Optional[Location], what: str = "location") -> Location:
    if location is None:
        raise InvalidInput(f"{what} is required")
    lat = getattr(location, "lat", None)
    lng = getattr(location, "lng", None)
    if not isinstance(lat, (int, float)) or not isinstance(lng, (int, float)):
        raise InvalidInput(f"{what} must have numeric lat/lng")
    if not (math.isfinite(lat) and math.isfinite(lng)):
        raise InvalidInput(f"{what} has non-finite coordinates")
    return location


def planar_distance_deg(a: Location, b: Location) -> float:
    """Euclidean distance on raw degree deltas (not geodesic)."""
    return math.sqrt((a.lat - b.lat) ** 2 + (a.lng - b.lng) ** 2)


def haversine_km(a: Location, b: Location) -> float:
    """Great-circle distance in km. Used for route length estimates only."""
    d_lat = math.radians(b.lat - a.lat)
    d_lng = math.radians(b.lng - a.lng)
    h = (math.sin(d_lat / 2) ** 2
         + math.cos(math.radians(a.lat)) * math.cos(math.radians(b.lat)) * math.sin(d_lng / 2) ** 2)
    # Rounding can push h just past 1 for near-antipodal points
    h = min(1.0, max(0.0, h))
    return _EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def reports_near(
    location: Location,
    reports: Iterable[SafetyReport],
    radius_km: float = RISK_RADIUS_KM,
) -> list[SafetyReport]:
    """Reports strictly inside radius_km of location (degree-space threshold)."""
    location = validate_location(location)
    if radius_km < 0 or not math.isfinite(radius_km):
        raise InvalidInput(f"radius must be a non-negative number, got {radius_km!r}")
    threshold = radius_km * DEGREES_PER_KM

    nearby = []
    for report in reports:
        report_location = validate_location(
            getattr(report, "location", None), f"report {getattr(report, 'id', '?')} location",
        )
        if planar_distance_deg(report_location, location) < threshold:
            nearby.append(report)
    return nearby


def classify_risk(dangerous_count: int) -> RiskLevel:
    """>2 dangerous reports → high, 1–2 → medium, 0 → low."""
    if dangerous_count > 2:
        return RiskLevel.HIGH
    if dangerous_count > 0:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def assess_location_risk(
    location: Location,
    reports: Iterable[SafetyReport],
    radius_km: float = RISK_RADIUS_KM,
) -> RiskLevel:
    """Qualitative risk level for a point given the current report collection.

    The caller is responsible for supplying a fallback coordinate when the
    user's position is unknown; a missing location raises InvalidInput.
    """
    nearby = reports_near(location, reports, radius_km)
    dangerous = sum(1 for r in nearby if r.type in DANGEROUS_REPORT_TYPES)
    return classify_risk(dangerous)


def location_safety(
    location: Location,
    reports: Iterable[SafetyReport],
    radius_km: float = RISK_RADIUS_KM,
) -> LocationSafety:
    """Risk level plus the human-readable factors shown for that level."""
    risk = assess_location_risk(location, reports, radius_km)
    return LocationSafety(risk=risk, factors=list(RISK_FACTORS[risk.value]))


def score_route(
    kind: str,
    path: Sequence[Location],
    reports: Iterable[SafetyReport] = (),
) -> RouteScore:
    """Safety score and warnings for a route candidate.

    Scores are fixed per route kind rather than recomputed per path; the
    path and reports are validated but do not move the score.
    """
    profile = ROUTE_PROFILES.get(kind)
    if profile is None:
        raise InvalidInput(f"unknown route kind {kind!r}")
    if path is None or len(path) < 2:
        raise InvalidInput("route path needs at least two points")
    for point in path:
        validate_location(point, "route point")

    return RouteScore(safetyScore=profile["safetyScore"], warnings=list(profile["warnings"]))
