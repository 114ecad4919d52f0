"""SafeStep Backend — Route Ranking

Builds the [safest, fastest] candidate pair for an origin/destination.
Path geometry comes from a path provider; this module only measures the
path, attaches scores and warnings, and fixes the output order.
"""

import logging
import math
from typing import Callable, Iterable, Optional, Sequence

from config import ROUTE_PROFILES
from errors import DegenerateRoute, InvalidInput
from models import Location, RouteCandidate, SafetyReport
from scoring import validate_location, haversine_km, planar_distance_deg, score_route

logger = logging.getLogger("safestep.route_service")

ROUTE_ORDER = ("safest", "fastest")
SAME_POINT_EPSILON_DEG = 1e-6

PathProvider = Callable[[Location, Location, str], Sequence[Location]]


def _interpolated_path(
    origin: Location,
    destination: Location,
    intermediate: int,
    offset: Callable[[float], tuple[float, float]],
) -> list[Location]:
    d_lat = destination.lat - origin.lat
    d_lng = destination.lng - origin.lng
    waypoints = [origin]
    for i in range(1, intermediate + 1):
        progress = i / (intermediate + 1)
        off_lat, off_lng = offset(progress)
        waypoints.append(Location(
            lat=origin.lat + d_lat * progress + off_lat,
            lng=origin.lng + d_lng * progress + off_lng,
        ))
    waypoints.append(destination)
    return waypoints


def default_path_provider(origin: Location, destination: Location, kind: str) -> list[Location]:
    """Synthesize a plausible road-following path when no directions service is wired in.

    safest bows further off the straight line over more waypoints (main
    roads); fastest stays close to the direct line.
    """
    if kind == "safest":
        def bow(progress):
            road = math.sin(progress * math.pi) * 0.002
            return road, road * 0.5
        return _interpolated_path(origin, destination, 8, bow)

    def direct(progress):
        return math.sin(progress * math.pi * 0.5) * 0.001, 0.0
    return _interpolated_path(origin, destination, 4, direct)


def estimate_distance_km(origin: Location, destination: Location, kind: str) -> float:
    factor = ROUTE_PROFILES[kind]["distanceFactor"]
    return round(haversine_km(origin, destination) * factor, 1)


def estimate_duration_min(distance_km: float, kind: str) -> int:
    return math.ceil(distance_km * ROUTE_PROFILES[kind]["minutesPerKm"])


def build_candidate(
    kind: str,
    origin: Location,
    destination: Location,
    path: Sequence[Location],
    reports: Iterable[SafetyReport],
) -> RouteCandidate:
    score = score_route(kind, path, reports)
    distance_km = estimate_distance_km(origin, destination, kind)
    return RouteCandidate(
        id=kind,
        kind=kind,
        path=list(path),
        distanceKm=distance_km,
        durationMin=estimate_duration_min(distance_km, kind),
        safetyScore=score.safetyScore,
        warnings=score.warnings,
    )


def plan_routes(
    origin: Location,
    destination: Location,
    reports: Iterable[SafetyReport] = (),
    path_provider: Optional[PathProvider] = None,
) -> list[RouteCandidate]:
    """Return exactly [safest, fastest] for two distinct endpoints."""
    origin = validate_location(origin, "origin")
    destination = validate_location(destination, "destination")
    if planar_distance_deg(origin, destination) < SAME_POINT_EPSILON_DEG:
        raise DegenerateRoute("Origin and destination are the same place")

    provider = path_provider or default_path_provider
    reports = list(reports)

    candidates = []
    for kind in ROUTE_ORDER:
        path = provider(origin, destination, kind)
        if path is None:
            raise InvalidInput(f"no {kind} path available")
        candidates.append(build_candidate(kind, origin, destination, path, reports))

    logger.info(
        f"Planned routes ({origin.lat:.4f}, {origin.lng:.4f}) → ({destination.lat:.4f}, {destination.lng:.4f}): "
        + ", ".join(f"{c.kind} {c.distanceKm} km / {c.safetyScore}" for c in candidates)
    )
    return candidates
