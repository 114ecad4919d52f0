"""SafeStep Backend — Pydantic Models"""

from datetime import datetime
from enum import Enum
from typing import Any, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field

from config import MAX_TRAVEL_MINUTES

ReportType = Literal["harassment", "poor-lighting", "suspicious-activity", "safe-space", "emergency"]
RouteKind = Literal["safest", "fastest"]
TripStatus = Literal["active", "completed", "overdue"]
TripEventKind = Literal[
    "trip_started", "check_in_overdue", "check_in_confirmed", "arrived_safely", "trip_cancelled",
]


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Location(BaseModel):
    lat: float
    lng: float
    address: str = ""


class SafetyReport(BaseModel):
    id: str
    type: ReportType
    title: str = ""
    description: str = ""
    location: Location
    timestamp: datetime
    userId: str = "anonymous"
    userName: str = "Anonymous User"
    upvotes: int = Field(default=0, ge=0)
    verified: bool = False


class RouteScore(BaseModel):
    model_config = ConfigDict(frozen=True)

    safetyScore: float = Field(ge=0, le=10)
    warnings: list[str]


class RouteCandidate(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    kind: RouteKind
    path: list[Location] = Field(min_length=2)  # travel order
    distanceKm: float
    durationMin: int
    safetyScore: float = Field(ge=0, le=10)
    warnings: list[str]  # display order


class LastLocation(BaseModel):
    lat: float
    lng: float
    timestamp: datetime


class GuardianTrip(BaseModel):
    id: str
    destination: str
    startTime: datetime
    estimatedArrival: datetime
    status: TripStatus = "active"
    guardianContacts: list[str] = []
    checkInDeadline: datetime
    checkInCount: int = 0
    lastLocation: Optional[LastLocation] = None


class TripEvent(BaseModel):
    kind: TripEventKind
    tripId: str
    timestamp: datetime
    payload: dict[str, Any] = {}


class LocationSafety(BaseModel):
    risk: RiskLevel
    factors: list[str]


# ─────────────────────────── API request / response ─────────────

class ReportRequest(BaseModel):
    type: ReportType
    title: str = ""
    description: str = ""
    lat: float
    lng: float
    address: str = ""


class RiskResponse(BaseModel):
    riskLevel: RiskLevel
    factors: list[str]
    location: Location
    nearbyReportCount: int


class RoutePlanRequest(BaseModel):
    originLat: float
    originLng: float
    destLat: float
    destLng: float


class RoutePlanResponse(BaseModel):
    routes: list[RouteCandidate]


class StartTripRequest(BaseModel):
    destination: str
    estimatedTravelMinutes: int = Field(default=30, ge=0, le=MAX_TRAVEL_MINUTES)
    guardianContacts: list[str] = []


class LocationUpdateRequest(BaseModel):
    lat: float
    lng: float


class GuardianStateResponse(BaseModel):
    state: Literal["idle", "active", "overdue", "completed"]
    trip: Optional[GuardianTrip] = None
