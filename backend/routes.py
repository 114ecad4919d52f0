"""SafeStep Backend — FastAPI Routes"""

import asyncio
import logging
import threading
import time
from datetime import datetime
from typing import Callable, Optional

from cachetools import TTLCache
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import DEFAULT_LOCATION, RATE_LIMIT, RISK_RADIUS_KM, ROUTE_CACHE_TTL, TICK_SECONDS
from errors import SafetyError
from guardian import GuardianTripManager, LoggingNotifier
from models import (
    GuardianStateResponse, Location, LocationUpdateRequest, ReportRequest,
    RiskResponse, RoutePlanRequest, RoutePlanResponse, SafetyReport, StartTripRequest,
)
from report_store import ReportStore
from route_service import plan_routes
from scoring import location_safety

logger = logging.getLogger("safestep")


# ─────────────────────────── App Setup ──────────────────────────

app = FastAPI(title="SafeStep Safety API", version="1.0.0")

_allowed_origins = [
    f"http://localhost:{p}" for p in range(5173, 5180)
] + [
    f"http://localhost:{p}" for p in range(8080, 8090)
] + [
    f"http://127.0.0.1:{p}" for p in range(5173, 5180)
] + [
    f"http://127.0.0.1:{p}" for p in range(8080, 8090)
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=_allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def init_state(target: FastAPI, reports: Optional[ReportStore] = None,
               clock: Optional[Callable[[], datetime]] = None):
    """Attach fresh domain state to the app. Also used to reset state in tests."""
    target.state.notifier = LoggingNotifier()
    target.state.reports = reports if reports is not None else ReportStore.with_seed_reports(clock=clock)
    target.state.guardian = GuardianTripManager(notifier=target.state.notifier, clock=clock)
    target.state.route_cache = TTLCache(maxsize=500, ttl=ROUTE_CACHE_TTL)


init_state(app)

_route_cache_lock = threading.Lock()


# ─────────────────────────── Guardian Timer ─────────────────────

async def _tick_loop(target: FastAPI, interval: float):
    # Looks the manager up each time so init_state() swaps are picked up
    while True:
        await asyncio.sleep(interval)
        try:
            target.state.guardian.tick()
        except Exception:
            logger.exception("Guardian tick failed, retrying next interval")


@app.on_event("startup")
async def startup_event():
    """Start the periodic guardian check-in evaluation."""
    app.state.tick_task = asyncio.create_task(_tick_loop(app, TICK_SECONDS))
    logger.info(f"Guardian tick loop running every {TICK_SECONDS}s")


@app.on_event("shutdown")
async def shutdown_event():
    task = getattr(app.state, "tick_task", None)
    if task is not None:
        task.cancel()


# ─────────────────────────── Error Mapping ──────────────────────

@app.exception_handler(SafetyError)
async def safety_error_handler(request: Request, exc: SafetyError):
    logger.info(f"{request.method} {request.url.path} rejected: {type(exc).__name__}: {exc}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": str(exc), "error": type(exc).__name__},
    )


# ─────────────────────────── Rate Limiting ──────────────────────

_rate_store: dict[str, list[float]] = {}
RATE_WINDOW = 60  # seconds
_RATE_EVICT_INTERVAL = 300  # evict stale IPs every 5 minutes
_last_rate_evict = 0.0


@app.middleware("http")
async def rate_limit_middleware(request: Request, call_next):
    client_ip = request.client.host if request.client else "unknown"
    now = time.time()

    # Periodically evict stale IPs to prevent memory leak
    global _last_rate_evict
    if now - _last_rate_evict > _RATE_EVICT_INTERVAL:
        stale_ips = [ip for ip, timestamps in _rate_store.items()
                     if not timestamps or now - timestamps[-1] > RATE_WINDOW * 2]
        for ip in stale_ips:
            del _rate_store[ip]
        _last_rate_evict = now

    timestamps = [t for t in _rate_store.get(client_ip, []) if now - t < RATE_WINDOW]
    if len(timestamps) >= RATE_LIMIT:
        _rate_store[client_ip] = timestamps
        return JSONResponse(
            status_code=429,
            content={"detail": "Rate limit exceeded. Try again in a minute."},
        )

    timestamps.append(now)
    _rate_store[client_ip] = timestamps
    return await call_next(request)


# ─────────────────────────── Community Reports ──────────────────

@app.get("/api/reports")
async def get_reports(request: Request, lat: Optional[float] = None, lng: Optional[float] = None,
                      radius: float = RISK_RADIUS_KM):
    """List reports, newest first. With lat+lng, only those within radius km."""
    store: ReportStore = request.app.state.reports
    if lat is None or lng is None:
        return {"reports": store.all()}
    return {"reports": store.near(Location(lat=lat, lng=lng), radius)}


@app.post("/api/reports", response_model=SafetyReport)
async def submit_report(req: ReportRequest, request: Request):
    store: ReportStore = request.app.state.reports
    return store.add(
        report_type=req.type,
        location=Location(lat=req.lat, lng=req.lng, address=req.address),
        title=req.title,
        description=req.description,
    )


@app.post("/api/reports/{report_id}/upvote", response_model=SafetyReport)
async def upvote_report(report_id: str, request: Request):
    report = request.app.state.reports.upvote(report_id)
    if report is None:
        raise HTTPException(status_code=404, detail="Report not found")
    return report


# ─────────────────────────── Risk & Routes ──────────────────────

@app.get("/api/risk", response_model=RiskResponse)
async def get_location_risk(request: Request, lat: Optional[float] = None, lng: Optional[float] = None):
    """Risk level at a point. Falls back to the default city centre when no position is given."""
    if lat is None or lng is None:
        location = Location(**DEFAULT_LOCATION)
    else:
        location = Location(lat=lat, lng=lng)

    store: ReportStore = request.app.state.reports
    reports = store.all()
    safety = location_safety(location, reports)
    return RiskResponse(
        riskLevel=safety.risk,
        factors=safety.factors,
        location=location,
        nearbyReportCount=len(store.near(location)),
    )


@app.post("/api/routes", response_model=RoutePlanResponse)
async def get_routes(req: RoutePlanRequest, request: Request):
    cache: TTLCache = request.app.state.route_cache
    key = (round(req.originLat, 5), round(req.originLng, 5), round(req.destLat, 5), round(req.destLng, 5))
    with _route_cache_lock:
        cached = cache.get(key)
    if cached is not None:
        return RoutePlanResponse(routes=cached)

    routes = plan_routes(
        Location(lat=req.originLat, lng=req.originLng),
        Location(lat=req.destLat, lng=req.destLng),
        request.app.state.reports.all(),
    )
    with _route_cache_lock:
        cache[key] = routes
    return RoutePlanResponse(routes=routes)


# ─────────────────────────── Guardian Mode ──────────────────────

def _guardian_state(guardian: GuardianTripManager) -> GuardianStateResponse:
    return GuardianStateResponse(state=guardian.state, trip=guardian.current_trip)


@app.get("/api/guardian", response_model=GuardianStateResponse)
async def get_guardian(request: Request):
    return _guardian_state(request.app.state.guardian)


@app.post("/api/guardian/start", response_model=GuardianStateResponse)
async def start_trip(req: StartTripRequest, request: Request):
    guardian: GuardianTripManager = request.app.state.guardian
    guardian.start_trip(req.destination, req.estimatedTravelMinutes, req.guardianContacts)
    return _guardian_state(guardian)


@app.post("/api/guardian/check-in", response_model=GuardianStateResponse)
async def check_in(request: Request):
    guardian: GuardianTripManager = request.app.state.guardian
    guardian.check_in()
    return _guardian_state(guardian)


@app.post("/api/guardian/complete", response_model=GuardianStateResponse)
async def complete_trip(request: Request):
    guardian: GuardianTripManager = request.app.state.guardian
    guardian.complete_trip()
    return _guardian_state(guardian)


@app.post("/api/guardian/cancel", response_model=GuardianStateResponse)
async def cancel_trip(request: Request):
    guardian: GuardianTripManager = request.app.state.guardian
    guardian.cancel_trip()
    return _guardian_state(guardian)


@app.post("/api/guardian/location", response_model=GuardianStateResponse)
async def update_trip_location(req: LocationUpdateRequest, request: Request):
    guardian: GuardianTripManager = request.app.state.guardian
    guardian.update_location(req.lat, req.lng)
    return _guardian_state(guardian)


@app.get("/api/guardian/events")
async def get_guardian_events(request: Request, limit: int = 20):
    """Most recent guardian notifications, newest last."""
    events = list(request.app.state.notifier.events)
    return {"events": events[-limit:] if limit > 0 else []}


# ─────────────────────────── Utility Endpoints ──────────────────

@app.get("/api/health")
async def health(request: Request):
    return {
        "status": "ok",
        "version": app.version,
        "reports": len(request.app.state.reports),
        "guardian": request.app.state.guardian.state,
    }
