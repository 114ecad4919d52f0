"""SafeStep Backend — Configuration & Constants"""

import os
from pathlib import Path
from dotenv import load_dotenv

# Load .env from project root (one level up from backend/)
_env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_env_path)

# ── Guardian mode ──
CHECK_IN_INTERVAL_SECONDS = int(os.environ.get("SAFESTEP_CHECK_IN_INTERVAL", "300"))
MAX_TRAVEL_MINUTES = 7 * 24 * 60  # one week
TICK_SECONDS = float(os.environ.get("SAFESTEP_TICK_SECONDS", "1.0"))

# ── Risk scoring ──
RISK_RADIUS_KM = float(os.environ.get("SAFESTEP_RISK_RADIUS_KM", "1.0"))

# Planar threshold on raw lat/lng deltas: 0.01 degrees is treated as ~1 km.
DEGREES_PER_KM = 0.01

DANGEROUS_REPORT_TYPES = frozenset({"harassment", "suspicious-activity", "emergency"})

# ── API ──
RATE_LIMIT = int(os.environ.get("SAFESTEP_RATE_LIMIT", "30"))  # requests per minute per IP
ROUTE_CACHE_TTL = 600  # seconds

# Used by callers when the user's position is unknown (Cape Town city centre)
DEFAULT_LOCATION = {"lat": -33.9249, "lng": 18.4241, "address": "Cape Town"}

# Route kind → fixed safety heuristics. safest must always outscore fastest.
ROUTE_PROFILES = {
    "safest": {
        "safetyScore": 9.2,
        "warnings": ["Well-lit main roads", "Avoids isolated areas", "High foot traffic"],
        "distanceFactor": 1.3,
        "minutesPerKm": 2.5,
    },
    "fastest": {
        "safetyScore": 6.8,
        "warnings": [
            "Direct route",
            "May include less-populated segments",
            "Faster but lower safety margin",
        ],
        "distanceFactor": 1.1,
        "minutesPerKm": 2.0,
    },
}

# Risk level → factors shown alongside a location assessment
RISK_FACTORS = {
    "low": ["Well-lit area", "High foot traffic", "Police presence"],
    "medium": ["Moderate lighting", "Some activity", "Mixed reports"],
    "high": ["Poor lighting", "Isolated area", "Recent incidents"],
}

# Demonstration reports loaded into a fresh report store
SEED_REPORTS = [
    {
        "type": "poor-lighting",
        "title": "Dark alley on Smith Street",
        "description": "Very poor lighting after 7pm, feels unsafe walking alone",
        "location": {"lat": -33.9249, "lng": 18.4241, "address": "Smith Street, Cape Town"},
        "ageHours": 2,
        "userId": "2",
        "userName": "Anonymous User",
        "upvotes": 5,
        "verified": True,
    },
    {
        "type": "safe-space",
        "title": "Well-lit parking area",
        "description": "Good security and lighting, feels safe even late evening",
        "location": {"lat": -33.9279, "lng": 18.4209, "address": "V&A Waterfront, Cape Town"},
        "ageHours": 1,
        "userId": "3",
        "userName": "SafeWalker",
        "upvotes": 12,
        "verified": True,
    },
]
