"""SafeStep Backend — In-memory community report store"""

import logging
import threading
import uuid
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional
from pydantic import ValidationError

from config import RISK_RADIUS_KM, SEED_REPORTS
from errors import InvalidInput
from models import Location, SafetyReport
from scoring import reports_near

logger = logging.getLogger("safestep.reports")

MAX_REPORTS = 1000


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ReportStore:
    """Newest-first report collection. Reports are only ever added or upvoted."""

    def __init__(self, clock: Optional[Callable[[], datetime]] = None, max_size: int = MAX_REPORTS):
        self._reports: list[SafetyReport] = []
        self._clock = clock or _utcnow
        self._max_size = max_size
        self._lock = threading.Lock()

    @classmethod
    def with_seed_reports(cls, clock: Optional[Callable[[], datetime]] = None) -> "ReportStore":
        store = cls(clock=clock)
        now = store._clock()
        # Oldest first so the newest seed ends up at the front
        for i, seed in enumerate(sorted(SEED_REPORTS, key=lambda s: -s["ageHours"]), start=1):
            store._insert(SafetyReport(
                id=str(i),
                type=seed["type"],
                title=seed["title"],
                description=seed["description"],
                location=Location(**seed["location"]),
                timestamp=now - timedelta(hours=seed["ageHours"]),
                userId=seed["userId"],
                userName=seed["userName"],
                upvotes=seed["upvotes"],
                verified=seed["verified"],
            ))
        return store

    def _insert(self, report: SafetyReport):
        with self._lock:
            self._reports.insert(0, report)
            # Keep only the newest max_size reports
            del self._reports[self._max_size:]

    def add(
        self,
        report_type: str,
        location: Location,
        title: str = "",
        description: str = "",
        user_id: str = "current-user",
        user_name: str = "Current User",
    ) -> SafetyReport:
        """Create a new unverified report with zero upvotes."""
        if location is None:
            raise InvalidInput("report location is required")
        try:
            report = SafetyReport(
                id=str(uuid.uuid4())[:8],
                type=report_type,
                title=title,
                description=description,
                location=location,
                timestamp=self._clock(),
                userId=user_id,
                userName=user_name,
            )
        except ValidationError as e:
            raise InvalidInput(f"invalid report: {e.errors()[0]['msg']}") from e
        self._insert(report)
        logger.info(f"Report added: {report.type} at ({location.lat:.4f}, {location.lng:.4f})")
        return report

    def get(self, report_id: str) -> Optional[SafetyReport]:
        with self._lock:
            for report in self._reports:
                if report.id == report_id:
                    return report
        return None

    def upvote(self, report_id: str) -> Optional[SafetyReport]:
        """Increment upvotes by one. Returns None for an unknown id."""
        with self._lock:
            for i, report in enumerate(self._reports):
                if report.id == report_id:
                    updated = report.model_copy(update={"upvotes": report.upvotes + 1})
                    self._reports[i] = updated
                    return updated
        return None

    def all(self) -> list[SafetyReport]:
        with self._lock:
            return list(self._reports)

    def near(self, location: Location, radius_km: float = RISK_RADIUS_KM) -> list[SafetyReport]:
        return reports_near(location, self.all(), radius_km)

    def __len__(self) -> int:
        return len(self._reports)
