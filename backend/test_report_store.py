"""
Community report store checks.

Run:  python -m pytest backend/test_report_store.py
"""

from datetime import datetime, timedelta, timezone

import pytest

from errors import InvalidInput
from models import Location, RiskLevel
from report_store import ReportStore
from scoring import assess_location_risk

T0 = datetime(2026, 5, 2, 21, 0, tzinfo=timezone.utc)
SPOT = Location(lat=-26.1929, lng=28.0305, address="Braamfontein")


def test_seed_reports():
    store = ReportStore.with_seed_reports(clock=lambda: T0)
    reports = store.all()
    assert [r.id for r in reports] == ["2", "1"]  # newest first
    assert reports[1].type == "poor-lighting"
    assert reports[1].timestamp == T0 - timedelta(hours=2)
    assert all(r.verified for r in reports)


def test_add_report_defaults():
    store = ReportStore(clock=lambda: T0)
    report = store.add("harassment", SPOT, title="Catcalling at bus stop")
    assert report.upvotes == 0
    assert report.verified is False
    assert report.timestamp == T0
    assert store.get(report.id) == report
    assert store.all()[0] == report


def test_add_rejects_unknown_type_and_missing_location():
    store = ReportStore()
    with pytest.raises(InvalidInput):
        store.add("noise", SPOT)
    with pytest.raises(InvalidInput):
        store.add("harassment", None)
    assert len(store) == 0


def test_upvote_increments_by_one():
    store = ReportStore()
    report = store.add("safe-space", SPOT)
    store.upvote(report.id)
    updated = store.upvote(report.id)
    assert updated.upvotes == 2
    assert updated.timestamp == report.timestamp
    assert store.upvote("missing") is None


def test_store_caps_size():
    store = ReportStore(max_size=3)
    for _ in range(5):
        store.add("poor-lighting", SPOT)
    assert len(store) == 3


def test_near_and_risk_from_store():
    store = ReportStore()
    for _ in range(3):
        store.add("harassment", Location(lat=SPOT.lat + 0.002, lng=SPOT.lng))
    store.add("emergency", Location(lat=SPOT.lat + 0.5, lng=SPOT.lng))
    assert len(store.near(SPOT)) == 3
    assert assess_location_risk(SPOT, store.all()) == RiskLevel.HIGH
