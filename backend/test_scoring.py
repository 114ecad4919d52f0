"""
Risk scoring checks.

Tests:
  1. Threshold boundaries — 0/1/2/3 dangerous reports → low/medium/medium/high
  2. Informational report types never raise the level
  3. Proximity — planar degree threshold, strict, scaled by radius
  4. Purity — identical inputs give identical outputs
  5. Invalid input — missing location, malformed report, negative radius
  6. Route scores — fixed per kind, safest > fastest, stable warning order

Run:  python -m pytest backend/test_scoring.py
"""

from datetime import datetime, timezone

import pytest

from errors import InvalidInput
from models import Location, RiskLevel, SafetyReport
from scoring import assess_location_risk, haversine_km, location_safety, reports_near, score_route

P = Location(lat=-26.1076, lng=28.0567, address="Sandton")
T0 = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


def make_report(type_, lat=P.lat, lng=P.lng, id_="r"):
    return SafetyReport(id=id_, type=type_, location=Location(lat=lat, lng=lng), timestamp=T0)


@pytest.mark.parametrize("count,expected", [
    (0, RiskLevel.LOW),
    (1, RiskLevel.MEDIUM),
    (2, RiskLevel.MEDIUM),
    (3, RiskLevel.HIGH),
])
def test_risk_thresholds(count, expected):
    reports = [make_report("suspicious-activity", id_=str(i)) for i in range(count)]
    assert assess_location_risk(P, reports, 1.0) == expected


def test_three_harassment_reports_is_high():
    reports = [make_report("harassment", lat=P.lat + 0.001 * i, id_=str(i)) for i in range(3)]
    assert assess_location_risk(P, reports, 1.0) == RiskLevel.HIGH


def test_mixed_dangerous_types_count_together():
    reports = [make_report("harassment", id_="a"), make_report("emergency", id_="b"),
               make_report("suspicious-activity", id_="c")]
    assert assess_location_risk(P, reports) == RiskLevel.HIGH


def test_informational_types_do_not_count():
    reports = [make_report("poor-lighting", id_=str(i)) for i in range(5)]
    reports += [make_report("safe-space", id_=f"s{i}") for i in range(5)]
    assert assess_location_risk(P, reports) == RiskLevel.LOW


def test_far_reports_are_ignored():
    # 0.02 degrees away: outside the 0.01 degree threshold for 1 km
    reports = [make_report("harassment", lat=P.lat + 0.02, id_=str(i)) for i in range(5)]
    assert assess_location_risk(P, reports, 1.0) == RiskLevel.LOW
    # but inside a 3 km radius (0.03 degrees)
    assert assess_location_risk(P, reports, 3.0) == RiskLevel.HIGH


def test_threshold_is_strict_and_planar():
    just_outside = make_report("harassment", lat=P.lat + 0.0101, id_="out")
    just_inside = make_report("harassment", lat=P.lat - 0.0099, id_="in")
    assert reports_near(P, [just_outside, just_inside], 1.0) == [just_inside]
    # 0.006 on both axes is ~0.0085 degrees in the plane → inside
    diagonal = make_report("harassment", lat=P.lat + 0.006, lng=P.lng + 0.006, id_="diag")
    assert reports_near(P, [diagonal], 1.0) == [diagonal]
    # 0.008 on both axes is ~0.0113 degrees → outside even though each axis is under 0.01
    corner = make_report("harassment", lat=P.lat + 0.008, lng=P.lng + 0.008, id_="corner")
    assert reports_near(P, [corner], 1.0) == []


def test_assessment_is_pure():
    reports = [make_report("harassment", id_="a"), make_report("safe-space", id_="b")]
    snapshot = [r.model_copy(deep=True) for r in reports]
    first = assess_location_risk(P, reports)
    second = assess_location_risk(P, reports)
    assert first == second == RiskLevel.MEDIUM
    assert reports == snapshot


def test_missing_location_is_invalid():
    with pytest.raises(InvalidInput):
        assess_location_risk(None, [])


def test_non_finite_location_is_invalid():
    with pytest.raises(InvalidInput):
        assess_location_risk(Location(lat=float("nan"), lng=0.0), [])


def test_report_without_location_is_invalid():
    class Broken:
        id = "x"
        type = "harassment"
        location = None

    with pytest.raises(InvalidInput):
        assess_location_risk(P, [Broken()])


def test_negative_radius_is_invalid():
    with pytest.raises(InvalidInput):
        assess_location_risk(P, [], -1.0)


def test_location_safety_factors_follow_level():
    safety = location_safety(P, [make_report("emergency")])
    assert safety.risk == RiskLevel.MEDIUM
    assert safety.factors == ["Moderate lighting", "Some activity", "Mixed reports"]


def test_route_scores_fixed_per_kind():
    path = [P, Location(lat=P.lat + 0.05, lng=P.lng)]
    safest = score_route("safest", path, [])
    fastest = score_route("fastest", path, [])
    assert safest.safetyScore == 9.2
    assert fastest.safetyScore == 6.8
    assert safest.safetyScore > fastest.safetyScore
    assert safest.warnings == ["Well-lit main roads", "Avoids isolated areas", "High foot traffic"]
    assert fastest.warnings[0] == "Direct route"


def test_route_score_ignores_nearby_reports():
    path = [P, Location(lat=P.lat + 0.05, lng=P.lng)]
    reports = [make_report("harassment", id_=str(i)) for i in range(10)]
    assert score_route("safest", path, reports) == score_route("safest", path, [])


def test_route_score_rejects_short_path_and_unknown_kind():
    with pytest.raises(InvalidInput):
        score_route("safest", [P], [])
    with pytest.raises(InvalidInput):
        score_route("scenic", [P, P], [])


def test_haversine_km():
    johannesburg = Location(lat=-26.2041, lng=28.0473)
    pretoria = Location(lat=-25.7479, lng=28.2293)
    assert 45 < haversine_km(johannesburg, pretoria) < 60
    assert haversine_km(P, P) == 0


def test_haversine_km_near_antipodal_grid():
    for lat in range(-89, 90, 7):
        for lng in range(-179, 180, 11):
            d = haversine_km(Location(lat=lat, lng=lng), Location(lat=-lat, lng=lng + 180))
            assert 20000 < d < 20030
